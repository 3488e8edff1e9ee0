import logging
from typing import List, Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from src.database import models
from src.rbac.roles import Role
from src.repositories.interfaces import IProjectRepository

logger = logging.getLogger(__name__)

class SqlalchemyProjectRepository(IProjectRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, project_model: models.Project) -> models.Project:
        self.db.add(project_model)
        self.db.commit()
        self.db.refresh(project_model)
        return project_model

    def find_by_id(self, project_id: int) -> Optional[models.Project]:
        return self.db.query(models.Project).filter(models.Project.id == project_id).first()

    def find_owned_by(self, user_id: int, project_id: int) -> Optional[models.Project]:
        return self.db.query(models.Project).filter(
            models.Project.id == project_id,
            models.Project.owner_id == user_id
        ).first()

    def _accessible_query(self, user_id: int):
        member_project_ids = self.db.query(models.ProjectMember.project_id).filter(
            models.ProjectMember.user_id == user_id
        )
        return self.db.query(models.Project).filter(or_(
            models.Project.owner_id == user_id,
            models.Project.id.in_(member_project_ids)
        ))

    def list_for_user(self, user_id: int, offset: int, limit: int, search: Optional[str] = None) -> Tuple[List[models.Project], int]:
        query = self._accessible_query(user_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                models.Project.name.ilike(pattern),
                models.Project.description.ilike(pattern)
            ))
        total = query.count()
        projects = query.options(joinedload(models.Project.owner)).order_by(
            models.Project.updated_at.desc(), models.Project.id.desc()
        ).offset(offset).limit(limit).all()
        return projects, total

    def list_accessible_ids(self, user_id: int) -> List[int]:
        return [project.id for project in self._accessible_query(user_id).all()]

    def save(self, project: models.Project) -> models.Project:
        self.db.commit()
        self.db.refresh(project)
        return project

    def delete(self, project: models.Project) -> bool:
        if project:
            self.db.delete(project)
            self.db.commit()
            return True
        return False

    def find_membership(self, project_id: int, user_id: int) -> Optional[models.ProjectMember]:
        return self.db.query(models.ProjectMember).filter(
            models.ProjectMember.project_id == project_id,
            models.ProjectMember.user_id == user_id
        ).first()

    def list_memberships(self, project_id: int) -> List[models.ProjectMember]:
        return self.db.query(models.ProjectMember).options(
            joinedload(models.ProjectMember.user)
        ).filter(models.ProjectMember.project_id == project_id).order_by(
            models.ProjectMember.joined_at.asc(), models.ProjectMember.id.asc()
        ).all()

    def add_membership(self, membership: models.ProjectMember) -> models.ProjectMember:
        self.db.add(membership)
        self.db.commit()
        self.db.refresh(membership)
        return membership

    def update_membership_role(self, membership: models.ProjectMember, role: Role) -> models.ProjectMember:
        membership.role = role
        self.db.commit()
        self.db.refresh(membership)
        return membership

    def delete_membership(self, membership: models.ProjectMember) -> bool:
        if membership:
            self.db.delete(membership)
            self.db.commit()
            return True
        return False

    def transfer_ownership(self, project: models.Project, new_owner_id: int) -> models.Project:
        old_owner_id = project.owner_id
        try:
            previous_membership = self.find_membership(project.id, new_owner_id)
            if previous_membership:
                self.db.delete(previous_membership)
            project.owner_id = new_owner_id
            self.db.add(models.ProjectMember(project_id=project.id, user_id=old_owner_id, role=Role.ADMIN))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Ownership transfer of project %s rolled back", project.id)
            raise
        self.db.refresh(project)
        return project
