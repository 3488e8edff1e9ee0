from typing import Optional
from sqlalchemy.orm import Session
from src.database import models
from src.repositories.interfaces import IUserRepository

class SqlalchemyUserRepository(IUserRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, user_model: models.User) -> models.User:
        self.db.add(user_model)
        self.db.commit()
        self.db.refresh(user_model)
        return user_model

    def find_by_id(self, user_id: int) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.id == user_id).first()

    def find_by_email(self, email: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.email == email.lower()).first()

    def find_by_username(self, username: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.username == username).first()

    def save(self, user: models.User) -> models.User:
        self.db.commit()
        self.db.refresh(user)
        return user

    def count_owned_projects(self, user_id: int) -> int:
        return self.db.query(models.Project).filter(models.Project.owner_id == user_id).count()

    def count_owned_boards(self, user_id: int) -> int:
        return self.db.query(models.Board).join(
            models.Project, models.Board.project_id == models.Project.id
        ).filter(models.Project.owner_id == user_id).count()
