from typing import Any, Dict, List, Optional, Sequence, Tuple
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload
from src.database import models
from src.repositories.interfaces import IIssueRepository, IssueChain

class SqlalchemyIssueRepository(IIssueRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, issue_model: models.Issue) -> models.Issue:
        self.db.add(issue_model)
        self.db.commit()
        self.db.refresh(issue_model)
        return issue_model

    def find_with_chain(self, issue_id: int) -> Optional[IssueChain]:
        issue = self.db.query(models.Issue).options(
            joinedload(models.Issue.column).joinedload(models.BoardColumn.board).joinedload(models.Board.project)
        ).filter(models.Issue.id == issue_id).first()
        if not issue:
            return None
        column = issue.column
        return IssueChain(issue, column, column.board, column.board.project)

    def list_by_column(self, column_id: int, offset: int, limit: int, search: Optional[str] = None) -> Tuple[List[models.Issue], int]:
        query = self.db.query(models.Issue).filter(models.Issue.column_id == column_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(models.Issue.title.ilike(pattern), models.Issue.description.ilike(pattern)))
        total = query.count()
        issues = query.options(
            joinedload(models.Issue.assignee), joinedload(models.Issue.reporter)
        ).order_by(models.Issue.created_at.desc(), models.Issue.id.desc()).offset(offset).limit(limit).all()
        return issues, total

    def count_by_column(self, column_id: int) -> int:
        return self.db.query(models.Issue).filter(models.Issue.column_id == column_id).count()

    def count_by_board(self, board_id: int) -> int:
        return self.db.query(models.Issue).join(models.BoardColumn).filter(
            models.BoardColumn.board_id == board_id
        ).count()

    def stats_for_projects(self, project_ids: Sequence[int]) -> Dict[str, Any]:
        base = self.db.query(models.Issue).join(models.BoardColumn).join(models.Board).filter(
            models.Board.project_id.in_(list(project_ids))
        )

        def grouped(field):
            rows = base.with_entities(field, func.count(models.Issue.id)).group_by(field).all()
            return {value.value: count for value, count in rows}

        return {
            "total": base.count(),
            "by_status": grouped(models.Issue.status),
            "by_type": grouped(models.Issue.type),
            "by_priority": grouped(models.Issue.priority),
        }

    def save(self, issue: models.Issue) -> models.Issue:
        self.db.commit()
        self.db.refresh(issue)
        return issue

    def delete(self, issue: models.Issue) -> bool:
        if issue:
            self.db.delete(issue)
            self.db.commit()
            return True
        return False
