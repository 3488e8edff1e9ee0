import logging
from typing import List, Optional, Sequence
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from src.database import models
from src.repositories.interfaces import IColumnRepository, ColumnChain

logger = logging.getLogger(__name__)

class SqlalchemyColumnRepository(IColumnRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, column_model: models.BoardColumn) -> models.BoardColumn:
        self.db.add(column_model)
        self.db.commit()
        self.db.refresh(column_model)
        return column_model

    def find_with_board(self, column_id: int) -> Optional[ColumnChain]:
        column = self.db.query(models.BoardColumn).options(
            joinedload(models.BoardColumn.board).joinedload(models.Board.project)
        ).filter(models.BoardColumn.id == column_id).first()
        if not column:
            return None
        return ColumnChain(column, column.board, column.board.project)

    def list_by_board(self, board_id: int) -> List[models.BoardColumn]:
        return self.db.query(models.BoardColumn).filter(
            models.BoardColumn.board_id == board_id
        ).order_by(models.BoardColumn.order_index.asc(), models.BoardColumn.id.asc()).all()

    def last_order_index(self, board_id: int) -> Optional[int]:
        return self.db.query(func.max(models.BoardColumn.order_index)).filter(
            models.BoardColumn.board_id == board_id
        ).scalar()

    def count_by_project(self, project_id: int) -> int:
        return self.db.query(models.BoardColumn).join(models.Board).filter(
            models.Board.project_id == project_id
        ).count()

    def save(self, column: models.BoardColumn) -> models.BoardColumn:
        self.db.commit()
        self.db.refresh(column)
        return column

    def delete(self, column: models.BoardColumn) -> bool:
        if column:
            self.db.delete(column)
            self.db.commit()
            return True
        return False

    def reorder(self, board_id: int, column_ids: Sequence[int]) -> List[models.BoardColumn]:
        try:
            columns = {
                column.id: column
                for column in self.db.query(models.BoardColumn).filter(models.BoardColumn.board_id == board_id).all()
            }
            for index, column_id in enumerate(column_ids):
                columns[column_id].order_index = index
            self.db.commit()
        except (SQLAlchemyError, KeyError):
            self.db.rollback()
            logger.error("Column reorder of board %s rolled back", board_id)
            raise
        return self.list_by_board(board_id)
