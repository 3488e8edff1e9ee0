from typing import List, Optional, Sequence, Tuple
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from src.database import models
from src.repositories.interfaces import IBoardRepository, BoardChain

class SqlalchemyBoardRepository(IBoardRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, board_model: models.Board) -> models.Board:
        self.db.add(board_model)
        self.db.commit()
        self.db.refresh(board_model)
        return board_model

    def create_with_columns(self, board_model: models.Board, column_names: Sequence[str]) -> models.Board:
        try:
            self.db.add(board_model)
            for index, name in enumerate(column_names):
                board_model.columns.append(models.BoardColumn(name=name, order_index=index))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(board_model)
        return board_model

    def find_with_project(self, board_id: int) -> Optional[BoardChain]:
        board = self.db.query(models.Board).options(
            joinedload(models.Board.project)
        ).filter(models.Board.id == board_id).first()
        if not board:
            return None
        return BoardChain(board, board.project)

    def list_by_project(self, project_id: int, offset: int, limit: int, search: Optional[str] = None) -> Tuple[List[models.Board], int]:
        query = self.db.query(models.Board).filter(models.Board.project_id == project_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(models.Board.name.ilike(pattern), models.Board.description.ilike(pattern)))
        total = query.count()
        boards = query.order_by(models.Board.created_at.asc(), models.Board.id.asc()).offset(offset).limit(limit).all()
        return boards, total

    def count_by_project(self, project_id: int) -> int:
        return self.db.query(models.Board).filter(models.Board.project_id == project_id).count()

    def save(self, board: models.Board) -> models.Board:
        self.db.commit()
        self.db.refresh(board)
        return board

    def delete(self, board: models.Board) -> bool:
        if board:
            self.db.delete(board)
            self.db.commit()
            return True
        return False
