from abc import ABC, abstractmethod
from typing import List, NamedTuple, Optional, Sequence, Tuple
from src.database import models

class BoardChain(NamedTuple):
    board: models.Board
    project: models.Project

class IBoardRepository(ABC):
    @abstractmethod
    def create(self, board_model: models.Board) -> models.Board:
        """새로운 보드를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def create_with_columns(self, board_model: models.Board, column_names: Sequence[str]) -> models.Board:
        """보드와 컬럼들을 하나의 트랜잭션으로 생성합니다. 컬럼 순서는 column_names 순서를 따릅니다."""
        pass

    @abstractmethod
    def find_with_project(self, board_id: int) -> Optional[BoardChain]:
        """보드와 보드가 속한 프로젝트를 함께 조회합니다."""
        pass

    @abstractmethod
    def list_by_project(self, project_id: int, offset: int, limit: int, search: Optional[str] = None) -> Tuple[List[models.Board], int]:
        """프로젝트의 보드를 생성 순으로 조회하고, 전체 개수와 함께 반환합니다."""
        pass

    @abstractmethod
    def count_by_project(self, project_id: int) -> int:
        """프로젝트에 속한 보드의 개수를 조회합니다."""
        pass

    @abstractmethod
    def save(self, board: models.Board) -> models.Board:
        """변경된 보드를 저장합니다."""
        pass

    @abstractmethod
    def delete(self, board: models.Board) -> bool:
        """보드를 삭제합니다. 컬럼과 이슈도 함께 삭제됩니다."""
        pass
