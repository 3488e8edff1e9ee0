from abc import ABC, abstractmethod
from typing import List, NamedTuple, Optional, Sequence
from src.database import models

class ColumnChain(NamedTuple):
    column: models.BoardColumn
    board: models.Board
    project: models.Project

class IColumnRepository(ABC):
    @abstractmethod
    def create(self, column_model: models.BoardColumn) -> models.BoardColumn:
        """새로운 컬럼을 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_with_board(self, column_id: int) -> Optional[ColumnChain]:
        """컬럼과 그 보드, 프로젝트를 함께 조회합니다."""
        pass

    @abstractmethod
    def list_by_board(self, board_id: int) -> List[models.BoardColumn]:
        """보드의 컬럼을 order_index 오름차순으로 조회합니다."""
        pass

    @abstractmethod
    def last_order_index(self, board_id: int) -> Optional[int]:
        """보드에서 가장 큰 order_index를 조회합니다. 컬럼이 없으면 None."""
        pass

    @abstractmethod
    def count_by_project(self, project_id: int) -> int:
        """프로젝트의 모든 보드에 속한 컬럼의 개수를 조회합니다."""
        pass

    @abstractmethod
    def save(self, column: models.BoardColumn) -> models.BoardColumn:
        """변경된 컬럼을 저장합니다."""
        pass

    @abstractmethod
    def delete(self, column: models.BoardColumn) -> bool:
        """컬럼을 삭제합니다."""
        pass

    @abstractmethod
    def reorder(self, board_id: int, column_ids: Sequence[int]) -> List[models.BoardColumn]:
        """
        column_ids 순서대로 order_index를 0..N-1로 다시 기록합니다.

        모든 행은 하나의 트랜잭션으로 갱신되어, 동시에 읽는 쪽은 이전 순서 또는 새 순서만 보게 됩니다.
        """
        pass
