from abc import ABC, abstractmethod
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple
from src.database import models

class IssueChain(NamedTuple):
    issue: models.Issue
    column: models.BoardColumn
    board: models.Board
    project: models.Project

class IIssueRepository(ABC):
    @abstractmethod
    def create(self, issue_model: models.Issue) -> models.Issue:
        """새로운 이슈를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_with_chain(self, issue_id: int) -> Optional[IssueChain]:
        """이슈와 그 컬럼, 보드, 프로젝트를 함께 조회합니다."""
        pass

    @abstractmethod
    def list_by_column(self, column_id: int, offset: int, limit: int, search: Optional[str] = None) -> Tuple[List[models.Issue], int]:
        """컬럼의 이슈를 최신 순으로 조회하고, 전체 개수와 함께 반환합니다."""
        pass

    @abstractmethod
    def count_by_column(self, column_id: int) -> int:
        """컬럼에 속한 이슈의 개수를 조회합니다."""
        pass

    @abstractmethod
    def count_by_board(self, board_id: int) -> int:
        """보드의 모든 컬럼에 속한 이슈의 개수를 조회합니다."""
        pass

    @abstractmethod
    def stats_for_projects(self, project_ids: Sequence[int]) -> Dict[str, Any]:
        """
        주어진 프로젝트들의 이슈 통계를 계산합니다.

        Returns:
            {'total': int, 'by_status': {...}, 'by_type': {...}, 'by_priority': {...}} 형태의 딕셔너리.
        """
        pass

    @abstractmethod
    def save(self, issue: models.Issue) -> models.Issue:
        """변경된 이슈를 저장합니다."""
        pass

    @abstractmethod
    def delete(self, issue: models.Issue) -> bool:
        """이슈를 삭제합니다."""
        pass
