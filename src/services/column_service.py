import logging
from typing import Dict, Any, List, Optional, Sequence

from src.database import models
from src.rbac.guard import AccessGuard, ensure_authorized
from src.rbac.permissions import Operation
from src.repositories.interfaces import IColumnRepository, IIssueRepository
from src.services.exceptions import ColumnNotEmptyError
from src.utils.validators import validate_text

logger = logging.getLogger(__name__)


class ColumnService:
    """
    보드 컬럼 관리. 컬럼은 보드의 일부이므로 보드 권한(BOARD_READ / BOARD_UPDATE)으로 검사합니다.
    """

    def __init__(self, column_repo: IColumnRepository, issue_repo: IIssueRepository, guard: AccessGuard):
        self.column_repo = column_repo
        self.issue_repo = issue_repo
        self.guard = guard

    def _serialize(self, column: models.BoardColumn) -> Dict[str, Any]:
        return {
            "id": column.id,
            "name": column.name,
            "board_id": column.board_id,
            "order_index": column.order_index,
            "issue_count": self.issue_repo.count_by_column(column.id),
        }

    def list_columns(self, user_id: int, board_id: int) -> List[Dict[str, Any]]:
        ensure_authorized(self.guard.authorize_board(user_id, board_id, Operation.BOARD_READ))
        return [self._serialize(c) for c in self.column_repo.list_by_board(board_id)]

    def get_column(self, user_id: int, column_id: int) -> Dict[str, Any]:
        authorized = ensure_authorized(self.guard.authorize_column(user_id, column_id, Operation.BOARD_READ))
        column, board, project = authorized.resource
        data = self._serialize(column)
        data["board"] = {"id": board.id, "name": board.name, "project": {"id": project.id, "name": project.name}}
        return data

    def create_column(self, user_id: int, board_id: int, name: str, order_index: Optional[int] = None) -> Dict[str, Any]:
        """
        보드에 컬럼을 추가합니다. order_index를 생략하면 마지막 컬럼 뒤에 붙입니다.

        Raises:
            ValueError: 이름이 비었거나 50자를 넘을 때, order_index가 음수일 때.
        """
        ensure_authorized(self.guard.authorize_board(user_id, board_id, Operation.BOARD_UPDATE))
        name = validate_text(name, "Column name", 50)
        if order_index is None:
            last_index = self.column_repo.last_order_index(board_id)
            order_index = 0 if last_index is None else last_index + 1
        elif int(order_index) < 0:
            raise ValueError("Order index must be a non-negative integer.")
        column = self.column_repo.create(models.BoardColumn(name=name, board_id=board_id, order_index=int(order_index)))
        return self._serialize(column)

    def update_column(self, user_id: int, column_id: int, name: Optional[str] = None,
                      order_index: Optional[int] = None) -> Dict[str, Any]:
        authorized = ensure_authorized(self.guard.authorize_column(user_id, column_id, Operation.BOARD_UPDATE))
        column = authorized.resource.column
        if name is not None:
            column.name = validate_text(name, "Column name", 50)
        if order_index is not None:
            if int(order_index) < 0:
                raise ValueError("Order index must be a non-negative integer.")
            column.order_index = int(order_index)
        return self._serialize(self.column_repo.save(column))

    def delete_column(self, user_id: int, column_id: int) -> bool:
        """
        Raises:
            ColumnNotEmptyError: 컬럼에 이슈가 남아 있을 때.
        """
        authorized = ensure_authorized(self.guard.authorize_column(user_id, column_id, Operation.BOARD_UPDATE))
        if self.issue_repo.count_by_column(column_id) > 0:
            raise ColumnNotEmptyError("Cannot delete column with existing issues.")
        self.column_repo.delete(authorized.resource.column)
        return True

    def reorder_columns(self, user_id: int, board_id: int, column_ids: Sequence[int]) -> List[Dict[str, Any]]:
        """
        보드의 컬럼 순서를 column_ids 순서대로 바꿉니다.

        column_ids는 보드의 모든 컬럼 ID를 정확히 한 번씩 포함해야 합니다.
        그래야 저장 후 인덱스가 중복이나 빈 자리 없이 0..N-1이 됩니다.

        Raises:
            ValueError: column_ids가 보드 컬럼의 순열이 아닐 때.
        """
        ensure_authorized(self.guard.authorize_board(user_id, board_id, Operation.BOARD_UPDATE))
        try:
            column_ids = [int(column_id) for column_id in column_ids]
        except (TypeError, ValueError):
            raise ValueError("Column ids must be integers.") from None

        current_ids = {c.id for c in self.column_repo.list_by_board(board_id)}
        if len(column_ids) != len(set(column_ids)) or set(column_ids) != current_ids:
            raise ValueError("Column ids must list every column of the board exactly once.")

        columns = self.column_repo.reorder(board_id, column_ids)
        logger.info("User %s reordered columns of board %s", user_id, board_id)
        return [self._serialize(c) for c in columns]
