from typing import Dict, Any, Optional

from src.database import models
from src.rbac.guard import AccessGuard, ensure_authorized
from src.rbac.permissions import Operation
from src.repositories.interfaces import IBoardRepository, IColumnRepository, IIssueRepository
from src.utils.validators import page_window, pagination_info, clean_search, validate_text


def serialize_board(board: models.Board) -> Dict[str, Any]:
    return {
        "id": board.id,
        "name": board.name,
        "description": board.description,
        "project_id": board.project_id,
        "created_at": board.created_at.isoformat() if board.created_at else None,
        "updated_at": board.updated_at.isoformat() if board.updated_at else None,
    }


class BoardService:
    """보드 CRUD. 보드 권한은 보드가 속한 프로젝트의 역할로 결정됩니다."""

    def __init__(self, board_repo: IBoardRepository, column_repo: IColumnRepository,
                 issue_repo: IIssueRepository, guard: AccessGuard):
        self.board_repo = board_repo
        self.column_repo = column_repo
        self.issue_repo = issue_repo
        self.guard = guard

    def list_boards(self, user_id: int, project_id: int, page=1, limit=10, search: Optional[str] = None) -> Dict[str, Any]:
        ensure_authorized(self.guard.authorize_project(user_id, project_id, Operation.BOARD_READ))
        page, limit, offset = page_window(page, limit)
        boards, total = self.board_repo.list_by_project(project_id, offset, limit, clean_search(search))
        return {"boards": [serialize_board(b) for b in boards], "pagination": pagination_info(page, limit, total)}

    def get_board(self, user_id: int, board_id: int) -> Dict[str, Any]:
        """보드와 순서대로 정렬된 컬럼(이슈 개수 포함)을 조회합니다."""
        authorized = ensure_authorized(self.guard.authorize_board(user_id, board_id, Operation.BOARD_READ))
        board, project = authorized.resource
        data = serialize_board(board)
        data["project"] = {"id": project.id, "name": project.name}
        data["columns"] = [
            {"id": c.id, "name": c.name, "order_index": c.order_index, "issue_count": self.issue_repo.count_by_column(c.id)}
            for c in self.column_repo.list_by_board(board_id)
        ]
        data["user_role"] = authorized.role.value
        return data

    def create_board(self, user_id: int, project_id: int, name: str, description: Optional[str] = None) -> Dict[str, Any]:
        """
        프로젝트에 보드를 만듭니다. DEVELOPER 이상이 가능합니다.

        Raises:
            NotAMemberError / InsufficientPermissionError: 권한이 없을 때.
            ValueError: 이름이 비었거나 너무 길 때.
        """
        ensure_authorized(self.guard.authorize_project(user_id, project_id, Operation.BOARD_CREATE))
        board = models.Board(
            name=validate_text(name, "Board name", 100),
            description=validate_text(description, "Board description", 500, required=False),
            project_id=project_id,
        )
        return serialize_board(self.board_repo.create(board))

    def update_board(self, user_id: int, board_id: int, name: Optional[str] = None,
                     description: Optional[str] = None) -> Dict[str, Any]:
        authorized = ensure_authorized(self.guard.authorize_board(user_id, board_id, Operation.BOARD_UPDATE))
        board = authorized.resource.board
        if name is not None:
            board.name = validate_text(name, "Board name", 100)
        if description is not None:
            board.description = validate_text(description, "Board description", 500, required=False)
        return serialize_board(self.board_repo.save(board))

    def delete_board(self, user_id: int, board_id: int) -> bool:
        authorized = ensure_authorized(self.guard.authorize_board(user_id, board_id, Operation.BOARD_DELETE))
        self.board_repo.delete(authorized.resource.board)
        return True

    def get_board_stats(self, user_id: int, board_id: int) -> Dict[str, Any]:
        authorized = ensure_authorized(self.guard.authorize_board(user_id, board_id, Operation.BOARD_READ))
        board = authorized.resource.board
        return {
            "total_columns": len(self.column_repo.list_by_board(board_id)),
            "total_issues": self.issue_repo.count_by_board(board_id),
            "board_created": board.created_at.isoformat() if board.created_at else None,
            "last_updated": board.updated_at.isoformat() if board.updated_at else None,
        }
