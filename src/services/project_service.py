import logging
from typing import Dict, Any, Optional

from src.database import models
from src.rbac.guard import AccessGuard, ensure_authorized
from src.rbac.permissions import Operation
from src.rbac.resolver import RoleResolver
from src.repositories.interfaces import IProjectRepository, IBoardRepository, IColumnRepository
from src.services.exceptions import ProjectNotFoundError, ProjectAlreadyHasBoardsError
from src.utils.validators import page_window, pagination_info, clean_search, validate_text

logger = logging.getLogger(__name__)

DEFAULT_BOARD_NAME = "Main Board"
DEFAULT_BOARD_DESCRIPTION = "Default board for project tasks"
DEFAULT_COLUMN_NAMES = ("To Do", "In Progress", "Done")


def _isoformat(value):
    return value.isoformat() if value else None


def serialize_project(project: models.Project) -> Dict[str, Any]:
    data = {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "owner_id": project.owner_id,
        "created_at": _isoformat(project.created_at),
        "updated_at": _isoformat(project.updated_at),
    }
    if project.owner is not None:
        data["owner"] = {"id": project.owner.id, "email": project.owner.email, "username": project.owner.username}
    return data


class ProjectService:
    """프로젝트 생성/조회/수정/삭제와 기본 보드 구성을 담당합니다."""

    def __init__(self, project_repo: IProjectRepository, board_repo: IBoardRepository,
                 column_repo: IColumnRepository, resolver: RoleResolver, guard: AccessGuard):
        self.project_repo = project_repo
        self.board_repo = board_repo
        self.column_repo = column_repo
        self.resolver = resolver
        self.guard = guard

    def create_project(self, user_id: int, name: str, description: Optional[str] = None) -> Dict[str, Any]:
        """
        새 프로젝트를 생성합니다. 요청한 사용자가 소유자가 됩니다.

        Raises:
            ValueError: 이름이 비었거나 100자, 설명이 500자를 넘을 때.
        """
        name = validate_text(name, "Project name", 100)
        description = validate_text(description, "Project description", 500, required=False)
        project = self.project_repo.create(models.Project(name=name, description=description, owner_id=user_id))
        logger.info("User %s created project %s", user_id, project.id)
        return serialize_project(project)

    def list_projects(self, user_id: int, page=1, limit=10, search: Optional[str] = None) -> Dict[str, Any]:
        """사용자가 소유하거나 멤버인 프로젝트를 각 프로젝트에서의 역할과 함께 조회합니다."""
        page, limit, offset = page_window(page, limit)
        projects, total = self.project_repo.list_for_user(user_id, offset, limit, clean_search(search))
        items = []
        for project in projects:
            data = serialize_project(project)
            role = self.resolver.resolve_role(user_id, project.id)
            data["user_role"] = role.value if role else None
            items.append(data)
        return {"projects": items, "pagination": pagination_info(page, limit, total)}

    def get_project(self, user_id: int, project_id: int) -> Dict[str, Any]:
        """
        프로젝트와 보드 목록을 조회합니다.

        Raises:
            NotAMemberError: 프로젝트 역할이 없을 때. (프로젝트가 없는 경우 포함)
        """
        authorized = ensure_authorized(self.guard.authorize_project(user_id, project_id, Operation.PROJECT_READ))
        project = self._get(project_id)
        data = serialize_project(project)
        data["boards"] = [
            {"id": board.id, "name": board.name, "description": board.description,
             "column_count": len(board.columns), "created_at": _isoformat(board.created_at)}
            for board in project.boards
        ]
        data["user_role"] = authorized.role.value
        return data

    def update_project(self, user_id: int, project_id: int, name: Optional[str] = None,
                       description: Optional[str] = None) -> Dict[str, Any]:
        ensure_authorized(self.guard.authorize_project(user_id, project_id, Operation.PROJECT_UPDATE))
        project = self._get(project_id)
        if name is not None:
            project.name = validate_text(name, "Project name", 100)
        if description is not None:
            project.description = validate_text(description, "Project description", 500, required=False)
        return serialize_project(self.project_repo.save(project))

    def delete_project(self, user_id: int, project_id: int) -> bool:
        """프로젝트와 그 아래의 보드, 컬럼, 이슈, 멤버십을 모두 삭제합니다. 소유자만 가능합니다."""
        ensure_authorized(self.guard.authorize_project(user_id, project_id, Operation.PROJECT_DELETE))
        project = self._get(project_id)
        self.project_repo.delete(project)
        logger.info("User %s deleted project %s", user_id, project_id)
        return True

    def get_project_stats(self, user_id: int, project_id: int) -> Dict[str, Any]:
        ensure_authorized(self.guard.authorize_project(user_id, project_id, Operation.PROJECT_READ))
        project = self._get(project_id)
        return {
            "total_boards": self.board_repo.count_by_project(project_id),
            "total_columns": self.column_repo.count_by_project(project_id),
            "project_created": _isoformat(project.created_at),
            "last_updated": _isoformat(project.updated_at),
        }

    def setup_default_board(self, user_id: int, project_id: int) -> Dict[str, Any]:
        """
        보드가 없는 프로젝트에 기본 보드와 'To Do', 'In Progress', 'Done' 컬럼을 한 번에 만듭니다.

        Raises:
            ProjectAlreadyHasBoardsError: 프로젝트에 이미 보드가 있을 때.
        """
        ensure_authorized(self.guard.authorize_project(user_id, project_id, Operation.PROJECT_UPDATE))
        if self.board_repo.count_by_project(project_id) > 0:
            raise ProjectAlreadyHasBoardsError("Project already has boards.")

        board = self.board_repo.create_with_columns(
            models.Board(name=DEFAULT_BOARD_NAME, description=DEFAULT_BOARD_DESCRIPTION, project_id=project_id),
            DEFAULT_COLUMN_NAMES,
        )
        return {
            "board": {"id": board.id, "name": board.name, "description": board.description, "project_id": board.project_id},
            "columns": [{"id": c.id, "name": c.name, "order_index": c.order_index} for c in board.columns],
        }

    def _get(self, project_id: int) -> models.Project:
        project = self.project_repo.find_by_id(project_id)
        if not project:
            raise ProjectNotFoundError(f"Project with id '{project_id}' not found.")
        return project
