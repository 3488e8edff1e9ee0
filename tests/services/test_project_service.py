# tests/services/test_project_service.py
import pytest
from unittest.mock import MagicMock, ANY

from src.database import models
from src.rbac.guard import AccessGuard, Authorized, Denied, DenialReason
from src.rbac.permissions import Operation
from src.rbac.resolver import RoleResolver
from src.rbac.roles import Role
from src.repositories.interfaces import IProjectRepository, IBoardRepository, IColumnRepository
from src.services.project_service import ProjectService, DEFAULT_COLUMN_NAMES
from src.services.exceptions import *

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def mock_project_repo() -> MagicMock:
    return MagicMock(spec=IProjectRepository)

@pytest.fixture
def mock_board_repo() -> MagicMock:
    return MagicMock(spec=IBoardRepository)

@pytest.fixture
def mock_column_repo() -> MagicMock:
    return MagicMock(spec=IColumnRepository)

@pytest.fixture
def mock_resolver() -> MagicMock:
    return MagicMock(spec=RoleResolver)

@pytest.fixture
def mock_guard() -> MagicMock:
    guard = MagicMock(spec=AccessGuard)
    guard.authorize_project.return_value = Authorized(Role.OWNER, 10)
    return guard

@pytest.fixture
def project_service(mock_project_repo, mock_board_repo, mock_column_repo, mock_resolver, mock_guard) -> ProjectService:
    """테스트에 사용될 ProjectService 인스턴스를 생성하고, 의존성을 주입합니다."""
    return ProjectService(mock_project_repo, mock_board_repo, mock_column_repo, mock_resolver, mock_guard)

# ===================================================================
#  프로젝트 생성 / 조회 테스트
# ===================================================================
class TestProjectCrud:
    def test_create_project_sets_owner(self, project_service: ProjectService, mock_project_repo: MagicMock, mock_guard: MagicMock):
        """프로젝트를 만든 사용자가 소유자가 되는지 테스트합니다."""
        # === Arrange ===
        mock_project_repo.create.side_effect = lambda project: models.Project(
            id=10, name=project.name, description=project.description, owner_id=project.owner_id
        )

        # === Act ===
        project = project_service.create_project(1, "  Tracker  ", "desc")

        # === Assert ===
        assert project["id"] == 10
        assert project["name"] == "Tracker"
        assert project["owner_id"] == 1
        mock_project_repo.create.assert_called_once_with(ANY)
        # 생성은 역할 검사 없이 누구나 가능합니다.
        mock_guard.authorize_project.assert_not_called()

    def test_create_project_requires_name(self, project_service: ProjectService, mock_project_repo: MagicMock):
        with pytest.raises(ValueError):
            project_service.create_project(1, "   ")
        mock_project_repo.create.assert_not_called()

    def test_list_projects_includes_user_role(self, project_service: ProjectService, mock_project_repo: MagicMock, mock_resolver: MagicMock):
        # === Arrange ===
        mock_project_repo.list_for_user.return_value = ([models.Project(id=10, name="A", owner_id=1),
                                                          models.Project(id=11, name="B", owner_id=7)], 2)
        mock_resolver.resolve_role.side_effect = lambda user_id, project_id: Role.OWNER if project_id == 10 else Role.VIEWER

        # === Act ===
        result = project_service.list_projects(1, page=1, limit=10, search=" a ")

        # === Assert ===
        assert [p["user_role"] for p in result["projects"]] == ["OWNER", "VIEWER"]
        assert result["pagination"] == {"page": 1, "limit": 10, "total": 2, "pages": 1}
        mock_project_repo.list_for_user.assert_called_once_with(1, 0, 10, "a")

    def test_list_projects_rejects_bad_page(self, project_service: ProjectService):
        with pytest.raises(ValueError):
            project_service.list_projects(1, page=0)

    def test_get_project_denied_for_stranger(self, project_service: ProjectService, mock_guard: MagicMock, mock_project_repo: MagicMock):
        """멤버가 아니면 프로젝트를 조회하기 전에 거부되어야 합니다."""
        mock_guard.authorize_project.return_value = Denied(DenialReason.NOT_A_MEMBER, Operation.PROJECT_READ)

        with pytest.raises(NotAMemberError):
            project_service.get_project(9, 10)
        mock_project_repo.find_by_id.assert_not_called()

    def test_update_project_by_viewer_is_denied(self, project_service: ProjectService, mock_guard: MagicMock, mock_project_repo: MagicMock):
        mock_guard.authorize_project.return_value = Denied(DenialReason.INSUFFICIENT_PERMISSION, Operation.PROJECT_UPDATE)

        with pytest.raises(InsufficientPermissionError):
            project_service.update_project(2, 10, name="New")
        mock_project_repo.save.assert_not_called()

    def test_update_project_success(self, project_service: ProjectService, mock_project_repo: MagicMock, mock_guard: MagicMock):
        # === Arrange ===
        project = models.Project(id=10, name="Old", owner_id=1)
        mock_project_repo.find_by_id.return_value = project
        mock_project_repo.save.side_effect = lambda p: p

        # === Act ===
        result = project_service.update_project(1, 10, name="New")

        # === Assert ===
        assert result["name"] == "New"
        mock_guard.authorize_project.assert_called_once_with(1, 10, Operation.PROJECT_UPDATE)

    def test_delete_project_requires_owner(self, project_service: ProjectService, mock_project_repo: MagicMock, mock_guard: MagicMock):
        # === Arrange ===
        project = models.Project(id=10, name="P", owner_id=1)
        mock_project_repo.find_by_id.return_value = project

        # === Act ===
        assert project_service.delete_project(1, 10) is True

        # === Assert ===
        mock_guard.authorize_project.assert_called_once_with(1, 10, Operation.PROJECT_DELETE)
        mock_project_repo.delete.assert_called_once_with(project)

# ===================================================================
#  기본 보드 구성(Setup Default Board) 테스트
# ===================================================================
class TestSetupDefaultBoard:
    def test_creates_board_with_three_columns(self, project_service: ProjectService, mock_board_repo: MagicMock):
        """기본 보드와 세 컬럼이 한 번의 리포지토리 호출로 만들어지는지 테스트합니다."""
        # === Arrange ===
        mock_board_repo.count_by_project.return_value = 0

        def create_with_columns(board, column_names):
            board.id = 20
            for index, name in enumerate(column_names):
                board.columns.append(models.BoardColumn(id=30 + index, name=name, order_index=index))
            return board
        mock_board_repo.create_with_columns.side_effect = create_with_columns

        # === Act ===
        result = project_service.setup_default_board(1, 10)

        # === Assert ===
        assert result["board"]["id"] == 20
        assert [c["name"] for c in result["columns"]] == list(DEFAULT_COLUMN_NAMES)
        assert [c["order_index"] for c in result["columns"]] == [0, 1, 2]
        mock_board_repo.create_with_columns.assert_called_once_with(ANY, DEFAULT_COLUMN_NAMES)

    def test_fails_when_boards_exist(self, project_service: ProjectService, mock_board_repo: MagicMock):
        mock_board_repo.count_by_project.return_value = 1

        with pytest.raises(ProjectAlreadyHasBoardsError):
            project_service.setup_default_board(1, 10)
        mock_board_repo.create_with_columns.assert_not_called()
