# tests/services/test_issue_service.py
import pytest
from unittest.mock import MagicMock

from src.database import models
from src.rbac.guard import AccessGuard, Authorized, Denied, DenialReason, NotFound
from src.rbac.permissions import DEFAULT_PERMISSIONS, Operation, PermissionTable
from src.rbac.roles import Role
from src.repositories.interfaces import IIssueRepository, IProjectRepository, IUserRepository, IssueChain
from src.services.issue_service import IssueService
from src.services.exceptions import *

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def issue_chain() -> IssueChain:
    project = models.Project(id=10, name="P", owner_id=1)
    board = models.Board(id=20, name="Main", project_id=10)
    column = models.BoardColumn(id=30, name="To Do", board_id=20, order_index=0)
    issue = models.Issue(id=40, title="Bug", column_id=30, reporter_id=1,
                         type=models.IssueType.BUG, priority=models.IssuePriority.HIGH, status=models.IssueStatus.TODO)
    return IssueChain(issue, column, board, project)

@pytest.fixture
def mock_issue_repo() -> MagicMock:
    repo = MagicMock(spec=IIssueRepository)
    repo.create.side_effect = lambda issue: issue
    repo.save.side_effect = lambda issue: issue
    return repo

@pytest.fixture
def mock_user_repo() -> MagicMock:
    return MagicMock(spec=IUserRepository)

@pytest.fixture
def mock_project_repo() -> MagicMock:
    return MagicMock(spec=IProjectRepository)

@pytest.fixture
def mock_guard(issue_chain: IssueChain) -> MagicMock:
    """DEVELOPER로 인가하는 AccessGuard 모의 객체. 권한표는 기본값을 사용합니다."""
    guard = MagicMock(spec=AccessGuard)
    guard.permissions = DEFAULT_PERMISSIONS
    guard.authorize_column.return_value = Authorized(Role.DEVELOPER, 10)
    guard.authorize_issue.return_value = Authorized(Role.DEVELOPER, 10, issue_chain)
    return guard

@pytest.fixture
def issue_service(mock_issue_repo, mock_user_repo, mock_project_repo, mock_guard) -> IssueService:
    return IssueService(mock_issue_repo, mock_user_repo, mock_project_repo, mock_guard)

# ===================================================================
#  이슈 생성 / 수정 테스트
# ===================================================================
class TestCreateAndUpdate:
    def test_create_issue_sets_reporter_and_defaults(self, issue_service: IssueService, mock_guard: MagicMock):
        """요청자가 reporter가 되고 상태는 TODO로 시작하는지 테스트합니다."""
        # === Act ===
        issue = issue_service.create_issue(3, 30, "Login fails", priority="urgent")

        # === Assert ===
        assert issue["status"] == "TODO"
        assert issue["type"] == "TASK"
        assert issue["priority"] == "URGENT"
        assert issue["column_id"] == 30
        mock_guard.authorize_column.assert_called_once_with(3, 30, Operation.ISSUE_CREATE)

    def test_create_issue_with_any_existing_assignee(self, issue_service: IssueService, mock_user_repo: MagicMock):
        """담당자는 프로젝트 멤버가 아니어도 존재하는 사용자이기만 하면 지정할 수 있습니다."""
        mock_user_repo.find_by_id.return_value = models.User(id=99, username="outsider")

        issue = issue_service.create_issue(3, 30, "Task", assignee_id=99)

        mock_user_repo.find_by_id.assert_called_once_with(99)
        assert issue["title"] == "Task"

    def test_create_issue_with_unknown_assignee_fails(self, issue_service: IssueService, mock_user_repo: MagicMock, mock_issue_repo: MagicMock):
        mock_user_repo.find_by_id.return_value = None

        with pytest.raises(AssigneeNotFoundError):
            issue_service.create_issue(3, 30, "Task", assignee_id=99)
        mock_issue_repo.create.assert_not_called()

    def test_create_issue_rejects_unknown_type(self, issue_service: IssueService):
        with pytest.raises(ValueError, match="Type must be one of"):
            issue_service.create_issue(3, 30, "Task", type="CHORE")

    def test_viewer_cannot_create_issue(self, issue_service: IssueService, mock_guard: MagicMock, mock_issue_repo: MagicMock):
        mock_guard.authorize_column.return_value = Denied(DenialReason.INSUFFICIENT_PERMISSION, Operation.ISSUE_CREATE)

        with pytest.raises(InsufficientPermissionError):
            issue_service.create_issue(2, 30, "Task")
        mock_issue_repo.create.assert_not_called()

    def test_update_issue_keeps_unset_fields(self, issue_service: IssueService, issue_chain: IssueChain):
        # === Act ===
        issue = issue_service.update_issue(3, 40, status="in_progress")

        # === Assert ===
        assert issue["status"] == "IN_PROGRESS"
        assert issue["title"] == "Bug"
        assert issue_chain.issue.assignee_id is None

    def test_update_issue_can_clear_assignee(self, issue_service: IssueService, issue_chain: IssueChain, mock_user_repo: MagicMock):
        issue_chain.issue.assignee_id = 5

        issue_service.update_issue(3, 40, assignee_id=None)

        assert issue_chain.issue.assignee_id is None
        mock_user_repo.find_by_id.assert_not_called()

# ===================================================================
#  담당자 지정 권한(ISSUE_ASSIGN) 테스트
# ===================================================================
class TestAssignPermission:
    @pytest.fixture(autouse=True)
    def without_assign(self, mock_guard: MagicMock, mock_user_repo: MagicMock):
        """DEVELOPER가 이슈를 만들고 고칠 수는 있지만 담당자는 지정할 수 없는 권한표."""
        mock_guard.permissions = PermissionTable({
            Operation.ISSUE_CREATE: [Role.DEVELOPER],
            Operation.ISSUE_UPDATE: [Role.DEVELOPER],
        })
        mock_user_repo.find_by_id.return_value = models.User(id=7, username="dev")

    def test_create_with_assignee_requires_assign(self, issue_service: IssueService, mock_issue_repo: MagicMock):
        with pytest.raises(InsufficientPermissionError):
            issue_service.create_issue(3, 30, "Task", assignee_id=7)
        mock_issue_repo.create.assert_not_called()

    def test_create_without_assignee_is_allowed(self, issue_service: IssueService, mock_issue_repo: MagicMock):
        issue = issue_service.create_issue(3, 30, "Task")

        assert issue["assignee"] is None
        assert mock_issue_repo.create.call_args.args[0].assignee_id is None

    def test_changing_assignee_requires_assign(self, issue_service: IssueService, issue_chain: IssueChain, mock_issue_repo: MagicMock):
        # === Act & Assert ===
        with pytest.raises(InsufficientPermissionError):
            issue_service.update_issue(3, 40, assignee_id=7)
        assert issue_chain.issue.assignee_id is None
        mock_issue_repo.save.assert_not_called()

    def test_update_without_assignee_change_is_allowed(self, issue_service: IssueService, issue_chain: IssueChain):
        # === Arrange ===
        issue_chain.issue.assignee_id = 7

        # === Act ===
        issue_service.update_issue(3, 40, title="Renamed")
        issue = issue_service.update_issue(3, 40, assignee_id=7)

        # === Assert ===
        assert issue["title"] == "Renamed"
        assert issue_chain.issue.assignee_id == 7

# ===================================================================
#  이동 / 담당자 지정 / 통계 테스트
# ===================================================================
class TestMoveAssignStats:
    def test_move_issue_checks_both_columns(self, issue_service: IssueService, mock_guard: MagicMock, issue_chain: IssueChain):
        """이동할 이슈와 대상 컬럼 양쪽에서 ISSUE_MOVE 권한을 검사하는지 테스트합니다."""
        # === Act ===
        issue = issue_service.move_issue(3, 40, 31)

        # === Assert ===
        assert issue["column_id"] == 31
        mock_guard.authorize_issue.assert_called_once_with(3, 40, Operation.ISSUE_MOVE)
        mock_guard.authorize_column.assert_called_once_with(3, 31, Operation.ISSUE_MOVE)

    def test_move_to_missing_column_fails(self, issue_service: IssueService, mock_guard: MagicMock, mock_issue_repo: MagicMock):
        mock_guard.authorize_column.return_value = NotFound("column", 77)

        with pytest.raises(ColumnNotFoundError, match="Target column"):
            issue_service.move_issue(3, 40, 77)
        mock_issue_repo.save.assert_not_called()

    def test_move_by_stranger_is_denied(self, issue_service: IssueService, mock_guard: MagicMock):
        mock_guard.authorize_issue.return_value = Denied(DenialReason.NOT_A_MEMBER, Operation.ISSUE_MOVE)

        with pytest.raises(NotAMemberError):
            issue_service.move_issue(8, 40, 31)
        mock_guard.authorize_column.assert_not_called()

    def test_assign_issue(self, issue_service: IssueService, mock_user_repo: MagicMock, mock_guard: MagicMock, issue_chain: IssueChain):
        mock_user_repo.find_by_id.return_value = models.User(id=5, username="dev")

        issue_service.assign_issue(3, 40, 5)

        assert issue_chain.issue.assignee_id == 5
        mock_guard.authorize_issue.assert_called_once_with(3, 40, Operation.ISSUE_ASSIGN)

    def test_stats_without_projects(self, issue_service: IssueService, mock_project_repo: MagicMock, mock_issue_repo: MagicMock):
        mock_project_repo.list_accessible_ids.return_value = []

        stats = issue_service.get_issue_stats(9)

        assert stats == {"total": 0, "by_status": {}, "by_type": {}, "by_priority": {}}
        mock_issue_repo.stats_for_projects.assert_not_called()
