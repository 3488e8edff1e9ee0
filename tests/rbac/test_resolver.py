# tests/rbac/test_resolver.py
import pytest
from unittest.mock import MagicMock

from src.database import models
from src.rbac.resolver import RoleResolver, OwnerAccess, MemberAccess, NoAccess
from src.rbac.roles import Role
from src.repositories.interfaces import IProjectRepository
from src.services.exceptions import InvariantViolationError

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def mock_project_repo() -> MagicMock:
    """IProjectRepository에 대한 모의 객체를 생성합니다."""
    return MagicMock(spec=IProjectRepository)

@pytest.fixture
def resolver(mock_project_repo: MagicMock) -> RoleResolver:
    return RoleResolver(mock_project_repo)

# ===================================================================
#  역할 결정(Role Resolution) 테스트
# ===================================================================
class TestResolveAccess:
    def test_owner_wins_without_membership_lookup(self, resolver: RoleResolver, mock_project_repo: MagicMock):
        """소유자이면 멤버십을 조회하지 않고 OWNER가 되는지 테스트합니다."""
        # === Arrange ===
        mock_project_repo.find_owned_by.return_value = models.Project(id=10, owner_id=1)

        # === Act ===
        access = resolver.resolve_access(1, 10)

        # === Assert ===
        assert isinstance(access, OwnerAccess)
        assert access.role is Role.OWNER
        mock_project_repo.find_owned_by.assert_called_once_with(1, 10)
        mock_project_repo.find_membership.assert_not_called()

    @pytest.mark.parametrize("role", [Role.VIEWER, Role.DEVELOPER, Role.ADMIN])
    def test_member_role_comes_from_membership_row(self, resolver: RoleResolver, mock_project_repo: MagicMock, role: Role):
        # === Arrange ===
        mock_project_repo.find_owned_by.return_value = None
        mock_project_repo.find_membership.return_value = models.ProjectMember(project_id=10, user_id=2, role=role)

        # === Act ===
        access = resolver.resolve_access(2, 10)

        # === Assert ===
        assert access == MemberAccess(role)
        assert resolver.resolve_role(2, 10) is role
        mock_project_repo.find_membership.assert_called_with(10, 2)

    def test_non_member_has_no_role(self, resolver: RoleResolver, mock_project_repo: MagicMock):
        """소유자도 멤버도 아니면 역할이 없어야 합니다. (프로젝트가 없는 경우 포함)"""
        # === Arrange ===
        mock_project_repo.find_owned_by.return_value = None
        mock_project_repo.find_membership.return_value = None

        # === Act & Assert ===
        assert isinstance(resolver.resolve_access(3, 999), NoAccess)
        assert resolver.resolve_role(3, 999) is None

    def test_owner_role_in_membership_row_is_an_invariant_violation(self, resolver: RoleResolver, mock_project_repo: MagicMock):
        """멤버십 행에 OWNER가 저장되어 있으면 조용히 넘어가지 않고 예외가 발생해야 합니다."""
        # === Arrange ===
        mock_project_repo.find_owned_by.return_value = None
        mock_project_repo.find_membership.return_value = models.ProjectMember(project_id=10, user_id=4, role=Role.OWNER)

        # === Act & Assert ===
        with pytest.raises(InvariantViolationError):
            resolver.resolve_access(4, 10)

    def test_member_access_rejects_owner_role(self):
        with pytest.raises(InvariantViolationError):
            MemberAccess(Role.OWNER)
