import logging
from dataclasses import dataclass
from typing import Optional, Union

from src.rbac.roles import Role, MEMBER_ROLES
from src.repositories.interfaces import IProjectRepository
from src.services.exceptions import InvariantViolationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnerAccess:
    """Project.owner로 결정된 접근 권한."""

    @property
    def role(self) -> Role:
        return Role.OWNER


@dataclass(frozen=True)
class MemberAccess:
    """멤버십 행으로 결정된 접근 권한. OWNER는 멤버십으로 표현될 수 없습니다."""
    role: Role

    def __post_init__(self):
        if self.role not in MEMBER_ROLES:
            raise InvariantViolationError(f"Membership row cannot carry role '{self.role}'.")


@dataclass(frozen=True)
class NoAccess:
    """소유자도 멤버도 아닌 경우. 프로젝트가 없을 때도 이 값이 됩니다."""

    @property
    def role(self) -> None:
        return None


ProjectAccess = Union[OwnerAccess, MemberAccess, NoAccess]


class RoleResolver:
    """사용자의 프로젝트 내 실제 역할을 소유권 -> 멤버십 순서로 결정합니다."""

    def __init__(self, project_repo: IProjectRepository):
        self.project_repo = project_repo

    def resolve_access(self, user_id: int, project_id: int) -> ProjectAccess:
        """
        사용자의 프로젝트 접근 권한을 계산합니다.

        소유자이면 멤버십을 조회하지 않고 바로 OwnerAccess를 반환합니다.
        프로젝트가 존재하지 않아도 예외 없이 NoAccess를 반환합니다.

        Raises:
            InvariantViolationError: 멤버십 행에 OWNER 역할이 저장되어 있을 때.
        """
        if self.project_repo.find_owned_by(user_id, project_id):
            return OwnerAccess()

        membership = self.project_repo.find_membership(project_id, user_id)
        if membership is None:
            return NoAccess()

        try:
            return MemberAccess(Role(membership.role))
        except InvariantViolationError:
            logger.error(
                "Membership of user %s in project %s stores role %s", user_id, project_id, membership.role
            )
            raise

    def resolve_role(self, user_id: int, project_id: int) -> Optional[Role]:
        return self.resolve_access(user_id, project_id).role
