import enum
import logging
from dataclasses import dataclass
from typing import Any, Union

from src.rbac.permissions import DEFAULT_PERMISSIONS, Operation, PermissionTable
from src.rbac.resolver import NoAccess, RoleResolver
from src.rbac.roles import Role
from src.repositories.interfaces import IBoardRepository, IColumnRepository, IIssueRepository
from src.services.exceptions import (
    BoardNotFoundError, ColumnNotFoundError, IssueNotFoundError,
    InsufficientPermissionError, NotAMemberError
)

logger = logging.getLogger(__name__)


class DenialReason(str, enum.Enum):
    NOT_A_MEMBER = "NOT_A_MEMBER"
    INSUFFICIENT_PERMISSION = "INSUFFICIENT_PERMISSION"


@dataclass(frozen=True)
class Authorized:
    """
    인가 성공. role은 핸들러에서 역할별 동작을 나눌 때 사용합니다.
    resource에는 경로를 따라 조회한 엔티티 체인(BoardChain 등)이 담깁니다.
    """
    role: Role
    project_id: int
    resource: Any = None


@dataclass(frozen=True)
class Denied:
    reason: DenialReason
    operation: Operation


@dataclass(frozen=True)
class NotFound:
    """보드, 컬럼, 이슈 자체가 존재하지 않을 때. 403이 아니라 404로 응답합니다."""
    resource: str
    resource_id: int


AuthResult = Union[Authorized, Denied, NotFound]

_NOT_FOUND_ERRORS = {
    "board": BoardNotFoundError,
    "column": ColumnNotFoundError,
    "issue": IssueNotFoundError,
}


class AccessGuard:
    """
    프로젝트/보드/컬럼/이슈 ID와 작업 이름으로 현재 사용자를 인가합니다.

    하위 엔티티는 항상 스스로 소유 체인을 따라 프로젝트까지 올라갑니다.
    (이슈 -> 컬럼 -> 보드 -> 프로젝트) 호출자가 넘긴 프로젝트 ID는 믿지 않습니다.
    조회만 수행하며 상태를 변경하지 않습니다.
    """

    def __init__(
        self,
        resolver: RoleResolver,
        board_repo: IBoardRepository,
        column_repo: IColumnRepository,
        issue_repo: IIssueRepository,
        permissions: PermissionTable = DEFAULT_PERMISSIONS,
    ):
        self.resolver = resolver
        self.board_repo = board_repo
        self.column_repo = column_repo
        self.issue_repo = issue_repo
        self.permissions = permissions

    def authorize_project(self, user_id: int, project_id: int, operation: Operation) -> AuthResult:
        # 존재하지 않는 프로젝트도 NOT_A_MEMBER로 응답해 존재 여부를 숨깁니다.
        return self._decide(user_id, project_id, operation)

    def authorize_board(self, user_id: int, board_id: int, operation: Operation) -> AuthResult:
        chain = self.board_repo.find_with_project(board_id)
        if chain is None:
            return NotFound("board", board_id)
        return self._decide(user_id, chain.project.id, operation, chain)

    def authorize_column(self, user_id: int, column_id: int, operation: Operation) -> AuthResult:
        chain = self.column_repo.find_with_board(column_id)
        if chain is None:
            return NotFound("column", column_id)
        return self._decide(user_id, chain.project.id, operation, chain)

    def authorize_issue(self, user_id: int, issue_id: int, operation: Operation) -> AuthResult:
        chain = self.issue_repo.find_with_chain(issue_id)
        if chain is None:
            return NotFound("issue", issue_id)
        return self._decide(user_id, chain.project.id, operation, chain)

    def _decide(self, user_id: int, project_id: int, operation: Operation, resource: Any = None) -> AuthResult:
        access = self.resolver.resolve_access(user_id, project_id)
        if isinstance(access, NoAccess):
            logger.info("User %s denied %s on project %s: not a member", user_id, operation, project_id)
            return Denied(DenialReason.NOT_A_MEMBER, operation)

        if not self.permissions.is_allowed(access.role, operation):
            logger.info("User %s (%s) denied %s on project %s", user_id, access.role.value, operation, project_id)
            return Denied(DenialReason.INSUFFICIENT_PERMISSION, operation)

        return Authorized(access.role, project_id, resource)


def ensure_authorized(result: AuthResult) -> Authorized:
    """
    AuthResult를 서비스 계층의 예외로 변환합니다.

    Returns:
        인가에 성공한 경우 Authorized 그대로.

    Raises:
        BoardNotFoundError / ColumnNotFoundError / IssueNotFoundError: 대상 엔티티가 없을 때.
        NotAMemberError: 프로젝트에 대한 역할이 없을 때.
        InsufficientPermissionError: 역할은 있지만 작업 권한이 없을 때.
    """
    if isinstance(result, Authorized):
        return result
    if isinstance(result, NotFound):
        error = _NOT_FOUND_ERRORS.get(result.resource, LookupError)
        raise error(f"{result.resource.capitalize()} with id '{result.resource_id}' not found.")
    if result.reason is DenialReason.NOT_A_MEMBER:
        raise NotAMemberError()
    raise InsufficientPermissionError(result.operation)
