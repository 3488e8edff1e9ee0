import enum
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Optional, Set, Union

from src.rbac.roles import Role, parse_role


class Operation(str, enum.Enum):
    """역할 검사가 필요한 작업 이름."""
    PROJECT_READ = "PROJECT_READ"
    PROJECT_UPDATE = "PROJECT_UPDATE"
    PROJECT_DELETE = "PROJECT_DELETE"
    PROJECT_MANAGE_MEMBERS = "PROJECT_MANAGE_MEMBERS"
    PROJECT_TRANSFER_OWNERSHIP = "PROJECT_TRANSFER_OWNERSHIP"

    BOARD_READ = "BOARD_READ"
    BOARD_CREATE = "BOARD_CREATE"
    BOARD_UPDATE = "BOARD_UPDATE"
    BOARD_DELETE = "BOARD_DELETE"

    ISSUE_READ = "ISSUE_READ"
    ISSUE_CREATE = "ISSUE_CREATE"
    ISSUE_UPDATE = "ISSUE_UPDATE"
    ISSUE_DELETE = "ISSUE_DELETE"
    ISSUE_ASSIGN = "ISSUE_ASSIGN"
    ISSUE_MOVE = "ISSUE_MOVE"


class PermissionTable:
    """
    작업별로 허용된 역할 집합을 담는 읽기 전용 테이블입니다.

    최소 역할 하나로 표현하지 않고 작업마다 허용 목록을 따로 둡니다.
    생성 시점에 모든 역할 이름을 검증하므로 오타가 있으면 즉시 UnknownRoleError가 발생합니다.
    """

    def __init__(self, grants: Mapping[Union[Operation, str], Iterable[Union[Role, str]]]):
        self._grants = MappingProxyType({
            Operation(operation): frozenset(parse_role(role) for role in roles)
            for operation, roles in grants.items()
        })

    def is_allowed(self, role: Optional[Role], operation: Union[Operation, str]) -> bool:
        """role이 operation을 수행할 수 있는지 확인합니다. 테이블에 없는 작업은 항상 거부합니다."""
        if role is None:
            return False
        try:
            operation = Operation(operation)
        except ValueError:
            return False
        return role in self._grants.get(operation, frozenset())

    def allowed_roles(self, operation: Union[Operation, str]) -> FrozenSet[Role]:
        try:
            return self._grants.get(Operation(operation), frozenset())
        except ValueError:
            return frozenset()

    def missing_operations(self) -> Set[Operation]:
        """테이블에 등록되지 않은 Operation 목록. 비어 있어야 완전한 테이블입니다."""
        return set(Operation) - set(self._grants)


DEFAULT_PERMISSIONS = PermissionTable({
    # Project
    Operation.PROJECT_READ: [Role.VIEWER, Role.DEVELOPER, Role.ADMIN, Role.OWNER],
    Operation.PROJECT_UPDATE: [Role.ADMIN, Role.OWNER],
    Operation.PROJECT_DELETE: [Role.OWNER],
    Operation.PROJECT_MANAGE_MEMBERS: [Role.ADMIN, Role.OWNER],
    Operation.PROJECT_TRANSFER_OWNERSHIP: [Role.OWNER],

    # Board
    Operation.BOARD_READ: [Role.VIEWER, Role.DEVELOPER, Role.ADMIN, Role.OWNER],
    Operation.BOARD_CREATE: [Role.DEVELOPER, Role.ADMIN, Role.OWNER],
    Operation.BOARD_UPDATE: [Role.ADMIN, Role.OWNER],
    Operation.BOARD_DELETE: [Role.ADMIN, Role.OWNER],

    # Issue
    Operation.ISSUE_READ: [Role.VIEWER, Role.DEVELOPER, Role.ADMIN, Role.OWNER],
    Operation.ISSUE_CREATE: [Role.DEVELOPER, Role.ADMIN, Role.OWNER],
    Operation.ISSUE_UPDATE: [Role.DEVELOPER, Role.ADMIN, Role.OWNER],
    Operation.ISSUE_DELETE: [Role.ADMIN, Role.OWNER],
    Operation.ISSUE_ASSIGN: [Role.DEVELOPER, Role.ADMIN, Role.OWNER],
    Operation.ISSUE_MOVE: [Role.DEVELOPER, Role.ADMIN, Role.OWNER],
})
