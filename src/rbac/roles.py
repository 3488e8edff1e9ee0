import enum
from typing import Union

from src.services.exceptions import UnknownRoleError


class Role(str, enum.Enum):
    """프로젝트 안에서의 역할. VIEWER < DEVELOPER < ADMIN < OWNER 순으로 권한이 커집니다."""
    VIEWER = "VIEWER"
    DEVELOPER = "DEVELOPER"
    ADMIN = "ADMIN"
    OWNER = "OWNER"


_ROLE_HIERARCHY = {
    Role.VIEWER: 1,
    Role.DEVELOPER: 2,
    Role.ADMIN: 3,
    Role.OWNER: 4,
}

# 멤버십 행에 저장될 수 있는 역할. OWNER는 Project.owner로만 표현됩니다.
MEMBER_ROLES = frozenset({Role.VIEWER, Role.DEVELOPER, Role.ADMIN})


def parse_role(value: Union[Role, str]) -> Role:
    """
    문자열 또는 Role을 Role로 변환합니다.

    Raises:
        UnknownRoleError: 정의되지 않은 역할 이름일 때.
    """
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value).upper())
    except ValueError:
        raise UnknownRoleError(f"Unknown role '{value}'.") from None


def rank(role: Union[Role, str]) -> int:
    return _ROLE_HIERARCHY[parse_role(role)]


def satisfies_minimum(actual_role: Union[Role, str], required_role: Union[Role, str]) -> bool:
    """actual_role이 required_role 이상의 권한인지 확인합니다. 알 수 없는 역할은 예외를 발생시킵니다."""
    return rank(actual_role) >= rank(required_role)
