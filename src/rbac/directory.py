import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from src.rbac.roles import Role, MEMBER_ROLES, rank
from src.repositories.interfaces import IProjectRepository
from src.services.exceptions import InvariantViolationError, ProjectNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberEntry:
    user_id: int
    username: str
    email: str
    is_active: bool
    role: Role
    joined_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user": {
                "id": self.user_id,
                "username": self.username,
                "email": self.email,
                "is_active": self.is_active,
            },
            "role": self.role.value,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }


class MembershipDirectory:
    """프로젝트에 접근할 수 있는 모든 사용자(소유자 + 멤버)를 권한 순으로 나열합니다."""

    def __init__(self, project_repo: IProjectRepository):
        self.project_repo = project_repo

    def list_members(self, project_id: int) -> List[MemberEntry]:
        """
        프로젝트 멤버 목록을 조회합니다. 멤버십 상태는 변경하지 않습니다.

        소유자 항목은 항상 Project.owner에서 만들어 맨 앞에 둡니다. (joined_at = 프로젝트 생성 시각)
        나머지는 역할 등급 내림차순, 같은 역할 안에서는 가입 시각 오름차순으로 정렬합니다.

        Raises:
            ProjectNotFoundError: 프로젝트가 없을 때.
            InvariantViolationError: 멤버십 행이 OWNER 역할이거나 소유자 본인을 가리킬 때.
        """
        project = self.project_repo.find_by_id(project_id)
        if not project:
            raise ProjectNotFoundError(f"Project with id '{project_id}' not found.")

        owner = project.owner
        owner_entry = MemberEntry(
            user_id=owner.id,
            username=owner.username,
            email=owner.email,
            is_active=owner.is_active,
            role=Role.OWNER,
            joined_at=project.created_at,
        )

        members = []
        for membership in self.project_repo.list_memberships(project_id):
            role = Role(membership.role)
            if role not in MEMBER_ROLES or membership.user_id == project.owner_id:
                logger.error("Project %s has an owner-shaped membership row for user %s", project_id, membership.user_id)
                raise InvariantViolationError(
                    f"Project '{project_id}' has an invalid membership row for user '{membership.user_id}'."
                )
            members.append(MemberEntry(
                user_id=membership.user.id,
                username=membership.user.username,
                email=membership.user.email,
                is_active=membership.user.is_active,
                role=role,
                joined_at=membership.joined_at,
            ))

        # sorted는 안정 정렬이므로 같은 시각의 행은 저장소가 돌려준 순서를 유지합니다.
        members = sorted(members, key=lambda entry: (-rank(entry.role), entry.joined_at or datetime.min))
        return [owner_entry] + members
