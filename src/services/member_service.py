import logging
from typing import Dict, Any, List, Union

from src.database import models
from src.rbac.directory import MembershipDirectory
from src.rbac.guard import AccessGuard, ensure_authorized
from src.rbac.permissions import Operation
from src.rbac.roles import Role, MEMBER_ROLES, parse_role
from src.repositories.interfaces import IProjectRepository, IUserRepository
from src.services.exceptions import (
    UserNotFoundError, MemberNotFoundError, InactiveUserError, MembershipExistsError,
    AlreadyProjectOwnerError, OwnerRoleChangeError, OwnerRemovalError,
    OwnerCannotLeaveError, OwnershipTransferError, ProjectNotFoundError
)

logger = logging.getLogger(__name__)


def serialize_membership(membership: models.ProjectMember) -> Dict[str, Any]:
    return {
        "project_id": membership.project_id,
        "user_id": membership.user_id,
        "role": Role(membership.role).value,
        "joined_at": membership.joined_at.isoformat() if membership.joined_at else None,
    }


def _member_role(role: Union[Role, str]) -> Role:
    role = parse_role(role)
    if role not in MEMBER_ROLES:
        raise ValueError("Role must be one of: VIEWER, DEVELOPER, ADMIN.")
    return role


class MemberService:
    """프로젝트 멤버 조회, 추가, 역할 변경, 제거, 탈퇴, 소유권 이전을 담당합니다."""

    def __init__(self, project_repo: IProjectRepository, user_repo: IUserRepository,
                 guard: AccessGuard, directory: MembershipDirectory):
        self.project_repo = project_repo
        self.user_repo = user_repo
        self.guard = guard
        self.directory = directory

    def list_members(self, user_id: int, project_id: int) -> List[Dict[str, Any]]:
        ensure_authorized(self.guard.authorize_project(user_id, project_id, Operation.PROJECT_READ))
        return [entry.to_dict() for entry in self.directory.list_members(project_id)]

    def add_member(self, user_id: int, project_id: int, email: str, role: Union[Role, str] = Role.VIEWER) -> Dict[str, Any]:
        """
        이메일로 사용자를 찾아 프로젝트 멤버로 추가합니다.

        Raises:
            ValueError: OWNER 등 멤버십에 저장할 수 없는 역할일 때.
            UserNotFoundError: 해당 이메일의 사용자가 없을 때.
            InactiveUserError: 비활성화된 사용자일 때.
            MembershipExistsError: 이미 멤버일 때.
            AlreadyProjectOwnerError: 프로젝트 소유자일 때.
        """
        ensure_authorized(self.guard.authorize_project(user_id, project_id, Operation.PROJECT_MANAGE_MEMBERS))
        role = _member_role(role)

        user_to_add = self.user_repo.find_by_email((email or "").strip().lower())
        if not user_to_add:
            raise UserNotFoundError("User not found.")
        if not user_to_add.is_active:
            raise InactiveUserError("Cannot add inactive user to project.")

        if self.project_repo.find_membership(project_id, user_to_add.id):
            raise MembershipExistsError("User is already a member of this project.")
        if self.project_repo.find_owned_by(user_to_add.id, project_id):
            raise AlreadyProjectOwnerError("User is already the project owner.")

        membership = self.project_repo.add_membership(
            models.ProjectMember(project_id=project_id, user_id=user_to_add.id, role=role)
        )
        logger.info("User %s added user %s to project %s as %s", user_id, user_to_add.id, project_id, role.value)
        return serialize_membership(membership)

    def update_member_role(self, user_id: int, project_id: int, member_id: int, role: Union[Role, str]) -> Dict[str, Any]:
        """
        멤버의 역할을 변경합니다.

        Raises:
            MemberNotFoundError: 멤버십 행이 없을 때.
            OwnerRoleChangeError: 대상 행이 OWNER 역할일 때.
        """
        ensure_authorized(self.guard.authorize_project(user_id, project_id, Operation.PROJECT_MANAGE_MEMBERS))
        role = _member_role(role)
        membership = self._get_membership(project_id, member_id)
        if Role(membership.role) is Role.OWNER:
            raise OwnerRoleChangeError("Cannot change owner role.")
        return serialize_membership(self.project_repo.update_membership_role(membership, role))

    def remove_member(self, user_id: int, project_id: int, member_id: int) -> bool:
        """
        멤버를 프로젝트에서 제거합니다.

        Raises:
            MemberNotFoundError: 멤버십 행이 없을 때.
            OwnerRemovalError: 대상 행이 OWNER 역할일 때.
        """
        ensure_authorized(self.guard.authorize_project(user_id, project_id, Operation.PROJECT_MANAGE_MEMBERS))
        membership = self._get_membership(project_id, member_id)
        if Role(membership.role) is Role.OWNER:
            raise OwnerRemovalError("Cannot remove project owner.")
        self.project_repo.delete_membership(membership)
        logger.info("User %s removed user %s from project %s", user_id, member_id, project_id)
        return True

    def leave_project(self, user_id: int, project_id: int) -> bool:
        """
        스스로 프로젝트를 떠납니다.

        Raises:
            OwnerCannotLeaveError: 소유자일 때. 먼저 소유권을 이전해야 합니다.
            MemberNotFoundError: 멤버가 아닐 때.
        """
        if self.project_repo.find_owned_by(user_id, project_id):
            raise OwnerCannotLeaveError("Project owners cannot leave their own project. Transfer ownership first.")
        membership = self.project_repo.find_membership(project_id, user_id)
        if not membership:
            raise MemberNotFoundError("You are not a member of this project.")
        self.project_repo.delete_membership(membership)
        return True

    def transfer_ownership(self, user_id: int, project_id: int, new_owner_email: str) -> Dict[str, Any]:
        """
        프로젝트 소유권을 다른 사용자에게 넘깁니다.

        새 소유자의 기존 멤버십은 삭제되고, 이전 소유자는 ADMIN 멤버가 됩니다.
        리포지토리가 세 변경을 하나의 트랜잭션으로 적용합니다.

        Raises:
            NotAMemberError / InsufficientPermissionError: 요청자가 소유자가 아닐 때.
            UserNotFoundError: 새 소유자를 찾을 수 없을 때.
            InactiveUserError: 새 소유자가 비활성화된 사용자일 때.
            OwnershipTransferError: 자기 자신에게 넘기려고 할 때.
        """
        ensure_authorized(self.guard.authorize_project(user_id, project_id, Operation.PROJECT_TRANSFER_OWNERSHIP))
        project = self.project_repo.find_by_id(project_id)
        if not project:
            raise ProjectNotFoundError(f"Project with id '{project_id}' not found.")

        new_owner = self.user_repo.find_by_email((new_owner_email or "").strip().lower())
        if not new_owner:
            raise UserNotFoundError("New owner not found.")
        if not new_owner.is_active:
            raise InactiveUserError("Cannot transfer ownership to inactive user.")
        if new_owner.id == project.owner_id:
            raise OwnershipTransferError("User is already the project owner.")

        self.project_repo.transfer_ownership(project, new_owner.id)
        logger.info("Project %s ownership transferred from user %s to user %s", project_id, user_id, new_owner.id)
        return {"project_id": project_id, "owner_id": new_owner.id, "previous_owner_id": user_id}

    def _get_membership(self, project_id: int, member_id: int) -> models.ProjectMember:
        membership = self.project_repo.find_membership(project_id, member_id)
        if not membership:
            raise MemberNotFoundError("Member not found.")
        return membership
