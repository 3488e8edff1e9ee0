from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from src.database import models
from src.rbac.roles import Role

class IProjectRepository(ABC):
    @abstractmethod
    def create(self, project_model: models.Project) -> models.Project:
        """새로운 프로젝트를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, project_id: int) -> Optional[models.Project]:
        """고유 ID로 특정 프로젝트를 조회합니다."""
        pass

    @abstractmethod
    def find_owned_by(self, user_id: int, project_id: int) -> Optional[models.Project]:
        """user_id가 소유한 경우에만 프로젝트를 반환합니다."""
        pass

    @abstractmethod
    def list_for_user(self, user_id: int, offset: int, limit: int, search: Optional[str] = None) -> Tuple[List[models.Project], int]:
        """
        사용자가 소유하거나 멤버로 참여한 프로젝트를 최근 수정 순으로 조회합니다.

        Returns:
            (해당 페이지의 프로젝트 리스트, 조건에 맞는 전체 프로젝트 수) 튜플.
        """
        pass

    @abstractmethod
    def list_accessible_ids(self, user_id: int) -> List[int]:
        """사용자가 소유하거나 멤버로 참여한 모든 프로젝트의 ID를 조회합니다."""
        pass

    @abstractmethod
    def save(self, project: models.Project) -> models.Project:
        """변경된 프로젝트를 저장합니다."""
        pass

    @abstractmethod
    def delete(self, project: models.Project) -> bool:
        """프로젝트를 삭제합니다. 보드, 컬럼, 이슈, 멤버십도 함께 삭제됩니다."""
        pass

    @abstractmethod
    def find_membership(self, project_id: int, user_id: int) -> Optional[models.ProjectMember]:
        """(프로젝트, 사용자) 쌍의 멤버십 행을 조회합니다."""
        pass

    @abstractmethod
    def list_memberships(self, project_id: int) -> List[models.ProjectMember]:
        """프로젝트의 모든 멤버십 행을 가입 시각 오름차순으로 조회합니다."""
        pass

    @abstractmethod
    def add_membership(self, membership: models.ProjectMember) -> models.ProjectMember:
        """멤버십 행을 추가합니다."""
        pass

    @abstractmethod
    def update_membership_role(self, membership: models.ProjectMember, role: Role) -> models.ProjectMember:
        """멤버십 행의 역할을 변경합니다."""
        pass

    @abstractmethod
    def delete_membership(self, membership: models.ProjectMember) -> bool:
        """멤버십 행을 삭제합니다."""
        pass

    @abstractmethod
    def transfer_ownership(self, project: models.Project, new_owner_id: int) -> models.Project:
        """
        프로젝트 소유권을 하나의 트랜잭션으로 이전합니다.

        새 소유자의 기존 멤버십 행은 삭제되고, 이전 소유자는 ADMIN 멤버십 행을 새로 얻습니다.
        중간 단계에서 실패하면 전체가 롤백됩니다.
        """
        pass
