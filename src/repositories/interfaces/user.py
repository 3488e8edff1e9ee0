from abc import ABC, abstractmethod
from typing import Optional
from src.database import models

class IUserRepository(ABC):
    @abstractmethod
    def create(self, user_model: models.User) -> models.User:
        """새로운 사용자를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, user_id: int) -> Optional[models.User]:
        """고유 ID로 특정 사용자를 조회합니다."""
        pass

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[models.User]:
        """이메일(소문자 기준)로 특정 사용자를 조회합니다."""
        pass

    @abstractmethod
    def find_by_username(self, username: str) -> Optional[models.User]:
        """사용자 이름으로 특정 사용자를 조회합니다."""
        pass

    @abstractmethod
    def save(self, user: models.User) -> models.User:
        """변경된 사용자 정보(프로필, 비밀번호, 활성 상태)를 저장합니다."""
        pass

    @abstractmethod
    def count_owned_projects(self, user_id: int) -> int:
        """사용자가 소유한 프로젝트 수를 셉니다."""
        pass

    @abstractmethod
    def count_owned_boards(self, user_id: int) -> int:
        """사용자가 소유한 모든 프로젝트에 걸친 보드 수를 셉니다."""
        pass
