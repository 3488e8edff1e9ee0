import hashlib
import hmac
import logging
import os
import re
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

import jwt

from src.config import Config, settings
from src.database import models
from src.repositories.interfaces import IUserRepository
from src.services.exceptions import (
    UserCreationError, UserNotFoundError, AuthenticationError,
    TokenInvalidError, TokenExpiredError
)

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{3,30}$")
_PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{6,}$")
_PBKDF2_ITERATIONS = 260000


def hash_password(password: str, salt: Optional[bytes] = None) -> str:
    """PBKDF2-SHA256으로 비밀번호를 해시합니다. 결과는 '솔트$해시' 형태의 16진 문자열입니다."""
    salt = salt or os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ITERATIONS)
    return f"{salt.hex()}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        salt_hex, _ = password_hash.split("$", 1)
        expected = hash_password(password, bytes.fromhex(salt_hex))
    except ValueError:
        return False
    return hmac.compare_digest(expected, password_hash)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_user(user: models.User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "is_active": user.is_active,
    }


class IdentityService:
    """사용자 등록, 로그인, JWT 발급/검증을 담당합니다."""

    def __init__(self, user_repo: IUserRepository, config: Config = settings):
        """
        IdentityService를 초기화합니다.

        Args:
            user_repo: 사용자 데이터에 접근하기 위한 리포지토리.
            config: JWT 비밀 키와 만료 시간을 담은 설정.
        """
        self.user_repo = user_repo
        self.config = config

    def register(self, email: str, password: str, username: str,
                 first_name: Optional[str] = None, last_name: Optional[str] = None) -> Dict[str, Any]:
        """
        새로운 사용자를 생성하고 토큰을 발급합니다.

        Returns:
            사용자 정보와 access/refresh 토큰을 담은 딕셔너리.

        Raises:
            ValueError: 이메일, 사용자 이름, 비밀번호 형식이 잘못되었을 때.
            UserCreationError: 이메일 또는 사용자 이름이 이미 사용 중일 때.
        """
        email = (email or "").strip().lower()
        if not _EMAIL_PATTERN.match(email):
            raise ValueError("Please provide a valid email.")
        if not _USERNAME_PATTERN.match(username or ""):
            raise ValueError("Username must be 3-30 characters of letters, numbers, underscores or hyphens.")
        if not _PASSWORD_PATTERN.match(password or ""):
            raise ValueError("Password must be at least 6 characters and contain a lowercase letter, an uppercase letter and a number.")

        if self.user_repo.find_by_email(email):
            raise UserCreationError("User with this email already exists.")
        if self.user_repo.find_by_username(username):
            raise UserCreationError("Username is already taken.")

        new_user = models.User(
            email=email,
            username=username,
            first_name=first_name,
            last_name=last_name,
            password_hash=hash_password(password),
            is_active=True,
        )
        user = self.user_repo.create(new_user)
        logger.info("Registered user %s", user.id)
        return {"user": serialize_user(user), **self._issue_tokens(user.id)}

    def authenticate(self, login: str, password: str) -> Dict[str, Any]:
        """
        이메일 또는 사용자 이름과 비밀번호로 로그인합니다.

        Raises:
            AuthenticationError: 자격 증명이 틀렸거나 비활성화된 계정일 때.
        """
        login = (login or "").strip()
        user = self.user_repo.find_by_email(login.lower()) if "@" in login else self.user_repo.find_by_username(login)
        if not user or not verify_password(password or "", user.password_hash):
            raise AuthenticationError("Invalid credentials.")
        if not user.is_active:
            raise AuthenticationError("Account is deactivated.")
        return {"user": serialize_user(user), **self._issue_tokens(user.id)}

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        """refresh 토큰으로 새 access 토큰을 발급합니다."""
        payload = self._decode(refresh_token, self.config.jwt_refresh_secret, "refresh")
        user = self.user_repo.find_by_id(int(payload["sub"]))
        if not user or not user.is_active:
            raise TokenInvalidError("Token is invalid.")
        token, expires_at = self._encode(user.id, "access")
        return {"token": token, "expires_at": expires_at.isoformat()}

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        access 토큰의 유효성을 검증하고, 유효하면 토큰 데이터를 반환합니다.

        Raises:
            TokenExpiredError: 토큰이 만료되었을 때.
            TokenInvalidError: 서명이 틀렸거나 형식이 잘못되었을 때.
        """
        payload = self._decode(token, self.config.jwt_secret, "access")
        return {"user_id": int(payload["sub"]), "expires_at": payload["exp"]}

    def get_current_user(self, token: str) -> models.User:
        token_data = self.validate_token(token)
        user = self.user_repo.find_by_id(token_data["user_id"])
        if not user:
            raise TokenInvalidError("Not authorized, user not found.")
        if not user.is_active:
            raise TokenInvalidError("Not authorized, user account is deactivated.")
        return user

    def check_email(self, email: str) -> Dict[str, Any]:
        """가입 전에 이메일 사용 가능 여부를 확인합니다. 인증이 필요 없습니다."""
        email = (email or "").strip().lower()
        if not _EMAIL_PATTERN.match(email):
            raise ValueError("Please provide a valid email address.")
        available = self.user_repo.find_by_email(email) is None
        return {"email": email, "available": available}

    def check_username(self, username: str) -> Dict[str, Any]:
        username = (username or "").strip()
        if not _USERNAME_PATTERN.match(username):
            raise ValueError("Username must be 3-30 characters of letters, numbers, underscores or hyphens.")
        available = self.user_repo.find_by_username(username) is None
        return {"username": username, "available": available}

    def get_profile(self, user_id: int) -> Dict[str, Any]:
        """사용자 정보와 가입 시각, 소유한 프로젝트 수를 반환합니다."""
        user = self._get_user(user_id)
        return {
            **serialize_user(user),
            "created_at": _isoformat(user.created_at),
            "project_count": self.user_repo.count_owned_projects(user.id),
        }

    def get_user_stats(self, user_id: int) -> Dict[str, Any]:
        """
        사용자 활동 통계를 집계합니다.

        Returns:
            소유한 프로젝트 수, 그 프로젝트들의 보드 수, 계정 생성 시각을 담은 딕셔너리.
        """
        user = self._get_user(user_id)
        return {
            "total_projects": self.user_repo.count_owned_projects(user.id),
            "total_boards": self.user_repo.count_owned_boards(user.id),
            "account_created": _isoformat(user.created_at),
        }

    def update_profile(self, user_id: int, first_name: Optional[str] = None,
                       last_name: Optional[str] = None) -> Dict[str, Any]:
        user = self._get_user(user_id)
        if first_name is not None:
            user.first_name = first_name.strip() or None
        if last_name is not None:
            user.last_name = last_name.strip() or None
        return serialize_user(self.user_repo.save(user))

    def change_password(self, user_id: int, current_password: str, new_password: str) -> bool:
        """
        현재 비밀번호를 확인한 뒤 새 비밀번호로 바꿉니다.

        Raises:
            AuthenticationError: 현재 비밀번호가 틀렸을 때.
            ValueError: 새 비밀번호가 규칙에 맞지 않을 때.
        """
        user = self._get_user(user_id)
        if not verify_password(current_password or "", user.password_hash):
            raise AuthenticationError("Current password is incorrect.")
        if not _PASSWORD_PATTERN.match(new_password or ""):
            raise ValueError("Password must be at least 6 characters and contain a lowercase letter, an uppercase letter and a number.")
        user.password_hash = hash_password(new_password)
        self.user_repo.save(user)
        logger.info("User %s changed password", user_id)
        return True

    def deactivate_account(self, user_id: int) -> bool:
        """
        계정을 비활성화합니다. 이후 로그인과 토큰 사용이 거부되고,
        프로젝트 멤버 추가나 소유권 이전 대상이 될 수 없습니다.
        """
        user = self._get_user(user_id)
        user.is_active = False
        self.user_repo.save(user)
        logger.info("User %s deactivated", user_id)
        return True

    def _get_user(self, user_id: int) -> models.User:
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError(f"User with id '{user_id}' not found.")
        return user

    def _issue_tokens(self, user_id: int) -> Dict[str, str]:
        token, expires_at = self._encode(user_id, "access")
        refresh_token, _ = self._encode(user_id, "refresh")
        return {"token": token, "refresh_token": refresh_token, "expires_at": expires_at.isoformat()}

    def _encode(self, user_id: int, token_type: str):
        if token_type == "refresh":
            secret, minutes = self.config.jwt_refresh_secret, self.config.jwt_refresh_expire_minutes
        else:
            secret, minutes = self.config.jwt_secret, self.config.jwt_expire_minutes
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=minutes)
        payload = {"sub": str(user_id), "type": token_type, "exp": expires_at}
        return jwt.encode(payload, secret, algorithm=self.config.jwt_algorithm), expires_at

    def _decode(self, token: str, secret: str, token_type: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.config.jwt_algorithm])
        except jwt.ExpiredSignatureError as e:
            logger.warning("Token expired: %s", e)
            raise TokenExpiredError("Token has expired.") from e
        except jwt.InvalidTokenError as e:
            logger.warning("Invalid token: %s", e)
            raise TokenInvalidError("Token is invalid.") from e
        if payload.get("type") != token_type or "sub" not in payload:
            raise TokenInvalidError("Token is invalid.")
        return payload
