# src/services/exceptions.py

# --- Not Found Exceptions ---
class ProjectNotFoundError(Exception):
    """프로젝트를 찾을 수 없을 때"""
    pass

class BoardNotFoundError(Exception):
    """보드를 찾을 수 없을 때"""
    pass

class ColumnNotFoundError(Exception):
    """컬럼을 찾을 수 없을 때"""
    pass

class IssueNotFoundError(Exception):
    """이슈를 찾을 수 없을 때"""
    pass

class UserNotFoundError(Exception):
    """사용자를 찾을 수 없을 때"""
    pass

class MemberNotFoundError(Exception):
    """프로젝트 멤버십 행을 찾을 수 없을 때"""
    pass

# --- Access Control Exceptions ---
class NotAMemberError(Exception):
    """프로젝트에 대한 역할이 없을 때. 프로젝트 존재 여부를 드러내지 않도록 메시지는 항상 동일합니다."""
    def __init__(self, message="Access denied. You are not a member of this project."):
        super().__init__(message)

class InsufficientPermissionError(Exception):
    """역할은 있지만 요청한 작업을 수행할 권한이 없을 때"""
    def __init__(self, operation):
        self.operation = operation
        name = getattr(operation, "value", operation)
        super().__init__(f"Access denied. Required permission: {name}")

class InvariantViolationError(Exception):
    """소유권/멤버십 불변식이 깨진 상태를 발견했을 때 (프로그래밍 오류)"""
    pass

class UnknownRoleError(ValueError):
    """정의되지 않은 역할 이름이 사용되었을 때"""
    pass

# --- Membership Exceptions ---
class MembershipExistsError(Exception):
    """이미 프로젝트 멤버인 사용자를 다시 추가하려고 할 때"""
    pass

class AlreadyProjectOwnerError(Exception):
    """프로젝트 소유자를 멤버로 추가하려고 할 때"""
    pass

class InactiveUserError(Exception):
    """비활성화된 사용자를 프로젝트에 추가하거나 소유권을 넘기려고 할 때"""
    pass

class OwnerRoleChangeError(Exception):
    """소유자의 역할을 변경하려고 할 때"""
    pass

class OwnerRemovalError(Exception):
    """소유자를 프로젝트에서 제거하려고 할 때"""
    pass

class OwnerCannotLeaveError(Exception):
    """소유자가 소유권 이전 없이 프로젝트를 떠나려고 할 때"""
    pass

class OwnershipTransferError(Exception):
    """소유권 이전 요청이 유효하지 않을 때"""
    pass

# --- Creation/Validation Exceptions ---
class UserCreationError(Exception):
    """사용자 생성 실패 시"""
    pass

class ProjectAlreadyHasBoardsError(Exception):
    """보드가 이미 있는 프로젝트에 기본 보드를 만들려고 할 때"""
    pass

class ColumnNotEmptyError(Exception):
    """이슈가 남아 있는 컬럼을 삭제하려고 할 때"""
    pass

class AssigneeNotFoundError(Exception):
    """지정한 담당자가 존재하지 않을 때"""
    pass

# --- Auth Exceptions ---
class TokenInvalidError(Exception):
    """토큰이 유효하지 않거나 없을 때"""
    pass

class TokenExpiredError(Exception):
    """토큰이 만료되었을 때"""
    pass

class AuthenticationError(Exception):
    """사용자 자격 증명 실패 시"""
    pass
