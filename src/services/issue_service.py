import enum
from typing import Dict, Any, Optional, Type

from src.database import models
from src.rbac.guard import AccessGuard, Authorized, ensure_authorized
from src.rbac.permissions import Operation
from src.repositories.interfaces import IIssueRepository, IProjectRepository, IUserRepository
from src.services.exceptions import AssigneeNotFoundError, ColumnNotFoundError, InsufficientPermissionError
from src.utils.validators import page_window, pagination_info, clean_search, validate_text

_UNSET = object()


def _user_summary(user: Optional[models.User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {"id": user.id, "email": user.email, "username": user.username}


def serialize_issue(issue: models.Issue) -> Dict[str, Any]:
    return {
        "id": issue.id,
        "title": issue.title,
        "description": issue.description,
        "type": models.IssueType(issue.type).value,
        "priority": models.IssuePriority(issue.priority).value,
        "status": models.IssueStatus(issue.status).value,
        "column_id": issue.column_id,
        "reporter": _user_summary(issue.reporter),
        "assignee": _user_summary(issue.assignee),
        "created_at": issue.created_at.isoformat() if issue.created_at else None,
        "updated_at": issue.updated_at.isoformat() if issue.updated_at else None,
    }


def _parse_choice(enum_cls: Type[enum.Enum], value, field: str):
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"{field} must be one of: {choices}") from None


class IssueService:
    """이슈 CRUD, 담당자 지정, 컬럼 이동, 통계를 담당합니다."""

    def __init__(self, issue_repo: IIssueRepository, user_repo: IUserRepository,
                 project_repo: IProjectRepository, guard: AccessGuard):
        self.issue_repo = issue_repo
        self.user_repo = user_repo
        self.project_repo = project_repo
        self.guard = guard

    def list_issues(self, user_id: int, column_id: int, page=1, limit=10, search: Optional[str] = None) -> Dict[str, Any]:
        ensure_authorized(self.guard.authorize_column(user_id, column_id, Operation.ISSUE_READ))
        page, limit, offset = page_window(page, limit)
        issues, total = self.issue_repo.list_by_column(column_id, offset, limit, clean_search(search))
        return {"issues": [serialize_issue(i) for i in issues], "pagination": pagination_info(page, limit, total)}

    def get_issue(self, user_id: int, issue_id: int) -> Dict[str, Any]:
        authorized = ensure_authorized(self.guard.authorize_issue(user_id, issue_id, Operation.ISSUE_READ))
        issue, column, board, project = authorized.resource
        data = serialize_issue(issue)
        data["column"] = {
            "id": column.id,
            "name": column.name,
            "board": {"id": board.id, "name": board.name, "project": {"id": project.id, "name": project.name}},
        }
        return data

    def create_issue(self, user_id: int, column_id: int, title: str, description: Optional[str] = None,
                     type: str = "TASK", priority: str = "MEDIUM", assignee_id: Optional[int] = None) -> Dict[str, Any]:
        """
        컬럼에 이슈를 만듭니다. 요청한 사용자가 reporter가 됩니다.

        담당자를 함께 지정하면 ISSUE_ASSIGN 권한도 필요합니다.
        담당자는 존재하는 사용자이기만 하면 프로젝트 역할과 무관하게 지정할 수 있습니다.

        Raises:
            ColumnNotFoundError: 컬럼이 없을 때.
            AssigneeNotFoundError: 담당자 ID의 사용자가 없을 때.
        """
        authorized = ensure_authorized(self.guard.authorize_column(user_id, column_id, Operation.ISSUE_CREATE))
        if assignee_id is not None:
            self._check_assign(authorized)
            self._check_assignee_exists(assignee_id)

        issue = models.Issue(
            title=validate_text(title, "Issue title", 200),
            description=validate_text(description, "Issue description", 2000, required=False),
            type=_parse_choice(models.IssueType, type or "TASK", "Type"),
            priority=_parse_choice(models.IssuePriority, priority or "MEDIUM", "Priority"),
            status=models.IssueStatus.TODO,
            column_id=column_id,
            reporter_id=user_id,
            assignee_id=assignee_id,
        )
        return serialize_issue(self.issue_repo.create(issue))

    def update_issue(self, user_id: int, issue_id: int, title: Optional[str] = None, description: Optional[str] = None,
                     type: Optional[str] = None, priority: Optional[str] = None, status: Optional[str] = None,
                     assignee_id=_UNSET) -> Dict[str, Any]:
        """
        이슈를 수정합니다. 넘기지 않은 필드는 그대로 둡니다.
        assignee_id=None을 명시하면 담당자를 해제합니다. reporter는 바꿀 수 없습니다.
        """
        authorized = ensure_authorized(self.guard.authorize_issue(user_id, issue_id, Operation.ISSUE_UPDATE))
        issue = authorized.resource.issue

        if assignee_id is not _UNSET and assignee_id != issue.assignee_id:
            self._check_assign(authorized)
            if assignee_id is not None:
                self._check_assignee_exists(assignee_id)
            issue.assignee_id = assignee_id

        if title is not None:
            issue.title = validate_text(title, "Issue title", 200)
        if description is not None:
            issue.description = validate_text(description, "Issue description", 2000, required=False)
        if type is not None:
            issue.type = _parse_choice(models.IssueType, type, "Type")
        if priority is not None:
            issue.priority = _parse_choice(models.IssuePriority, priority, "Priority")
        if status is not None:
            issue.status = _parse_choice(models.IssueStatus, status, "Status")
        return serialize_issue(self.issue_repo.save(issue))

    def assign_issue(self, user_id: int, issue_id: int, assignee_id: Optional[int]) -> Dict[str, Any]:
        authorized = ensure_authorized(self.guard.authorize_issue(user_id, issue_id, Operation.ISSUE_ASSIGN))
        if assignee_id is not None:
            self._check_assignee_exists(assignee_id)
        issue = authorized.resource.issue
        issue.assignee_id = assignee_id
        return serialize_issue(self.issue_repo.save(issue))

    def delete_issue(self, user_id: int, issue_id: int) -> bool:
        authorized = ensure_authorized(self.guard.authorize_issue(user_id, issue_id, Operation.ISSUE_DELETE))
        self.issue_repo.delete(authorized.resource.issue)
        return True

    def move_issue(self, user_id: int, issue_id: int, column_id: int) -> Dict[str, Any]:
        """
        이슈를 다른 컬럼으로 옮깁니다. 대상 컬럼의 프로젝트에서도 ISSUE_MOVE 권한이 있어야 합니다.

        Raises:
            IssueNotFoundError: 이슈가 없을 때.
            ColumnNotFoundError: 대상 컬럼이 없을 때.
        """
        authorized = ensure_authorized(self.guard.authorize_issue(user_id, issue_id, Operation.ISSUE_MOVE))
        try:
            ensure_authorized(self.guard.authorize_column(user_id, column_id, Operation.ISSUE_MOVE))
        except ColumnNotFoundError:
            raise ColumnNotFoundError("Target column not found.") from None

        issue = authorized.resource.issue
        issue.column_id = column_id
        return serialize_issue(self.issue_repo.save(issue))

    def get_issue_stats(self, user_id: int) -> Dict[str, Any]:
        """사용자가 접근할 수 있는 모든 프로젝트의 이슈를 상태, 유형, 우선순위별로 집계합니다."""
        project_ids = self.project_repo.list_accessible_ids(user_id)
        if not project_ids:
            return {"total": 0, "by_status": {}, "by_type": {}, "by_priority": {}}
        return self.issue_repo.stats_for_projects(project_ids)

    def _check_assign(self, authorized: Authorized) -> None:
        if not self.guard.permissions.is_allowed(authorized.role, Operation.ISSUE_ASSIGN):
            raise InsufficientPermissionError(Operation.ISSUE_ASSIGN)

    def _check_assignee_exists(self, assignee_id: int) -> None:
        if not self.user_repo.find_by_id(assignee_id):
            raise AssigneeNotFoundError("Assignee not found.")
