# src/app.py
from wsgiref.simple_server import make_server
from urllib.parse import parse_qs, unquote
import json
import logging
import sys
import re

# SQLAlchemy 및 의존성 임포트
from src.config import settings
from src.database.database import SessionLocal
from src.repositories.sqlalchemy.sqlalchemy_user_repository import SqlalchemyUserRepository
from src.repositories.sqlalchemy.sqlalchemy_project_repository import SqlalchemyProjectRepository
from src.repositories.sqlalchemy.sqlalchemy_board_repository import SqlalchemyBoardRepository
from src.repositories.sqlalchemy.sqlalchemy_column_repository import SqlalchemyColumnRepository
from src.repositories.sqlalchemy.sqlalchemy_issue_repository import SqlalchemyIssueRepository
from src.rbac.directory import MembershipDirectory
from src.rbac.guard import AccessGuard
from src.rbac.permissions import DEFAULT_PERMISSIONS
from src.rbac.resolver import RoleResolver
from src.services.identity_service import IdentityService, serialize_user
from src.services.project_service import ProjectService
from src.services.member_service import MemberService
from src.services.board_service import BoardService
from src.services.column_service import ColumnService
from src.services.issue_service import IssueService
from src.services.exceptions import *
from src.utils.validators import parse_int

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------
## 요청 처리 유틸리티 함수
# --------------------------------------------------------------------------

def get_request_data(environ):
    try:
        content_length = int(environ.get("CONTENT_LENGTH") or 0)
        return json.loads(environ["wsgi.input"].read(content_length)) if content_length > 0 else {}
    except (ValueError, json.JSONDecodeError):
        raise ValueError("Invalid or missing JSON body.")

def get_query_params(environ):
    return {key: values[0] for key, values in parse_qs(environ.get("QUERY_STRING", "")).items()}

def authorize_and_get_user(environ):
    header = environ.get('HTTP_AUTHORIZATION', '')
    if not header.startswith('Bearer '):
        raise TokenInvalidError("Not authorized, no token.")
    identity_service = environ['services']['identity']
    return identity_service.get_current_user(header[len('Bearer '):].strip())

def ok(data=None, message=None, status='200 OK'):
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return status, json.dumps(body)

def handle_exception(e):
    error_map = {
        TokenInvalidError: "401 Unauthorized",
        TokenExpiredError: "401 Unauthorized",
        AuthenticationError: "401 Unauthorized",
        NotAMemberError: "403 Forbidden",
        InsufficientPermissionError: "403 Forbidden",
        ProjectNotFoundError: "404 Not Found",
        BoardNotFoundError: "404 Not Found",
        ColumnNotFoundError: "404 Not Found",
        IssueNotFoundError: "404 Not Found",
        UserNotFoundError: "404 Not Found",
        MemberNotFoundError: "404 Not Found",
        ValueError: "400 Bad Request",
        UnknownRoleError: "400 Bad Request",
        UserCreationError: "400 Bad Request",
        MembershipExistsError: "400 Bad Request",
        AlreadyProjectOwnerError: "400 Bad Request",
        InactiveUserError: "400 Bad Request",
        OwnerRoleChangeError: "400 Bad Request",
        OwnerRemovalError: "400 Bad Request",
        OwnerCannotLeaveError: "400 Bad Request",
        OwnershipTransferError: "400 Bad Request",
        ProjectAlreadyHasBoardsError: "400 Bad Request",
        ColumnNotEmptyError: "400 Bad Request",
        AssigneeNotFoundError: "400 Bad Request",
    }
    status = error_map.get(type(e))
    if status is None:
        # 저장소 오류, 불변식 위반 등은 내부 정보를 노출하지 않습니다.
        logger.exception("Unhandled error while processing request")
        return "500 Internal Server Error", json.dumps({"success": False, "message": "Internal server error"})
    return status, json.dumps({"success": False, "message": str(e)})

# --------------------------------------------------------------------------
## 의존성 조립
# --------------------------------------------------------------------------

def build_services(db_session, permissions=DEFAULT_PERMISSIONS):
    """요청 단위 세션으로 리포지토리, RBAC 코어, 서비스를 조립합니다."""
    user_repo = SqlalchemyUserRepository(db_session)
    project_repo = SqlalchemyProjectRepository(db_session)
    board_repo = SqlalchemyBoardRepository(db_session)
    column_repo = SqlalchemyColumnRepository(db_session)
    issue_repo = SqlalchemyIssueRepository(db_session)

    resolver = RoleResolver(project_repo)
    guard = AccessGuard(resolver, board_repo, column_repo, issue_repo, permissions)
    directory = MembershipDirectory(project_repo)

    return {
        'identity': IdentityService(user_repo, settings),
        'projects': ProjectService(project_repo, board_repo, column_repo, resolver, guard),
        'members': MemberService(project_repo, user_repo, guard, directory),
        'boards': BoardService(board_repo, column_repo, issue_repo, guard),
        'columns': ColumnService(column_repo, issue_repo, guard),
        'issues': IssueService(issue_repo, user_repo, project_repo, guard),
    }

# --------------------------------------------------------------------------
## WSGI 애플리케이션 (의존성 주입 및 라우팅)
# --------------------------------------------------------------------------

def application(environ, start_response):
    db_session = SessionLocal()
    try:
        environ['services'] = build_services(db_session)

        path = environ.get("PATH_INFO", "")
        method = environ.get("REQUEST_METHOD", "")

        handler, path_args = None, []
        for route_method, pattern, route_handler in ROUTES:
            if method == route_method and (match := re.match(pattern, path)):
                handler, path_args = route_handler, match.groups()
                break

        if handler:
            status, response_body = handler(environ, *path_args)
        else:
            status, response_body = '404 Not Found', json.dumps({'success': False, 'message': 'Not Found'})

    except Exception as e:
        db_session.rollback()
        status, response_body = handle_exception(e)
    finally:
        db_session.close()

    start_response(status, [("Content-Type", "application/json")])
    return [response_body.encode("utf-8")]

# --------------------------------------------------------------------------
## 핸들러 함수 - 인증
# --------------------------------------------------------------------------

def register_handler(environ, *args):
    data = get_request_data(environ)
    result = environ['services']['identity'].register(
        data.get('email'), data.get('password'), data.get('username'),
        data.get('first_name'), data.get('last_name')
    )
    return ok(result, 'User registered successfully', '201 Created')

def login_handler(environ, *args):
    data = get_request_data(environ)
    login = data.get('email') or data.get('username')
    return ok(environ['services']['identity'].authenticate(login, data.get('password')), 'Login successful')

def refresh_handler(environ, *args):
    data = get_request_data(environ)
    return ok(environ['services']['identity'].refresh(data.get('refresh_token', '')))

def me_handler(environ, *args):
    user = authorize_and_get_user(environ)
    return ok({"user": serialize_user(user)})

def check_email_handler(environ, email):
    return ok(environ['services']['identity'].check_email(unquote(email)))

def check_username_handler(environ, username):
    return ok(environ['services']['identity'].check_username(unquote(username)))

# --------------------------------------------------------------------------
## 핸들러 함수 - 사용자 계정
# --------------------------------------------------------------------------

def get_profile_handler(environ, *args):
    user = authorize_and_get_user(environ)
    return ok({"user": environ['services']['identity'].get_profile(user.id)})

def user_stats_handler(environ, *args):
    user = authorize_and_get_user(environ)
    return ok({"stats": environ['services']['identity'].get_user_stats(user.id)})

def update_profile_handler(environ, *args):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    result = environ['services']['identity'].update_profile(user.id, data.get('first_name'), data.get('last_name'))
    return ok({"user": result}, 'Profile updated successfully')

def change_password_handler(environ, *args):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    environ['services']['identity'].change_password(
        user.id, data.get('current_password'), data.get('new_password')
    )
    return ok(message='Password changed successfully')

def deactivate_account_handler(environ, *args):
    user = authorize_and_get_user(environ)
    environ['services']['identity'].deactivate_account(user.id)
    return ok(message='Account deactivated successfully')

# --------------------------------------------------------------------------
## 핸들러 함수 - 프로젝트 / 멤버
# --------------------------------------------------------------------------

def list_projects_handler(environ, *args):
    user = authorize_and_get_user(environ)
    params = get_query_params(environ)
    return ok(environ['services']['projects'].list_projects(
        user.id, params.get('page', 1), params.get('limit', 10), params.get('search')
    ))

def create_project_handler(environ, *args):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    project = environ['services']['projects'].create_project(user.id, data.get('name'), data.get('description'))
    return ok({"project": project}, 'Project created successfully', '201 Created')

def get_project_handler(environ, project_id):
    user = authorize_and_get_user(environ)
    return ok({"project": environ['services']['projects'].get_project(user.id, int(project_id))})

def update_project_handler(environ, project_id):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    project = environ['services']['projects'].update_project(user.id, int(project_id), data.get('name'), data.get('description'))
    return ok({"project": project}, 'Project updated successfully')

def delete_project_handler(environ, project_id):
    user = authorize_and_get_user(environ)
    environ['services']['projects'].delete_project(user.id, int(project_id))
    return ok(message='Project deleted successfully')

def project_stats_handler(environ, project_id):
    user = authorize_and_get_user(environ)
    return ok({"stats": environ['services']['projects'].get_project_stats(user.id, int(project_id))})

def setup_default_board_handler(environ, project_id):
    user = authorize_and_get_user(environ)
    result = environ['services']['projects'].setup_default_board(user.id, int(project_id))
    return ok(result, 'Default board and columns created successfully', '201 Created')

def list_members_handler(environ, project_id):
    user = authorize_and_get_user(environ)
    return ok({"members": environ['services']['members'].list_members(user.id, int(project_id))})

def add_member_handler(environ, project_id):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    member = environ['services']['members'].add_member(user.id, int(project_id), data.get('email'), data.get('role', 'VIEWER'))
    return ok({"member": member}, 'Member added successfully', '201 Created')

def update_member_handler(environ, project_id, member_id):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    member = environ['services']['members'].update_member_role(user.id, int(project_id), int(member_id), data.get('role'))
    return ok({"member": member}, 'Member role updated successfully')

def remove_member_handler(environ, project_id, member_id):
    user = authorize_and_get_user(environ)
    environ['services']['members'].remove_member(user.id, int(project_id), int(member_id))
    return ok(message='Member removed successfully')

def leave_project_handler(environ, project_id):
    user = authorize_and_get_user(environ)
    environ['services']['members'].leave_project(user.id, int(project_id))
    return ok(message='You have left the project successfully')

def transfer_ownership_handler(environ, project_id):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    result = environ['services']['members'].transfer_ownership(user.id, int(project_id), data.get('new_owner_email'))
    return ok(result, 'Project ownership transferred successfully')

# --------------------------------------------------------------------------
## 핸들러 함수 - 보드 / 컬럼
# --------------------------------------------------------------------------

def list_boards_handler(environ, project_id):
    user = authorize_and_get_user(environ)
    params = get_query_params(environ)
    return ok(environ['services']['boards'].list_boards(
        user.id, int(project_id), params.get('page', 1), params.get('limit', 10), params.get('search')
    ))

def create_board_handler(environ, *args):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    board = environ['services']['boards'].create_board(
        user.id, parse_int(data.get('project_id'), 'project_id'), data.get('name'), data.get('description')
    )
    return ok({"board": board}, 'Board created successfully', '201 Created')

def get_board_handler(environ, board_id):
    user = authorize_and_get_user(environ)
    return ok({"board": environ['services']['boards'].get_board(user.id, int(board_id))})

def update_board_handler(environ, board_id):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    board = environ['services']['boards'].update_board(user.id, int(board_id), data.get('name'), data.get('description'))
    return ok({"board": board}, 'Board updated successfully')

def delete_board_handler(environ, board_id):
    user = authorize_and_get_user(environ)
    environ['services']['boards'].delete_board(user.id, int(board_id))
    return ok(message='Board deleted successfully')

def board_stats_handler(environ, board_id):
    user = authorize_and_get_user(environ)
    return ok({"stats": environ['services']['boards'].get_board_stats(user.id, int(board_id))})

def list_columns_handler(environ, board_id):
    user = authorize_and_get_user(environ)
    return ok({"columns": environ['services']['columns'].list_columns(user.id, int(board_id))})

def create_column_handler(environ, *args):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    column = environ['services']['columns'].create_column(
        user.id, parse_int(data.get('board_id'), 'board_id'), data.get('name'), data.get('order_index')
    )
    return ok({"column": column}, 'Column created successfully', '201 Created')

def get_column_handler(environ, column_id):
    user = authorize_and_get_user(environ)
    return ok({"column": environ['services']['columns'].get_column(user.id, int(column_id))})

def update_column_handler(environ, column_id):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    column = environ['services']['columns'].update_column(user.id, int(column_id), data.get('name'), data.get('order_index'))
    return ok({"column": column}, 'Column updated successfully')

def delete_column_handler(environ, column_id):
    user = authorize_and_get_user(environ)
    environ['services']['columns'].delete_column(user.id, int(column_id))
    return ok(message='Column deleted successfully')

def reorder_columns_handler(environ, *args):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    columns = environ['services']['columns'].reorder_columns(
        user.id, parse_int(data.get('board_id'), 'board_id'), data.get('column_ids') or []
    )
    return ok({"columns": columns}, 'Columns reordered successfully')

# --------------------------------------------------------------------------
## 핸들러 함수 - 이슈
# --------------------------------------------------------------------------

def list_issues_handler(environ, column_id):
    user = authorize_and_get_user(environ)
    params = get_query_params(environ)
    return ok(environ['services']['issues'].list_issues(
        user.id, int(column_id), params.get('page', 1), params.get('limit', 10), params.get('search')
    ))

def issue_stats_handler(environ, *args):
    user = authorize_and_get_user(environ)
    return ok({"stats": environ['services']['issues'].get_issue_stats(user.id)})

def create_issue_handler(environ, *args):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    issue = environ['services']['issues'].create_issue(
        user.id, parse_int(data.get('column_id'), 'column_id'), data.get('title'), data.get('description'),
        data.get('type', 'TASK'), data.get('priority', 'MEDIUM'), data.get('assignee_id')
    )
    return ok({"issue": issue}, 'Issue created successfully', '201 Created')

def get_issue_handler(environ, issue_id):
    user = authorize_and_get_user(environ)
    return ok({"issue": environ['services']['issues'].get_issue(user.id, int(issue_id))})

def update_issue_handler(environ, issue_id):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    fields = {key: data[key] for key in ('title', 'description', 'type', 'priority', 'status', 'assignee_id') if key in data}
    issue = environ['services']['issues'].update_issue(user.id, int(issue_id), **fields)
    return ok({"issue": issue}, 'Issue updated successfully')

def delete_issue_handler(environ, issue_id):
    user = authorize_and_get_user(environ)
    environ['services']['issues'].delete_issue(user.id, int(issue_id))
    return ok(message='Issue deleted successfully')

def move_issue_handler(environ, issue_id):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    issue = environ['services']['issues'].move_issue(user.id, int(issue_id), parse_int(data.get('column_id'), 'column_id'))
    return ok({"issue": issue}, 'Issue moved successfully')

def assign_issue_handler(environ, issue_id):
    user = authorize_and_get_user(environ)
    data = get_request_data(environ)
    issue = environ['services']['issues'].assign_issue(user.id, int(issue_id), data.get('assignee_id'))
    return ok({"issue": issue}, 'Issue assigned successfully')

# 더 구체적인 경로(leave, reorder, stats)를 ID 경로보다 먼저 둡니다.
ROUTES = [
    ('POST', r'^/api/auth/register$', register_handler),
    ('POST', r'^/api/auth/login$', login_handler),
    ('POST', r'^/api/auth/refresh$', refresh_handler),
    ('GET', r'^/api/auth/me$', me_handler),
    ('GET', r'^/api/auth/check-email/([^/]+)$', check_email_handler),
    ('GET', r'^/api/auth/check-username/([^/]+)$', check_username_handler),

    ('GET', r'^/api/users/profile$', get_profile_handler),
    ('GET', r'^/api/users/stats$', user_stats_handler),
    ('PUT', r'^/api/users/profile$', update_profile_handler),
    ('PUT', r'^/api/users/change-password$', change_password_handler),
    ('DELETE', r'^/api/users/deactivate$', deactivate_account_handler),

    ('GET', r'^/api/projects$', list_projects_handler),
    ('POST', r'^/api/projects$', create_project_handler),
    ('GET', r'^/api/projects/([0-9]+)$', get_project_handler),
    ('PUT', r'^/api/projects/([0-9]+)$', update_project_handler),
    ('DELETE', r'^/api/projects/([0-9]+)$', delete_project_handler),
    ('GET', r'^/api/projects/([0-9]+)/stats$', project_stats_handler),
    ('POST', r'^/api/projects/([0-9]+)/setup-default-board$', setup_default_board_handler),
    ('PUT', r'^/api/projects/([0-9]+)/transfer-ownership$', transfer_ownership_handler),
    ('GET', r'^/api/projects/([0-9]+)/members$', list_members_handler),
    ('POST', r'^/api/projects/([0-9]+)/members$', add_member_handler),
    ('DELETE', r'^/api/projects/([0-9]+)/members/leave$', leave_project_handler),
    ('PUT', r'^/api/projects/([0-9]+)/members/([0-9]+)$', update_member_handler),
    ('DELETE', r'^/api/projects/([0-9]+)/members/([0-9]+)$', remove_member_handler),

    ('GET', r'^/api/boards/project/([0-9]+)$', list_boards_handler),
    ('POST', r'^/api/boards$', create_board_handler),
    ('GET', r'^/api/boards/([0-9]+)$', get_board_handler),
    ('PUT', r'^/api/boards/([0-9]+)$', update_board_handler),
    ('DELETE', r'^/api/boards/([0-9]+)$', delete_board_handler),
    ('GET', r'^/api/boards/([0-9]+)/stats$', board_stats_handler),

    ('GET', r'^/api/columns/board/([0-9]+)$', list_columns_handler),
    ('PATCH', r'^/api/columns/reorder$', reorder_columns_handler),
    ('POST', r'^/api/columns$', create_column_handler),
    ('GET', r'^/api/columns/([0-9]+)$', get_column_handler),
    ('PUT', r'^/api/columns/([0-9]+)$', update_column_handler),
    ('DELETE', r'^/api/columns/([0-9]+)$', delete_column_handler),

    ('GET', r'^/api/issues/column/([0-9]+)$', list_issues_handler),
    ('GET', r'^/api/issues/stats$', issue_stats_handler),
    ('POST', r'^/api/issues$', create_issue_handler),
    ('GET', r'^/api/issues/([0-9]+)$', get_issue_handler),
    ('PUT', r'^/api/issues/([0-9]+)$', update_issue_handler),
    ('DELETE', r'^/api/issues/([0-9]+)$', delete_issue_handler),
    ('PATCH', r'^/api/issues/([0-9]+)/move$', move_issue_handler),
    ('PATCH', r'^/api/issues/([0-9]+)/assign$', assign_issue_handler),
]

# --------------------------------------------------------------------------
## 서버 실행
# --------------------------------------------------------------------------

if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        with make_server(settings.host, settings.port, application) as httpd:
            logger.info("Serving project tracker on port %s...", settings.port)
            httpd.serve_forever()
    except Exception as e:
        print(f"Error starting server: {e}", file=sys.stderr)
