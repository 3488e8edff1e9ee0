# tests/test_app.py
import io
import json
from wsgiref.util import setup_testing_defaults

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src import app as app_module
from src.database.database import Base
from src.services.exceptions import *

PASSWORD = "Secret123"

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def client(monkeypatch):
    """요청마다 같은 인메모리 DB를 쓰도록 SessionLocal을 바꿔 끼운 WSGI 호출 함수."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setattr(app_module, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=engine))

    def call(method, path, body=None, token=None, query=""):
        raw = json.dumps(body).encode("utf-8") if body is not None else b""
        environ = {
            "REQUEST_METHOD": method,
            "PATH_INFO": path,
            "QUERY_STRING": query,
            "CONTENT_LENGTH": str(len(raw)),
            "wsgi.input": io.BytesIO(raw),
        }
        if token:
            environ["HTTP_AUTHORIZATION"] = f"Bearer {token}"
        setup_testing_defaults(environ)

        captured = {}
        def start_response(status, headers):
            captured["status"] = status
        response = b"".join(app_module.application(environ, start_response))
        return int(captured["status"].split()[0]), json.loads(response)

    yield call
    engine.dispose()

def register(client, username):
    status, body = client("POST", "/api/auth/register", {
        "email": f"{username}@example.com", "password": PASSWORD, "username": username
    })
    assert status == 201
    return body["data"]["token"]

# ===================================================================
#  에러 매핑(Error Map) 테스트
# ===================================================================
class TestHandleException:
    @pytest.mark.parametrize("error, status", [
        (NotAMemberError(), "403 Forbidden"),
        (InsufficientPermissionError("PROJECT_UPDATE"), "403 Forbidden"),
        (BoardNotFoundError("Board not found."), "404 Not Found"),
        (UnknownRoleError("Unknown role 'X'."), "400 Bad Request"),
        (TokenExpiredError("Token has expired."), "401 Unauthorized"),
        (OwnerCannotLeaveError("..."), "400 Bad Request"),
    ])
    def test_known_errors(self, error, status):
        assert app_module.handle_exception(error)[0] == status

    def test_unexpected_error_is_hidden(self):
        """예상하지 못한 예외는 내부 메시지를 숨긴 500으로 응답해야 합니다."""
        status, body = app_module.handle_exception(InvariantViolationError("membership row leaked"))

        assert status == "500 Internal Server Error"
        assert "leaked" not in body

# ===================================================================
#  API 흐름(End-to-End) 테스트
# ===================================================================
class TestApiFlow:
    def test_requires_token(self, client):
        status, body = client("GET", "/api/projects")

        assert status == 401
        assert body["success"] is False

    def test_unknown_route(self, client):
        assert client("GET", "/api/nowhere")[0] == 404

    def test_project_roles_end_to_end(self, client):
        """소유자, VIEWER, 비멤버가 같은 프로젝트에 접근할 때의 응답을 테스트합니다."""
        # === Arrange ===
        owner_token = register(client, "owner")
        viewer_token = register(client, "viewer")
        stranger_token = register(client, "stranger")

        status, body = client("POST", "/api/projects", {"name": "Tracker"}, owner_token)
        assert status == 201
        project_id = body["data"]["project"]["id"]

        status, _ = client("POST", f"/api/projects/{project_id}/members",
                           {"email": "viewer@example.com", "role": "VIEWER"}, owner_token)
        assert status == 201

        # === Act & Assert ===
        status, body = client("GET", f"/api/projects/{project_id}", token=viewer_token)
        assert status == 200
        assert body["data"]["project"]["user_role"] == "VIEWER"

        status, body = client("PUT", f"/api/projects/{project_id}", {"name": "Renamed"}, viewer_token)
        assert status == 403
        assert "PROJECT_UPDATE" in body["message"]

        status, body = client("GET", f"/api/projects/{project_id}", token=stranger_token)
        assert status == 403
        # 존재하지 않는 프로젝트와 같은 응답이어야 합니다.
        assert client("GET", "/api/projects/999", token=stranger_token) == (status, body)

        status, body = client("GET", f"/api/projects/{project_id}/members", token=viewer_token)
        assert [m["role"] for m in body["data"]["members"]] == ["OWNER", "VIEWER"]

    def test_board_setup_and_reorder(self, client):
        # === Arrange ===
        owner_token = register(client, "owner")
        project_id = client("POST", "/api/projects", {"name": "Tracker"}, owner_token)[1]["data"]["project"]["id"]

        status, body = client("POST", f"/api/projects/{project_id}/setup-default-board", token=owner_token)
        assert status == 201
        board_id = body["data"]["board"]["id"]
        c1, c2, c3 = [c["id"] for c in body["data"]["columns"]]

        # === Act ===
        status, body = client("PATCH", "/api/columns/reorder",
                              {"board_id": board_id, "column_ids": [c3, c1, c2]}, owner_token)

        # === Assert ===
        assert status == 200
        assert [(c["id"], c["order_index"]) for c in body["data"]["columns"]] == [(c3, 0), (c1, 1), (c2, 2)]
        assert client("GET", "/api/boards/999", token=owner_token)[0] == 404
        assert client("POST", f"/api/projects/{project_id}/setup-default-board", token=owner_token)[0] == 400

    def test_transfer_ownership(self, client):
        owner_token = register(client, "owner")
        heir_token = register(client, "heir")
        project_id = client("POST", "/api/projects", {"name": "Tracker"}, owner_token)[1]["data"]["project"]["id"]

        status, _ = client("PUT", f"/api/projects/{project_id}/transfer-ownership",
                           {"new_owner_email": "heir@example.com"}, owner_token)
        assert status == 200

        # 이전 소유자는 ADMIN이 되어 프로젝트를 떠날 수 있고, 새 소유자는 떠날 수 없습니다.
        body = client("GET", f"/api/projects/{project_id}/members", token=heir_token)[1]
        assert [(m["user"]["username"], m["role"]) for m in body["data"]["members"]] == [("heir", "OWNER"), ("owner", "ADMIN")]
        assert client("DELETE", f"/api/projects/{project_id}/members/leave", token=heir_token)[0] == 400
        assert client("DELETE", f"/api/projects/{project_id}/members/leave", token=owner_token)[0] == 200

    def test_account_endpoints(self, client):
        token = register(client, "owner")

        status, body = client("GET", "/api/auth/check-email/owner%40example.com")
        assert status == 200
        assert body["data"] == {"email": "owner@example.com", "available": False}
        assert client("GET", "/api/auth/check-username/fresh_name")[1]["data"]["available"] is True

        status, _ = client("PUT", "/api/users/change-password",
                           {"current_password": PASSWORD, "new_password": "Changed99"}, token)
        assert status == 200
        assert client("POST", "/api/auth/login", {"email": "owner@example.com", "password": "Changed99"})[0] == 200

        assert client("DELETE", "/api/users/deactivate", token=token)[0] == 200
        assert client("GET", "/api/auth/me", token=token)[0] == 401

    def test_profile_and_stats(self, client):
        token = register(client, "owner")
        project_id = client("POST", "/api/projects", {"name": "Tracker"}, token)[1]["data"]["project"]["id"]
        client("POST", f"/api/projects/{project_id}/setup-default-board", token=token)

        status, body = client("GET", "/api/users/profile", token=token)
        assert status == 200
        assert body["data"]["user"]["username"] == "owner"
        assert body["data"]["user"]["project_count"] == 1

        status, body = client("GET", "/api/users/stats", token=token)
        assert status == 200
        assert body["data"]["stats"]["total_projects"] == 1
        assert body["data"]["stats"]["total_boards"] == 1
        assert body["data"]["stats"]["account_created"] is not None

    @pytest.mark.parametrize("method, path, body", [
        ("POST", "/api/boards", {"project_id": None, "name": "B"}),
        ("POST", "/api/columns", {"board_id": {"id": 1}, "name": "C"}),
        ("PATCH", "/api/columns/reorder", {"board_id": [1], "column_ids": []}),
        ("POST", "/api/issues", {"column_id": "abc", "title": "T"}),
        ("PATCH", "/api/issues/1/move", {"column_id": None}),
    ])
    def test_malformed_ids_are_bad_requests(self, client, method, path, body):
        token = register(client, "owner")

        status, response = client(method, path, body, token)

        assert status == 400
        assert "must be an integer" in response["message"]
