"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Viewer role denied count, catalog and approval operations (403)
- Supervisor can record and confirm counts but not approve transactions
- Admin role can perform every operation
- Login and session lifecycle
"""

import pytest

from colporter.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    ROLES,
    get_all_permission_codes,
    get_role_permissions,
    validate_permission_code,
    validate_role,
)
from conftest import PASSWORD, auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/books"),
            ("POST", "/api/books"),
            ("GET", "/api/books/1"),
            ("PUT", "/api/books/1"),
            ("PATCH", "/api/books/1/toggle-status"),
            ("GET", "/api/books/1/movements"),
            ("GET", "/api/books/counts/2024-06-10"),
            ("GET", "/api/books/counts/2024-06-10/sheet"),
            ("POST", "/api/books/1/counts"),
            ("GET", "/api/transactions"),
            ("POST", "/api/transactions"),
            ("PATCH", "/api/transactions/1/approve"),
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
        ],
    )
    def test_requires_auth(self, client, seed, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, seed):
        resp = client.get("/api/books", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"


# =============================================================================
# VIEWER DENIED - 403
# =============================================================================


class TestViewerDenied:
    """Viewer role reads and reports transactions only."""

    def test_cannot_record_counts(self, client, seed, viewer_headers):
        resp = client.post(
            f"/api/books/{seed['book'].id}/counts",
            json={"manualCount": 1, "countDate": "2024-06-10"},
            headers=viewer_headers,
        )
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "RECORD_COUNTS"

    def test_cannot_create_books(self, client, viewer_headers):
        resp = client.post("/api/books", json={"title": "X"}, headers=viewer_headers)
        assert resp.status_code == 403

    def test_cannot_toggle_books(self, client, seed, viewer_headers):
        resp = client.patch(f"/api/books/{seed['book'].id}/toggle-status", headers=viewer_headers)
        assert resp.status_code == 403

    def test_cannot_approve_transactions(self, client, seed, viewer_headers):
        resp = client.patch("/api/transactions/1/approve", headers=viewer_headers)
        assert resp.status_code == 403

    def test_can_list_books(self, client, seed, viewer_headers):
        resp = client.get("/api/books", headers=viewer_headers)
        assert resp.status_code == 200


# =============================================================================
# SUPERVISOR
# =============================================================================


class TestSupervisorAccess:

    def test_can_confirm_discrepancy(self, client, seed, supervisor_headers):
        book_id = seed["book"].id
        body = {"manualCount": 98, "countDate": "2024-06-10"}
        assert client.post(f"/api/books/{book_id}/counts", json=body, headers=supervisor_headers).status_code == 200

        body.update(confirmDiscrepancy=True, setVerified=True)
        resp = client.post(f"/api/books/{book_id}/counts", json=body, headers=supervisor_headers)
        assert resp.status_code == 200
        assert resp.json["book"]["stock"] == 98

    def test_cannot_approve_transactions(self, client, seed, supervisor_headers):
        resp = client.patch("/api/transactions/1/approve", headers=supervisor_headers)
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "APPROVE_TRANSACTIONS"


class TestRoleDefinitions:

    def test_roles_grant_only_defined_permissions(self):
        assert set(DEFAULT_ROLE_PERMISSIONS) == set(ROLES)
        for role in ROLES:
            assert validate_role(role)
            for code in DEFAULT_ROLE_PERMISSIONS[role]:
                assert validate_permission_code(code), (role, code)

    def test_admin_holds_every_permission(self):
        assert get_role_permissions("ADMIN") == set(get_all_permission_codes())

    def test_unknown_role(self):
        assert not validate_role("OWNER")
        assert get_role_permissions("OWNER") == set()
        assert get_role_permissions(None) == set()


# =============================================================================
# LOGIN AND SESSIONS
# =============================================================================


class TestLogin:

    def test_login_returns_role_permissions(self, client, seed):
        resp = client.post("/api/auth/login", json={"username": "supervisor", "password": PASSWORD})
        assert resp.status_code == 200
        data = resp.json
        assert data["token"]
        assert data["program_id"] == seed["supervisor"].program_id
        assert set(data["permissions"]) == get_role_permissions("SUPERVISOR")
        assert data["settings"]["count_success_notice_seconds"] == 3

    def test_login_by_email(self, client, seed):
        resp = client.post("/api/auth/login", json={"email": "viewer@colporter.test", "password": PASSWORD})
        assert resp.status_code == 200

    def test_wrong_password(self, client, seed):
        resp = client.post("/api/auth/login", json={"username": "admin", "password": "Wrong123!"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid credentials"

    def test_missing_fields(self, client, seed):
        resp = client.post("/api/auth/login", json={"username": "admin"})
        assert resp.status_code == 400

    def test_inactive_user_cannot_login(self, client, db_session, seed):
        seed["viewer"].is_active = False
        db_session.commit()
        assert get_auth_token(client, "viewer") is None

    def test_me(self, client, seed, admin_headers):
        resp = client.get("/api/auth/me", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["username"] == "admin"
        assert "CONFIRM_DISCREPANCIES" in resp.json["permissions"]

    def test_logout_revokes_token(self, client, seed):
        headers = auth_headers(get_auth_token(client, "admin"))
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_deactivated_user_token_rejected(self, client, db_session, seed, viewer_headers):
        seed["viewer"].is_active = False
        db_session.commit()
        assert client.get("/api/books", headers=viewer_headers).status_code == 401


# =============================================================================
# PUBLIC ENDPOINTS - NO AUTH REQUIRED
# =============================================================================


class TestPublicEndpoints:

    def test_health(self, client, seed):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["database"]["details"]["books"] == 1

    def test_cors_header_for_allowed_origin(self, client, seed):
        resp = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

    def test_no_cors_header_for_unknown_origin(self, client, seed):
        resp = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers
