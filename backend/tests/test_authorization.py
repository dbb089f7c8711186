"""
Authorization tests for the ShopDesk API.

Verifies:
- Unauthenticated requests return 401
- Workers are limited to their explicit grants (403 otherwise)
- Expired admins are locked out of every gated route
- Plan overrides gate admin routes immediately after assignment
- The super-admin console requires its token
"""

from datetime import timedelta

import pytest

from shopdesk.models import SecurityEvent, Subscription
from shopdesk.services import subscription_service
from shopdesk.time_utils import utcnow
from conftest import PASSWORD, auth_headers, get_auth_token, super_headers


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/dashboard/summary"),
            ("GET", "/api/dashboard/daily"),
            ("GET", "/api/dashboard/weekly"),
            ("GET", "/api/dashboard/categories"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("PUT", "/api/sales/1"),
            ("DELETE", "/api/sales/1"),
            ("GET", "/api/products"),
            ("GET", "/api/credits"),
            ("POST", "/api/credits/cash"),
            ("GET", "/api/expenses"),
            ("GET", "/api/workers"),
            ("GET", "/api/payments"),
            ("POST", "/api/payments"),
            ("GET", "/api/customers"),
            ("PUT", "/api/workers/1/permissions"),
            ("GET", "/api/settings"),
            ("PUT", "/api/settings/timezone"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/sales", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401

    def test_logout_revokes_token(self, client, admin):
        token = get_auth_token(client, admin.email)
        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401


class TestLogin:

    def test_wrong_password_logged(self, client, db_session, admin):
        resp = client.post("/api/auth/login", json={"email": admin.email, "password": "Wrong123!x"})
        assert resp.status_code == 401
        assert db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").count() == 1

    def test_signup_starts_trial(self, client, db_session):
        resp = client.post("/api/auth/signup", json={
            "email": "New@Shop.pk",
            "password": PASSWORD,
            "full_name": "New Owner",
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["user"]["email"] == "new@shop.pk"
        assert body["user"]["role"] == "admin"
        assert body["permissions"]["invoice"]["create"] is True

        me = client.get("/api/auth/me", headers=auth_headers(body["token"])).get_json()
        assert me["subscription"]["effective_status"] == "trial"

    def test_signup_rejects_weak_password(self, client, db_session):
        resp = client.post("/api/auth/signup", json={"email": "weak@shop.pk", "password": "short"})
        assert resp.status_code == 400

    def test_signup_rejects_duplicate_email(self, client, admin):
        resp = client.post("/api/auth/signup", json={"email": admin.email, "password": PASSWORD})
        assert resp.status_code == 400


# =============================================================================
# WORKER GRANTS - 403
# =============================================================================


class TestWorkerGrants:
    """Worker holds only {sales: view}."""

    def test_can_view_sales(self, client, worker_headers):
        assert client.get("/api/sales", headers=worker_headers).status_code == 200

    def test_cannot_create_invoice(self, client, db_session, worker_headers):
        resp = client.post("/api/sales", headers=worker_headers, json={
            "items": [{"product_name": "Tea", "unit_price": 10}],
        })
        assert resp.status_code == 403
        assert resp.get_json() == {"error": "Permission denied", "feature": "invoice", "action": "create"}
        assert db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").count() == 1

    @pytest.mark.parametrize(
        "method,path",
        [
            ("DELETE", "/api/sales/1"),
            ("GET", "/api/products"),
            ("GET", "/api/credits"),
            ("POST", "/api/credits/cash"),
            ("GET", "/api/expenses"),
            ("PUT", "/api/sales/1"),
            ("GET", "/api/payments"),
            ("POST", "/api/payments"),
            ("GET", "/api/customers"),
            ("GET", "/api/customers/invoices?name=Ali"),
            ("GET", "/api/dashboard/categories"),
        ],
    )
    def test_no_row_means_denied(self, client, worker_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=worker_headers, json={})
        assert resp.status_code == 403

    def test_workers_never_manage_workers(self, client, admin, worker, worker_headers):
        resp = client.put(
            f"/api/workers/{worker.id}/permissions",
            headers=worker_headers,
            json={"permissions": {"workers": {"view": True, "create": True, "edit": True}}},
        )
        assert resp.status_code == 403

    def test_grant_applies_on_next_request(self, client, admin_headers, worker, worker_headers):
        assert client.get("/api/products", headers=worker_headers).status_code == 403

        resp = client.put(
            f"/api/workers/{worker.id}/permissions",
            headers=admin_headers,
            json={"permissions": {"inventory": {"view": True}}},
        )
        assert resp.status_code == 200

        assert client.get("/api/products", headers=worker_headers).status_code == 200
        # Replaced, not merged: the earlier sales grant is gone
        assert client.get("/api/sales", headers=worker_headers).status_code == 403

    def test_me_reports_matrix(self, client, worker_headers):
        body = client.get("/api/auth/me", headers=worker_headers).get_json()
        assert body["user"]["role"] == "worker"
        assert body["permissions"]["sales"] == {"view": True, "create": False, "edit": False, "delete": False}


# =============================================================================
# ADMIN SUBSCRIPTION STATE
# =============================================================================


class TestAdminSubscription:

    def test_trial_admin_has_full_access(self, client, admin_headers):
        assert client.get("/api/products", headers=admin_headers).status_code == 200
        assert client.get("/api/expenses", headers=admin_headers).status_code == 200

    def test_expired_admin_locked_out(self, client, db_session, admin, admin_headers):
        subscription = db_session.query(Subscription).filter_by(admin_id=admin.id).first()
        subscription.end_date = utcnow() - timedelta(minutes=1)
        db_session.commit()

        for path in ("/api/sales", "/api/products", "/api/credits", "/api/dashboard/summary"):
            assert client.get(path, headers=admin_headers).status_code == 403, path

    def test_plan_overrides_gate_routes(self, client, admin, admin_headers, plan_b):
        subscription_service.assign_plan(admin.id, plan_b.id)

        assert client.get("/api/sales", headers=admin_headers).status_code == 200
        assert client.get("/api/products", headers=admin_headers).status_code == 403


# =============================================================================
# SUPER-ADMIN CONSOLE
# =============================================================================


class TestSuperAdmin:

    def test_requires_token(self, client, db_session):
        assert client.get("/api/super-admin/plans").status_code == 403
        assert client.get("/api/super-admin/plans", headers=super_headers("wrong")).status_code == 403

    def test_session_token_is_not_enough(self, client, admin_headers):
        assert client.get("/api/super-admin/admins", headers=admin_headers).status_code == 403

    def test_assign_then_reassign(self, client, admin, plan_a, plan_b):
        for plan in (plan_a, plan_b):
            resp = client.post(
                "/api/super-admin/subscriptions/assign",
                headers=super_headers(),
                json={"admin_id": admin.id, "plan_id": plan.id},
            )
            assert resp.status_code == 200

        overrides = client.get(f"/api/super-admin/admins/{admin.id}/overrides", headers=super_headers()).get_json()
        assert set(overrides["features"]) == {"sales", "invoice"}

    def test_create_plan_rejects_unknown_feature(self, client, db_session):
        resp = client.post(
            "/api/super-admin/plans",
            headers=super_headers(),
            json={"name": "Odd", "features": {"teleport": {"view": True}}},
        )
        assert resp.status_code == 400

    def test_replace_overrides(self, client, admin, admin_headers):
        resp = client.put(
            f"/api/super-admin/admins/{admin.id}/overrides",
            headers=super_headers(),
            json={"features": {"expenses": {"view": True}}},
        )
        assert resp.status_code == 200
        assert client.get("/api/expenses", headers=admin_headers).status_code == 200
        assert client.get("/api/sales", headers=admin_headers).status_code == 403

    def test_unset_secret_disables_console(self, app, client, db_session):
        from shopdesk.services.secret_store import StaticSecretStore, init_app

        original = app.extensions["secret_store"]
        init_app(app, StaticSecretStore({}))
        try:
            assert client.get("/api/super-admin/plans", headers=super_headers()).status_code == 403
        finally:
            app.extensions["secret_store"] = original

    def test_feature_catalog(self, client, db_session):
        features = client.get("/api/super-admin/features", headers=super_headers()).get_json()["features"]
        assert [f["feature"] for f in features][:3] == ["invoice", "inventory", "sales"]
        assert all(f["label"] for f in features)

    def test_security_event_feed(self, client, db_session):
        client.get("/api/super-admin/plans", headers=super_headers("wrong"))

        resp = client.get(
            "/api/super-admin/security-events?event_type=SUPER_ADMIN_DENIED",
            headers=super_headers(),
        )
        events = resp.get_json()["events"]
        assert resp.status_code == 200
        assert len(events) == 1
        assert events[0]["success"] is False
