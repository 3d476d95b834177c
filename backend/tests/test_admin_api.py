"""Tests for admin moderation endpoints and the scheduler-facing cron route."""
from sqlalchemy import update

from launchpad.config import settings
from launchpad.models.startup import Startup
from tests.conftest import auth_headers, create_test_profile, create_test_startup, insert_startup


def _setup(client, db):
    owner = create_test_profile(db, name="Founder")
    admin = create_test_profile(db, role="admin", name="Moderator")
    return owner, admin


class TestAdminStatusChange:
    """Administrator override path."""

    def test_create_and_approve_scenario(self, client, db, notifier):
        owner, admin = _setup(client, db)
        startup = create_test_startup(client, owner.id, name="Acme & Co")
        assert startup["slug"] == "acme-and-co"
        assert startup["status"] == "pending"

        resp = client.post(
            f"/api/admin/startups/{startup['id']}/status",
            json={"status": "approved"},
            headers=auth_headers(admin.id),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["startup"]["status"] == "approved"
        assert body["notifications"] == [
            {"to": settings.ADMIN_EMAIL, "subject": "Startup Approved: Acme & Co", "delivered": True},
        ]
        assert notifier.sent[-1].subject == "Startup Approved: Acme & Co"

        audit = client.get(
            "/api/admin/audit-log", params={"entity_id": startup["id"]}, headers=auth_headers(admin.id),
        ).json()
        assert "set_status_approved" in [e["action"] for e in audit]

    def test_non_admin_forbidden(self, client, db):
        owner, _ = _setup(client, db)
        startup = create_test_startup(client, owner.id, name="Wannabe")
        resp = client.post(
            f"/api/admin/startups/{startup['id']}/status",
            json={"status": "approved"},
            headers=auth_headers(owner.id),
        )
        assert resp.status_code == 403

    def test_notification_outage_does_not_block_approval(self, client, db, notifier):
        owner, admin = _setup(client, db)
        startup = create_test_startup(client, owner.id, name="Resilient")
        notifier.fail = True
        resp = client.post(
            f"/api/admin/startups/{startup['id']}/status",
            json={"status": "approved"},
            headers=auth_headers(admin.id),
        )
        assert resp.status_code == 200
        assert resp.json()["startup"]["status"] == "approved"
        assert resp.json()["notifications"][0]["delivered"] is False

    def test_invalid_status(self, client, db):
        owner, admin = _setup(client, db)
        startup = create_test_startup(client, owner.id, name="Bad Status")
        resp = client.post(
            f"/api/admin/startups/{startup['id']}/status",
            json={"status": "deleted"},
            headers=auth_headers(admin.id),
        )
        assert resp.status_code == 400

    def test_missing_startup(self, client, db):
        _, admin = _setup(client, db)
        resp = client.post(
            "/api/admin/startups/00000000-0000-0000-0000-000000000000/status",
            json={"status": "approved"},
            headers=auth_headers(admin.id),
        )
        assert resp.status_code == 404


class TestModerationQueue:

    def test_filter_by_status(self, client, db):
        owner, admin = _setup(client, db)
        a = create_test_startup(client, owner.id, name="Queue A")
        create_test_startup(client, owner.id, name="Queue B")
        client.post(
            f"/api/admin/startups/{a['id']}/status", json={"status": "rejected"}, headers=auth_headers(admin.id),
        )

        pending = client.get("/api/admin/startups", params={"status": "pending"}, headers=auth_headers(admin.id))
        rejected = client.get("/api/admin/startups", params={"status": "rejected"}, headers=auth_headers(admin.id))
        everything = client.get("/api/admin/startups", headers=auth_headers(admin.id))

        assert [s["slug"] for s in pending.json()] == ["queue-b"]
        assert [s["slug"] for s in rejected.json()] == ["queue-a"]
        assert len(everything.json()) == 2

    def test_unknown_filter_rejected(self, client, db):
        _, admin = _setup(client, db)
        resp = client.get("/api/admin/startups", params={"status": "weird"}, headers=auth_headers(admin.id))
        assert resp.status_code == 400

    def test_queue_requires_admin(self, client, db):
        owner, _ = _setup(client, db)
        assert client.get("/api/admin/startups", headers=auth_headers(owner.id)).status_code == 403


class TestSweeps:
    """Reconciliation and slug repair triggered from the admin UI."""

    def test_reconcile_endpoint(self, client, db):
        owner, admin = _setup(client, db)
        bad = insert_startup(db, owner.id, "Legacy", "legacy", status="archived")

        resp = client.post("/api/admin/reconcile", headers=auth_headers(admin.id))
        assert resp.status_code == 200
        body = resp.json()
        assert body["repaired_count"] == 1
        assert body["repaired_ids"] == [bad.id]
        assert body["repaired"][0]["previous_status"] == "archived"

        again = client.post("/api/admin/reconcile", headers=auth_headers(admin.id))
        assert again.json()["repaired_count"] == 0

    def test_repair_slugs_endpoint(self, client, db):
        owner, admin = _setup(client, db)
        broken = insert_startup(db, owner.id, "Fix Me", "Fix Me!")

        resp = client.post("/api/admin/repair-slugs", headers=auth_headers(admin.id))
        assert resp.status_code == 200
        assert resp.json()["repaired"] == [{"id": broken.id, "old_slug": "Fix Me!", "new_slug": "fix-me"}]

    def test_sweeps_require_admin(self, client, db):
        owner, _ = _setup(client, db)
        assert client.post("/api/admin/reconcile", headers=auth_headers(owner.id)).status_code == 403
        assert client.post("/api/admin/repair-slugs", headers=auth_headers(owner.id)).status_code == 403


class TestRoles:

    def test_promote_user_to_admin(self, client, db):
        owner, admin = _setup(client, db)
        resp = client.patch(
            f"/api/admin/users/{owner.id}/role", json={"role": "admin"}, headers=auth_headers(admin.id),
        )
        assert resp.status_code == 200
        assert resp.json()["role"] == "admin"
        # The promoted user can now use admin endpoints
        assert client.get("/api/admin/startups", headers=auth_headers(owner.id)).status_code == 200

    def test_unknown_role_rejected(self, client, db):
        owner, admin = _setup(client, db)
        resp = client.patch(
            f"/api/admin/users/{owner.id}/role", json={"role": "superuser"}, headers=auth_headers(admin.id),
        )
        assert resp.status_code == 422

    def test_unknown_user(self, client, db):
        _, admin = _setup(client, db)
        resp = client.patch(
            "/api/admin/users/nobody/role", json={"role": "admin"}, headers=auth_headers(admin.id),
        )
        assert resp.status_code == 404


class TestCron:
    """Scheduler entry point guarded by CRON_SECRET."""

    def test_wrong_secret_rejected(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
        assert client.get("/api/cron/reconcile").status_code == 401
        resp = client.get("/api/cron/reconcile", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_disabled_without_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "")
        resp = client.get("/api/cron/reconcile", headers={"Authorization": "Bearer "})
        assert resp.status_code == 401

    def test_scheduled_run_repairs(self, client, db, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
        owner = create_test_profile(db)
        bad = insert_startup(db, owner.id, "Garbage", "garbage")
        db.execute(update(Startup).where(Startup.id == bad.id).values(status="???"))
        db.commit()

        resp = client.get("/api/cron/reconcile", headers={"Authorization": "Bearer s3cret"})
        assert resp.status_code == 200
        assert resp.json()["repaired_ids"] == [bad.id]
