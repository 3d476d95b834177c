"""Tests for principal resolution and the cron secret check."""
import httpx
import pytest

from launchpad import auth
from launchpad.config import settings
from launchpad.errors import DatastoreUnavailable, Forbidden, Unauthorized
from launchpad.models.profile import Profile
from tests.conftest import create_test_profile


class TestBearerToken:

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "Bearer    "])
    def test_rejects_missing_or_malformed(self, header):
        with pytest.raises(Unauthorized):
            auth._bearer_token(header)

    def test_extracts_token(self):
        assert auth._bearer_token("Bearer abc.def") == "abc.def"
        assert auth._bearer_token("bearer xyz") == "xyz"


class TestSupabaseUser:

    def test_unconfigured_is_unavailable(self, monkeypatch):
        monkeypatch.setattr(settings, "SUPABASE_URL", "")
        with pytest.raises(DatastoreUnavailable):
            auth._fetch_supabase_user("token")

    def _configure(self, monkeypatch, response=None, error=None):
        monkeypatch.setattr(settings, "SUPABASE_URL", "https://project.supabase.co/")
        monkeypatch.setattr(settings, "SUPABASE_ANON_KEY", "anon")
        calls = []

        def _fake_get(url, headers=None, timeout=None):
            calls.append((url, headers))
            if error is not None:
                raise error
            return response

        monkeypatch.setattr(auth.httpx, "get", _fake_get)
        return calls

    def test_valid_token(self, monkeypatch):
        calls = self._configure(monkeypatch, response=httpx.Response(200, json={"id": "user-1", "email": "a@b.c"}))
        assert auth._fetch_supabase_user("tok")["id"] == "user-1"
        url, headers = calls[0]
        assert url == "https://project.supabase.co/auth/v1/user"
        assert headers == {"Authorization": "Bearer tok", "apikey": "anon"}

    def test_rejected_token(self, monkeypatch):
        self._configure(monkeypatch, response=httpx.Response(401, json={"msg": "bad jwt"}))
        with pytest.raises(Unauthorized):
            auth._fetch_supabase_user("tok")

    def test_auth_service_error(self, monkeypatch):
        self._configure(monkeypatch, response=httpx.Response(500))
        with pytest.raises(DatastoreUnavailable):
            auth._fetch_supabase_user("tok")

    def test_network_error(self, monkeypatch):
        self._configure(monkeypatch, error=httpx.ConnectError("refused"))
        with pytest.raises(DatastoreUnavailable):
            auth._fetch_supabase_user("tok")


class TestLoadPrincipal:

    def test_existing_admin_profile(self, db):
        admin = create_test_profile(db, role="admin", name="Admin")
        principal = auth.load_principal(db, admin.id)
        assert principal.user_id == admin.id
        assert principal.is_admin

    def test_first_sight_creates_user_profile(self, db):
        principal = auth.load_principal(db, "fresh-user", email="fresh@example.com")
        assert principal.role == "user"
        assert not principal.is_admin
        profile = db.get(Profile, "fresh-user")
        assert profile is not None
        assert profile.email == "fresh@example.com"

    def test_unknown_role_treated_as_user(self, db):
        odd = create_test_profile(db, role="moderator", name="Odd")
        assert auth.load_principal(db, odd.id).role == "user"

    def test_require_admin(self):
        with pytest.raises(Forbidden):
            auth.require_admin(auth.Principal(user_id="u1"))
        admin = auth.Principal(user_id="u2", role="admin")
        assert auth.require_admin(admin) is admin


class TestCronSecret:

    def test_accepts_matching_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
        assert auth.verify_cron_secret("Bearer s3cret") is None

    def test_rejects_mismatch(self, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
        with pytest.raises(Unauthorized):
            auth.verify_cron_secret("Bearer wrong")
        with pytest.raises(Unauthorized):
            auth.verify_cron_secret(None)
