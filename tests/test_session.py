import datetime as dt
import io
import json
from urllib import error as urlerror

import pytest
from conftest import FakeResponse

from opsdesk import session as session_module
from opsdesk.session import (
    AuthenticationError,
    Identity,
    LocalAuthenticator,
    LoginRateLimiter,
    RemoteAuthenticator,
    SessionManager,
    hash_password,
    role_allows,
    sign_value,
    verify_password,
    verify_signed_value,
)

ADMIN = Identity(subject="u-1", name="Office Admin", email="admin@opsdesk.local", role="admin")


def test_password_hash_roundtrip():
    pw_hash, salt = hash_password("secret")
    assert verify_password("secret", pw_hash, salt)
    assert not verify_password("Secret", pw_hash, salt)


def test_signed_values():
    signed = sign_value("token", secret="k")
    assert verify_signed_value(signed, secret="k") == "token"
    assert verify_signed_value(signed, secret="other") is None
    assert verify_signed_value("token.bad", secret="k") is None
    assert verify_signed_value("", secret="k") is None


def test_local_authenticator():
    auth = LocalAuthenticator(
        accounts=[{"id": "u-9", "name": "Lead", "email": "Lead@Example.com", "role": "Project Lead"}],
        password="pw",
    )
    identity = auth.authenticate("lead@example.com", "pw")
    assert identity == Identity(subject="u-9", name="Lead", email="Lead@Example.com", role="project_lead")
    with pytest.raises(AuthenticationError):
        auth.authenticate("lead@example.com", "nope")
    with pytest.raises(AuthenticationError):
        auth.authenticate("ghost@example.com", "pw")


def test_remote_authenticator_login(monkeypatch):
    calls = []

    def fake_urlopen(req, timeout):
        calls.append((req.get_method(), req.full_url, json.loads(req.data.decode("utf-8"))))
        return FakeResponse({"token": "abc", "user": {"id": 7, "name": "Anju", "email": "anju@x.io", "role": "backend"}})

    monkeypatch.setattr(session_module.urlrequest, "urlopen", fake_urlopen)
    identity = RemoteAuthenticator("https://id.example.com/").authenticate("anju@x.io", "pw")

    assert identity == Identity(subject="7", name="Anju", email="anju@x.io", role="backend")
    assert identity.token == "abc"
    assert calls == [("POST", "https://id.example.com/auth/login", {"email": "anju@x.io", "password": "pw"})]


def test_remote_authenticator_me_sends_bearer(monkeypatch):
    seen = {}

    def fake_urlopen(req, timeout):
        seen["auth"] = req.get_header("Authorization")
        return FakeResponse({"id": 1, "email": "a@x.io", "role": "accounts"})

    monkeypatch.setattr(session_module.urlrequest, "urlopen", fake_urlopen)
    identity = RemoteAuthenticator("https://id.example.com").me("tok")
    assert seen["auth"] == "Bearer tok"
    assert identity.role == "accounts"
    assert identity.name == "a@x.io"
    assert identity.token == "tok"


def test_remote_authenticator_error_message(monkeypatch):
    def fake_urlopen(req, timeout):
        body = io.BytesIO(json.dumps({"message": "Account locked"}).encode("utf-8"))
        raise urlerror.HTTPError(req.full_url, 401, "Unauthorized", {}, body)

    monkeypatch.setattr(session_module.urlrequest, "urlopen", fake_urlopen)
    with pytest.raises(AuthenticationError, match="Account locked"):
        RemoteAuthenticator("https://id.example.com").authenticate("a@x.io", "pw")


def test_remote_authenticator_rejects_unknown_role(monkeypatch):
    def fake_urlopen(req, timeout):
        return FakeResponse({"token": "abc", "user": {"id": 1, "email": "a@x.io", "role": "superuser"}})

    monkeypatch.setattr(session_module.urlrequest, "urlopen", fake_urlopen)
    with pytest.raises(AuthenticationError, match="Unsupported role"):
        RemoteAuthenticator("https://id.example.com").authenticate("a@x.io", "pw")


def test_remote_authenticator_unreachable(monkeypatch):
    def fake_urlopen(req, timeout):
        raise urlerror.URLError("connection refused")

    monkeypatch.setattr(session_module.urlrequest, "urlopen", fake_urlopen)
    with pytest.raises(AuthenticationError, match="unreachable"):
        RemoteAuthenticator("https://id.example.com").authenticate("a@x.io", "pw")


def test_session_lifecycle():
    manager = SessionManager(lifetime_hours=1)
    raw_token, created = manager.create(ADMIN)

    assert manager.get(raw_token) is created
    assert created.role == "admin"
    assert created.store.counts()["clients"] == 2
    assert raw_token not in created.token_hash

    assert manager.destroy(raw_token)
    assert manager.get(raw_token) is None
    assert not manager.destroy(raw_token)


def test_sessions_have_separate_stores():
    manager = SessionManager()
    _, first = manager.create(ADMIN)
    _, second = manager.create(ADMIN)
    first.store.add("clients", {"name": "Only mine"})
    assert second.store.counts()["clients"] == 2
    assert first.csrf != second.csrf


def test_expired_session_is_dropped():
    manager = SessionManager()
    raw_token, created = manager.create(ADMIN)
    created.expires_at = session_module.utcnow() - dt.timedelta(seconds=1)
    assert manager.get(raw_token) is None
    assert len(manager) == 0


def test_role_allows():
    assert role_allows("admin", ["admin", "project_lead"])
    assert not role_allows("designer", ["admin"])
    assert not role_allows(None, ["admin"])
    assert not role_allows("root", ["root"])


def test_rate_limiter():
    limiter = LoginRateLimiter(max_attempts=2, window_minutes=1)
    assert limiter.allow("1.2.3.4")
    assert limiter.allow("1.2.3.4")
    assert not limiter.allow("1.2.3.4")
    assert limiter.allow("5.6.7.8")
    limiter.reset()
    assert limiter.allow("1.2.3.4")


def test_expired_sessions_are_purged_on_create(monkeypatch):
    manager = SessionManager(lifetime_hours=1)
    for _ in range(50):
        manager.create(ADMIN)
    later = session_module.utcnow() + dt.timedelta(hours=5)
    monkeypatch.setattr(session_module, "utcnow", lambda: later)

    for _ in range(5):
        manager.create(ADMIN)
    assert len(manager) == 5


def test_rate_limiter_forgets_idle_addresses(monkeypatch):
    limiter = LoginRateLimiter(max_attempts=2, window_minutes=10)
    for i in range(20):
        limiter.allow(f"10.0.0.{i}")
    assert len(limiter) == 20

    later = session_module.utcnow() + dt.timedelta(minutes=11)
    monkeypatch.setattr(session_module, "utcnow", lambda: later)
    assert limiter.allow("10.0.1.1")
    assert len(limiter) == 1


def test_local_refresh_keeps_known_accounts():
    auth = LocalAuthenticator(accounts=[{"id": "u-1", "name": "Admin", "email": "admin@x.io", "role": "admin"}], password="pw")
    identity = auth.authenticate("admin@x.io", "pw")
    assert auth.refresh(identity) is identity
    with pytest.raises(AuthenticationError):
        auth.refresh(Identity(subject="u-2", name="Gone", email="gone@x.io", role="admin"))


def test_remote_refresh_calls_me_with_session_token(monkeypatch):
    seen = []

    def fake_urlopen(req, timeout):
        seen.append((req.full_url, req.get_header("Authorization")))
        return FakeResponse({"id": 7, "name": "Anju", "email": "anju@x.io", "role": "frontend"})

    monkeypatch.setattr(session_module.urlrequest, "urlopen", fake_urlopen)
    auth = RemoteAuthenticator("https://id.example.com")
    current = Identity(subject="7", name="Anju", email="anju@x.io", role="backend", token="abc")

    refreshed = auth.refresh(current)
    assert seen == [("https://id.example.com/auth/me", "Bearer abc")]
    assert refreshed.role == "frontend"
    assert refreshed.token == "abc"

    with pytest.raises(AuthenticationError):
        auth.refresh(Identity(subject="7", name="Anju", email="anju@x.io", role="backend"))
