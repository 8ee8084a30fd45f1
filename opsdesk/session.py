"""Identity, login and session lifecycle.

Decision rationale:
- The role comes from the authenticator as part of the verified identity; the
  browser never chooses it.
- A session object is created at login and destroyed at logout. It owns the
  user's record store, so nothing reads login state from ambient globals.
- The sidebar hides links the role cannot use, but every route still checks the
  role on each request.
"""

from __future__ import annotations

import base64
import datetime as dt
import hashlib
import hmac
import json
import logging
import secrets
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple
from urllib import error as urlerror
from urllib import request as urlrequest

from .config import (
    AUTH_API_URL,
    AUTH_TIMEOUT,
    DEMO_PASSWORD,
    LOGIN_MAX_ATTEMPTS,
    LOGIN_WINDOW_MINUTES,
    SECRET_KEY,
    SESSION_HOURS,
)
from .screens import ROLE_OPTIONS, normalize_role
from .store import RecordStore

LOGGER = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when credentials are rejected or the identity service fails."""


@dataclass(frozen=True)
class Identity:
    subject: str
    name: str
    email: str
    role: str
    # Bearer token from the identity service; empty for demo accounts.
    token: str = field(default="", repr=False, compare=False)


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def hash_password(password: str, salt_b64: Optional[str] = None) -> Tuple[str, str]:
    salt = base64.b64decode(salt_b64) if salt_b64 else secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, 310_000)
    return base64.b64encode(digest).decode("utf-8"), base64.b64encode(salt).decode("utf-8")


def verify_password(password: str, expected_hash: str, salt_b64: str) -> bool:
    computed, _ = hash_password(password, salt_b64)
    return hmac.compare_digest(computed, expected_hash)


def token_hash(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def sign_value(value: str, secret: str = SECRET_KEY) -> str:
    digest = hmac.new(secret.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).hexdigest()
    return f"{value}.{digest}"


def verify_signed_value(signed: str, secret: str = SECRET_KEY) -> Optional[str]:
    if not signed or "." not in signed:
        return None
    value, digest = signed.rsplit(".", 1)
    expected = hmac.new(secret.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).hexdigest()
    if hmac.compare_digest(digest, expected):
        return value
    return None


DEMO_ACCOUNTS: List[Dict[str, str]] = [
    {"id": "u-admin", "name": "Office Admin", "email": "admin@opsdesk.local", "role": "admin"},
    {"id": "u-lead", "name": "Ravi Coordinator", "email": "lead@opsdesk.local", "role": "project_lead"},
    {"id": "u-design", "name": "Digital Solutions", "email": "design@opsdesk.local", "role": "designer"},
    {"id": "u-frontend", "name": "Naveen KR", "email": "frontend@opsdesk.local", "role": "frontend"},
    {"id": "u-backend", "name": "Anju Rani", "email": "backend@opsdesk.local", "role": "backend"},
    {"id": "u-accounts", "name": "Accounts Desk", "email": "accounts@opsdesk.local", "role": "accounts"},
]


class LocalAuthenticator:
    """Demo directory with one account per role, all sharing one password."""

    def __init__(self, accounts: Iterable[Dict[str, str]] = DEMO_ACCOUNTS, password: str = DEMO_PASSWORD):
        self._accounts: Dict[str, Dict[str, str]] = {}
        for account in accounts:
            pw_hash, pw_salt = hash_password(account.get("password", password))
            entry = dict(account)
            entry.pop("password", None)
            entry["password_hash"] = pw_hash
            entry["password_salt"] = pw_salt
            self._accounts[account["email"].strip().lower()] = entry

    def authenticate(self, email: str, password: str) -> Identity:
        account = self._accounts.get(email.strip().lower())
        if not account or not verify_password(password, account["password_hash"], account["password_salt"]):
            raise AuthenticationError("Invalid credentials.")
        role = normalize_role(account.get("role"))
        if role is None:
            raise AuthenticationError("Account has no usable role.")
        return Identity(subject=account["id"], name=account["name"], email=account["email"], role=role)

    def refresh(self, identity: Identity) -> Identity:
        if identity.email.strip().lower() not in self._accounts:
            raise AuthenticationError("Account no longer exists.")
        return identity


class RemoteAuthenticator:
    """Identity service client: ``POST /auth/login`` then ``GET /auth/me``."""

    def __init__(self, base_url: str, timeout: float = AUTH_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _call(self, method: str, path: str, payload: Optional[Dict[str, object]] = None, token: str = "") -> Dict[str, object]:
        body = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urlrequest.Request(f"{self.base_url}{path}", data=body, method=method)
        req.add_header("Accept", "application/json")
        if payload is not None:
            req.add_header("Content-Type", "application/json")
        if token:
            req.add_header("Authorization", f"Bearer {token}")
        try:
            with urlrequest.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8", errors="ignore")
        except urlerror.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore")[:400]
            message = ""
            try:
                parsed = json.loads(detail) if detail else {}
                if isinstance(parsed, dict):
                    message = str(parsed.get("message") or "")
            except json.JSONDecodeError:
                message = ""
            raise AuthenticationError(message or f"Login failed ({exc.code}).") from exc
        except urlerror.URLError as exc:
            raise AuthenticationError(f"Identity service unreachable: {exc.reason}") from exc
        try:
            data = json.loads(raw) if raw else {}
        except json.JSONDecodeError as exc:
            raise AuthenticationError("Identity service returned an invalid response.") from exc
        if not isinstance(data, dict):
            raise AuthenticationError("Identity service returned an invalid response.")
        return data

    def _identity(self, user: object, token: str = "") -> Identity:
        if not isinstance(user, dict):
            raise AuthenticationError("Identity service response missing user.")
        role = normalize_role(user.get("role"))
        if role is None:
            raise AuthenticationError(f"Unsupported role: {user.get('role')!r}")
        return Identity(
            subject=str(user.get("id") or ""),
            name=str(user.get("name") or user.get("email") or ""),
            email=str(user.get("email") or ""),
            role=role,
            token=token,
        )

    def authenticate(self, email: str, password: str) -> Identity:
        data = self._call("POST", "/auth/login", {"email": email, "password": password})
        token = str(data.get("token") or "")
        if not token:
            raise AuthenticationError("Identity service response missing token.")
        return self._identity(data.get("user"), token)

    def me(self, token: str) -> Identity:
        return self._identity(self._call("GET", "/auth/me", token=token), token)

    def refresh(self, identity: Identity) -> Identity:
        """Re-read the identity behind a live session; a revoked token raises."""
        if not identity.token:
            raise AuthenticationError("Session has no identity service token.")
        return self.me(identity.token)


def default_authenticator():
    if AUTH_API_URL:
        return RemoteAuthenticator(AUTH_API_URL)
    return LocalAuthenticator()


@dataclass
class Session:
    token_hash: str
    identity: Identity
    csrf: str
    expires_at: dt.datetime
    store: RecordStore = field(default_factory=RecordStore)
    verified_at: dt.datetime = field(default_factory=lambda: utcnow())

    @property
    def role(self) -> str:
        return self.identity.role

    def is_expired(self, now: Optional[dt.datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at


class SessionManager:
    """In-memory session table keyed by token hash."""

    def __init__(self, lifetime_hours: int = SESSION_HOURS):
        self.lifetime = dt.timedelta(hours=lifetime_hours)
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self, identity: Identity) -> Tuple[str, Session]:
        raw_token = secrets.token_urlsafe(32)
        session = Session(
            token_hash=token_hash(raw_token),
            identity=identity,
            csrf=secrets.token_urlsafe(24),
            expires_at=utcnow() + self.lifetime,
        )
        with self._lock:
            self._purge_expired()
            self._sessions[session.token_hash] = session
        LOGGER.info("Session opened for %s (%s)", identity.email, identity.role)
        return raw_token, session

    def _purge_expired(self) -> None:
        now = utcnow()
        expired = [key for key, item in self._sessions.items() if item.is_expired(now)]
        for key in expired:
            del self._sessions[key]
        if expired:
            LOGGER.info("Purged %d expired session(s)", len(expired))

    def get(self, raw_token: Optional[str]) -> Optional[Session]:
        if not raw_token:
            return None
        key = token_hash(raw_token)
        with self._lock:
            session = self._sessions.get(key)
            if session is not None and session.is_expired():
                del self._sessions[key]
                LOGGER.info("Session expired for %s", session.identity.email)
                return None
        return session

    def destroy(self, raw_token: Optional[str]) -> bool:
        if not raw_token:
            return False
        with self._lock:
            session = self._sessions.pop(token_hash(raw_token), None)
        if session is not None:
            LOGGER.info("Session closed for %s", session.identity.email)
        return session is not None

    def __len__(self) -> int:
        return len(self._sessions)


def role_allows(role: Optional[str], allowed_roles: Iterable[str]) -> bool:
    if role is None or role not in ROLE_OPTIONS:
        return False
    return role in set(allowed_roles)


class LoginRateLimiter:
    def __init__(self, max_attempts: int = LOGIN_MAX_ATTEMPTS, window_minutes: int = LOGIN_WINDOW_MINUTES):
        self.max_attempts = max_attempts
        self.window = dt.timedelta(minutes=window_minutes)
        self._history: Dict[str, List[dt.datetime]] = {}
        self._lock = threading.Lock()

    def allow(self, ip: str) -> bool:
        now = utcnow()
        cutoff = now - self.window
        with self._lock:
            for key in [k for k, events in self._history.items() if not events or events[-1] < cutoff]:
                del self._history[key]
            history = [event for event in self._history.get(ip, []) if event >= cutoff]
            if len(history) >= self.max_attempts:
                self._history[ip] = history
                return False
            history.append(now)
            self._history[ip] = history
        return True

    def __len__(self) -> int:
        return len(self._history)

    def reset(self) -> None:
        with self._lock:
            self._history.clear()
