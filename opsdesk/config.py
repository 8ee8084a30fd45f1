"""Runtime settings read from the environment at import time."""

from __future__ import annotations

import logging
import os
from pathlib import Path

APP_NAME = "OpsDesk"
APP_TAGLINE = "Clients, projects, staff and department work queues"
BASE_DIR = Path(__file__).resolve().parent.parent
STATIC_DIR = Path(__file__).resolve().parent / "static"
SECRET_KEY = os.environ.get("OPSDESK_SECRET_KEY", "change-this-secret-in-production")
COOKIE_SECURE = os.environ.get("OPSDESK_COOKIE_SECURE", "0") == "1"
SESSION_HOURS = max(1, int(os.environ.get("OPSDESK_SESSION_HOURS", "12")))
# Generic container vars are honored for platform compatibility; OPSDESK_* wins where set.
HOST = os.environ.get("OPSDESK_HOST", os.environ.get("HOST", "127.0.0.1"))
PORT = int(os.environ.get("OPSDESK_PORT", os.environ.get("PORT", "8080")))
WSGI_THREADED = os.environ.get("OPSDESK_WSGI_THREADED", "1") == "1"
# When set, logins are verified by the remote identity service instead of the demo directory.
AUTH_API_URL = os.environ.get("OPSDESK_AUTH_API_URL", "").strip().rstrip("/")
AUTH_TIMEOUT = float(os.environ.get("OPSDESK_AUTH_TIMEOUT", "15"))
# How often a live session is re-checked against the authenticator.
AUTH_RECHECK_SECONDS = max(0, int(os.environ.get("OPSDESK_AUTH_RECHECK_SECONDS", "60")))
DEMO_PASSWORD = os.environ.get("OPSDESK_DEMO_PASSWORD", "opsdesk-demo-pass")
LOG_LEVEL = os.environ.get("OPSDESK_LOG_LEVEL", "INFO").strip().upper()
LOGIN_MAX_ATTEMPTS = max(1, int(os.environ.get("OPSDESK_LOGIN_MAX_ATTEMPTS", "8")))
LOGIN_WINDOW_MINUTES = max(1, int(os.environ.get("OPSDESK_LOGIN_WINDOW_MINUTES", "10")))


def configure_logging(level: str = LOG_LEVEL) -> None:
    if logging.getLogger().handlers:
        return
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
