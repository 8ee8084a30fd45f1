#!/usr/bin/env python3
"""OpsDesk back office

Server-rendered WSGI app for a small services business: clients, projects,
staff and the per-department work queues. Records live in memory, scoped to the
login session, and every list page runs through the shared table view engine.
"""

from __future__ import annotations

import html
import json
import logging
from socketserver import ThreadingMixIn
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs, quote, unquote, urlencode
from wsgiref.simple_server import WSGIServer, make_server

from .config import (
    APP_NAME,
    APP_TAGLINE,
    AUTH_RECHECK_SECONDS,
    COOKIE_SECURE,
    HOST,
    PORT,
    SESSION_HOURS,
    STATIC_DIR,
    WSGI_THREADED,
    configure_logging,
)
from .export import CSV_CONTENT_TYPE, csv_filename, serialize
from .screens import (
    ROLE_LABELS,
    SCREENS,
    ListScreen,
    landing_path,
    nav_items_for_role,
    screen_by_key,
    screen_by_path,
)
from .session import (
    AuthenticationError,
    LoginRateLimiter,
    Session,
    SessionManager,
    default_authenticator,
    role_allows,
    sign_value,
    utcnow,
    verify_signed_value,
)
from .store import coerce_form
from .tableview import ListQuery, PageWindow, filter_records, page_links

LOGGER = logging.getLogger(__name__)

SESSION_COOKIE = "opsdesk_session"
DASHBOARD_ROLES = ["admin"]

SESSIONS = SessionManager()
AUTHENTICATOR = default_authenticator()
RATE_LIMITER = LoginRateLimiter()


def h(value: object) -> str:
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def to_int(value: Optional[str], default: Optional[int] = None) -> Optional[int]:
    if value in (None, ""):
        return default
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def display_cell(value: object) -> str:
    if value in (None, ""):
        return "-"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        return f"{value:.2f}".rstrip("0").rstrip(".")
    return str(value)


class Request:
    """Thin wrapper over WSGI environ with lazy form parsing."""

    def __init__(self, environ: dict):
        self.environ = environ
        self.method = environ.get("REQUEST_METHOD", "GET").upper()
        self.path = environ.get("PATH_INFO", "/") or "/"
        self.query = {k: v[0] for k, v in parse_qs(environ.get("QUERY_STRING", ""), keep_blank_values=True).items()}
        self.cookies = self._parse_cookies(environ.get("HTTP_COOKIE", ""))
        self._form: Optional[Dict[str, str]] = None

    def _parse_cookies(self, raw_cookie: str) -> Dict[str, str]:
        cookies: Dict[str, str] = {}
        if not raw_cookie:
            return cookies
        for token in raw_cookie.split(";"):
            if "=" not in token:
                continue
            key, value = token.split("=", 1)
            cookies[key.strip()] = unquote(value.strip())
        return cookies

    @property
    def form(self) -> Dict[str, str]:
        if self._form is None:
            self._form = {}
            if self.method in {"POST", "PUT", "PATCH", "DELETE"}:
                try:
                    length = int(self.environ.get("CONTENT_LENGTH") or 0)
                except ValueError:
                    length = 0
                body = self.environ["wsgi.input"].read(length).decode("utf-8") if length else ""
                self._form = {k: v[0] for k, v in parse_qs(body, keep_blank_values=True).items()}
        return self._form

    @property
    def client_ip(self) -> str:
        return self.environ.get("REMOTE_ADDR", "unknown")


class Response:
    """Simple response object that centralizes security headers."""

    def __init__(
        self,
        body: str = "",
        status: str = "200 OK",
        content_type: str = "text/html; charset=utf-8",
        headers: Optional[List[Tuple[str, str]]] = None,
    ):
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        self.status = status
        self.content_type = content_type
        self.headers = headers or []

    def wsgi(self, start_response):
        sec_headers = [
            ("Content-Type", self.content_type),
            ("X-Frame-Options", "DENY"),
            ("X-Content-Type-Options", "nosniff"),
            ("Referrer-Policy", "strict-origin-when-cross-origin"),
            ("Cache-Control", "no-store"),
            ("Content-Security-Policy", "default-src 'self'; style-src 'self'; img-src 'self' data:; base-uri 'self'; form-action 'self'"),
        ]
        start_response(self.status, sec_headers + self.headers)
        return [self.body]


def redirect(location: str, cookies: Optional[List[str]] = None) -> Response:
    headers = [("Location", location)]
    for cookie in cookies or []:
        headers.append(("Set-Cookie", cookie))
    return Response("", status="302 Found", headers=headers)


def json_response(payload: object, status: str = "200 OK") -> Response:
    return Response(json.dumps(payload), status=status, content_type="application/json; charset=utf-8")


def set_cookie(name: str, value: str, max_age: Optional[int] = None, path: str = "/") -> str:
    parts = [f"{name}={quote(value)}", f"Path={path}", "HttpOnly", "SameSite=Lax"]
    if COOKIE_SECURE:
        parts.append("Secure")
    if max_age is not None:
        parts.append(f"Max-Age={max_age}")
    return "; ".join(parts)


def clear_cookie(name: str, path: str = "/") -> str:
    parts = [f"{name}=", "Max-Age=0", f"Path={path}", "HttpOnly", "SameSite=Lax"]
    if COOKIE_SECURE:
        parts.append("Secure")
    return "; ".join(parts)


def session_token(req: Request) -> Optional[str]:
    return verify_signed_value(req.cookies.get(SESSION_COOKIE, ""))


def current_session(req: Request) -> Optional[Session]:
    raw_token = session_token(req)
    session = SESSIONS.get(raw_token)
    if session is None:
        return None
    if (utcnow() - session.verified_at).total_seconds() < AUTH_RECHECK_SECONDS:
        return session
    try:
        session.identity = AUTHENTICATOR.refresh(session.identity)
    except AuthenticationError as exc:
        LOGGER.info("Session revoked for %s: %s", session.identity.email, exc)
        SESSIONS.destroy(raw_token)
        return None
    session.verified_at = utcnow()
    return session


def forbidden() -> Response:
    return Response("<h1>403 Forbidden</h1>", status="403 Forbidden")


def not_found() -> Response:
    return Response("<h1>404 Not Found</h1>", status="404 Not Found")


def require_roles(session: Session, allowed_roles: List[str]) -> Optional[Response]:
    if not role_allows(session.role, allowed_roles):
        LOGGER.warning("Role %s denied access (needs one of %s)", session.role, allowed_roles)
        return forbidden()
    return None


def validate_csrf(req: Request, session: Session) -> bool:
    if req.method not in {"POST", "PUT", "PATCH", "DELETE"}:
        return True
    csrf = req.form.get("csrf_token") or req.environ.get("HTTP_X_CSRF_TOKEN", "")
    return bool(csrf and csrf == session.csrf)


def fill_csrf(content: str, csrf_token: str) -> str:
    """Fill csrf placeholders used by server-rendered templates."""
    return content.replace("{{csrf}}", h(csrf_token))


def nav_link(path: str, label: str, current: str) -> str:
    active = current == path or current.startswith(f"{path}/")
    cls = "nav-link active" if active else "nav-link"
    aria = ' aria-current="page"' if active else ""
    return f'<a class="{cls}" href="{h(path)}"{aria}>{h(label)}</a>'


def render_layout(title: str, content: str, req: Request, session: Optional[Session] = None, notice: str = "") -> str:
    if session:
        identity = session.identity
        nav = "".join(nav_link(item["path"], item["label"], req.path) for item in nav_items_for_role(session.role))
        sidebar = f"""
        <aside class="sidebar" aria-label="Primary Navigation">
          <div class="sidebar-brand">
            <h1><a class="brand-link" href="/">{h(APP_NAME)}</a></h1>
            <p>{h(APP_TAGLINE)}</p>
          </div>
          <nav class="side-nav" aria-label="Primary">{nav}</nav>
          <form method="post" action="/logout" class="sidebar-foot">
            <input type="hidden" name="csrf_token" value="{h(session.csrf)}" />
            <button type="submit" class="btn danger">Logout</button>
          </form>
        </aside>
        """
        top_bar = f"""
        <header class="topbar">
          <h2>{h(title)}</h2>
          <span class="user-chip">{h(identity.name)} &middot; {h(ROLE_LABELS.get(session.role, session.role))}</span>
        </header>
        """
    else:
        sidebar = ""
        top_bar = f"<header class='topbar'><h1>{h(APP_NAME)}</h1></header>"

    alert = f"<div class='notice' role='status' aria-live='polite'>{h(notice)}</div>" if notice else ""

    return f"""
    <!doctype html>
    <html lang=\"en\">
      <head>
        <meta charset=\"utf-8\" />
        <meta name=\"viewport\" content=\"width=device-width,initial-scale=1\" />
        <title>{h(title)} | {h(APP_NAME)}</title>
        <link rel=\"stylesheet\" href=\"/static/style.css\" />
      </head>
      <body>
        <a class=\"skip-link\" href=\"#main-content\">Skip to main content</a>
        <div class=\"container app-shell\">{sidebar}<section class=\"main-shell\">{top_bar}{alert}<main id=\"main-content\" tabindex=\"-1\">{content}</main></section></div>
      </body>
    </html>
    """


def render_login(req: Request, error: str = "") -> str:
    body = f"""
    <section class=\"card auth\">
      <h2>Sign In</h2>
      <p>Your role is assigned by your account and decides which queues you see.</p>
      {'<div class="error">' + h(error) + '</div>' if error else ''}
      <form method=\"post\" action=\"/login\">
        <label>Email <input type=\"email\" name=\"email\" required /></label>
        <label>Password <input type=\"password\" name=\"password\" required /></label>
        <button type=\"submit\">Sign In</button>
      </form>
    </section>
    """
    return render_layout("Login", body, req)


def list_url(screen: ListScreen, query: ListQuery) -> str:
    params: Dict[str, object] = {}
    if query.search_text:
        params["q"] = query.search_text
    if query.page_number > 1:
        params["page"] = query.page_number
    return f"{screen.path}?{urlencode(params)}" if params else screen.path


def render_pager(screen: ListScreen, query: ListQuery, window: PageWindow) -> str:
    parts: List[str] = []
    if window.has_previous:
        parts.append(f"<a class='page-link' href='{h(list_url(screen, query.with_page(window.page_number - 1)))}' aria-label='Go to previous page'>&lsaquo; Prev</a>")
    else:
        parts.append("<span class='page-link disabled' aria-disabled='true'>&lsaquo; Prev</span>")
    for number in page_links(window):
        if number == window.page_number:
            parts.append(f"<span class='page-link current' aria-current='page'>{number}</span>")
        else:
            parts.append(f"<a class='page-link' href='{h(list_url(screen, query.with_page(number)))}' aria-label='Go to page {number}'>{number}</a>")
    if window.has_next:
        parts.append(f"<a class='page-link' href='{h(list_url(screen, query.with_page(window.page_number + 1)))}' aria-label='Go to next page'>Next &rsaquo;</a>")
    else:
        parts.append("<span class='page-link disabled' aria-disabled='true'>Next &rsaquo;</span>")
    return f"<nav class='pager' aria-label='Pagination'>{''.join(parts)}</nav>"


def render_list_page(screen: ListScreen, session: Session, query: ListQuery) -> str:
    window = query.run(session.store.records(screen.key), screen.page_size, screen.searchable_fields)
    head = "".join(f"<th>{h(label)}</th>" for _field, label in screen.columns)
    body_rows: List[str] = []
    for record in window.page_items:
        record_id = record.get(screen.id_field)
        cells = "".join(f"<td>{h(display_cell(record.get(field)))}</td>" for field, _label in screen.columns)
        body_rows.append(
            f"""
            <tr>
              {cells}
              <td class='row-actions'>
                <a class='btn ghost' href='{h(screen.path)}/edit?id={h(record_id)}'>Edit</a>
                <form method='post' action='{h(screen.path)}/delete' class='inline'>
                  <input type='hidden' name='csrf_token' value='{{{{csrf}}}}' />
                  <input type='hidden' name='id' value='{h(record_id)}' />
                  <button type='submit' class='btn danger'>Delete</button>
                </form>
              </td>
            </tr>
            """
        )
    if not body_rows:
        message = f"No {screen.noun} match this search." if query.search_text.strip() else f"No {screen.noun} yet."
        body_rows.append(f"<tr><td colspan='{len(screen.columns) + 1}'>{h(message)}</td></tr>")

    export_link = ""
    if screen.export is not None:
        export_params = f"?{urlencode({'q': query.search_text})}" if query.search_text else ""
        export_link = f"<a class='btn' href='/export/{h(screen.key)}.csv{h(export_params)}'>Download CSV</a>"

    summary = f"Showing {window.first_index}-{window.last_index} of {window.total_matches} {screen.noun}"
    return f"""
    <section class='card list-head'>
      <form method='get' action='{h(screen.path)}' class='search' role='search'>
        <label>Search {h(screen.title)} <input type='search' name='q' value='{h(query.search_text)}' placeholder='Search here' /></label>
        <button type='submit'>Search</button>
        <a class='btn ghost' href='{h(list_url(screen, query.with_search('')))}'>Clear</a>
      </form>
      <div class='list-actions'>
        <a class='btn' href='{h(screen.path)}/new'>Add</a>
        {export_link}
      </div>
    </section>
    <section class='card'>
      <div class='table-scroll'>
        <table>
          <thead><tr>{head}<th>Actions</th></tr></thead>
          <tbody>{''.join(body_rows)}</tbody>
        </table>
      </div>
      <footer class='list-foot'>
        <p class='muted' aria-live='polite'>{h(summary)} &middot; Page {window.page_number} of {window.page_count}</p>
        {render_pager(screen, query, window)}
      </footer>
    </section>
    """


def render_field(screen: ListScreen, name: str, label: str, value: object) -> str:
    kind = screen.field_kind(name)
    if kind == "bool":
        checked = " checked" if value else ""
        return f"<label class='check'><input type='checkbox' name='{h(name)}' value='1'{checked} /> {h(label)}</label>"
    if kind == "choice":
        options = "".join(
            f"<option value='{h(option)}'{' selected' if option == value else ''}>{h(option)}</option>"
            for option in screen.choices[name]
        )
        return f"<label>{h(label)} <select name='{h(name)}'>{options}</select></label>"
    if kind == "number":
        return f"<label>{h(label)} <input type='number' step='any' name='{h(name)}' value='{h(value)}' /></label>"
    return f"<label>{h(label)} <input name='{h(name)}' value='{h(value)}' /></label>"


def render_form_page(screen: ListScreen, record: Optional[Dict[str, object]] = None) -> str:
    record = record or {}
    editing = bool(record)
    action = f"{screen.path}/edit?id={record.get(screen.id_field)}" if editing else f"{screen.path}/new"
    fields = "".join(render_field(screen, name, label, record.get(name, "")) for name, label in screen.columns)
    return f"""
    <section class='card'>
      <h3>{'Edit' if editing else 'Add'} {h(screen.title)} record</h3>
      <form method='post' action='{h(action)}' class='record-form'>
        <input type='hidden' name='csrf_token' value='{{{{csrf}}}}' />
        {fields}
        <div class='form-actions'>
          <button type='submit'>{'Save changes' if editing else 'Add record'}</button>
          <a class='btn ghost' href='{h(screen.path)}'>Cancel</a>
        </div>
      </form>
    </section>
    """


def render_dashboard(session: Session) -> str:
    counts = session.store.counts()
    cards = "".join(
        f"""
        <a class='stat-card' href='{h(screen.path)}'>
          <span class='stat-label'>{h(screen.title)}</span>
          <strong class='stat-value'>{counts.get(screen.key, 0)}</strong>
        </a>
        """
        for screen in SCREENS
    )
    overdue = sum(1 for job in session.store.records("working") if job.get("overdue"))
    return f"""
    <section class='card maker-hero'>
      <h2>Welcome back, {h(session.identity.name)}</h2>
      <p>Overview of every queue in this session.</p>
    </section>
    <section class='stat-grid'>{cards}</section>
    <section class='card'>
      <h3>Attention</h3>
      <p>{overdue} job(s) are past their deadline.</p>
    </section>
    """


def export_response(screen: ListScreen, session: Session, search_text: str) -> Response:
    records = filter_records(session.store.records(screen.key), search_text, screen.searchable_fields)
    text = serialize(records, screen.export.headers)
    filename = csv_filename(screen.export.filename)
    LOGGER.info("Exported %d %s rows for %s", len(records), screen.key, session.identity.email)
    headers = [("Content-Disposition", f"attachment; filename={filename}")]
    return Response(text, content_type=CSV_CONTENT_TYPE, headers=headers)


def screen_action(path: str) -> Tuple[Optional[ListScreen], str]:
    """Split ``/clients/edit`` into the clients screen and ``edit``."""
    screen = screen_by_path(path)
    if screen is not None:
        return screen, "list"
    base, _, action = path.rstrip("/").rpartition("/")
    if action in {"new", "edit", "delete"}:
        return screen_by_path(base), action
    return None, ""


def handle_screen(req: Request, session: Session, screen: ListScreen, action: str, notice: str) -> Response:
    gate = require_roles(session, screen.roles)
    if gate:
        return gate

    if action == "list":
        query = ListQuery.from_params(req.query)
        content = render_list_page(screen, session, query)
        return Response(render_layout(screen.title, fill_csrf(content, session.csrf), req, session, notice))

    if req.method == "POST" and not validate_csrf(req, session):
        return Response("<h1>400 Bad Request</h1><p>Invalid CSRF token.</p>", status="400 Bad Request")

    if action == "new":
        if req.method == "POST":
            session.store.add(screen.key, coerce_form(screen, req.form))
            return redirect(f"{screen.path}?msg={quote('Record added')}")
        content = render_form_page(screen)
        return Response(render_layout(f"Add {screen.title}", fill_csrf(content, session.csrf), req, session, notice))

    # Delete forms post the id; edit carries it in the action URL.
    record_id = to_int(req.form.get("id") if action == "delete" else req.query.get("id"))
    if record_id is None:
        return not_found()
    try:
        if action == "edit":
            if req.method == "POST":
                session.store.update(screen.key, record_id, coerce_form(screen, req.form))
                return redirect(f"{screen.path}?msg={quote('Record updated')}")
            record = session.store.get(screen.key, record_id)
            content = render_form_page(screen, record)
            return Response(render_layout(f"Edit {screen.title}", fill_csrf(content, session.csrf), req, session, notice))
        if action == "delete" and req.method == "POST":
            session.store.delete(screen.key, record_id)
            return redirect(f"{screen.path}?msg={quote('Record deleted')}")
    except KeyError:
        return not_found()
    return Response("<h1>405 Method Not Allowed</h1>", status="405 Method Not Allowed")


def serve_static(path: str) -> Response:
    rel = path.replace("/static/", "", 1)
    static_file = (STATIC_DIR / rel).resolve()
    if STATIC_DIR.resolve() not in static_file.parents or not static_file.is_file():
        return Response("Not found", status="404 Not Found")
    mime = "text/plain"
    if rel.endswith(".css"):
        mime = "text/css; charset=utf-8"
    elif rel.endswith(".js"):
        mime = "application/javascript; charset=utf-8"
    elif rel.endswith(".svg"):
        mime = "image/svg+xml"
    return Response(static_file.read_text(encoding="utf-8"), content_type=mime)


def app(environ, start_response):
    """WSGI entrypoint.

    Route dispatch is explicit (`if req.path == ...`) so the whole surface is
    visible in one place.
    """
    req = Request(environ)

    if req.path.startswith("/static/"):
        return serve_static(req.path).wsgi(start_response)
    if req.path == "/healthz":
        return Response("ok", content_type="text/plain").wsgi(start_response)

    session = current_session(req)
    notice = req.query.get("msg", "")

    try:
        if req.path == "/login" and req.method == "GET":
            if session:
                return redirect(landing_path(session.role)).wsgi(start_response)
            return Response(render_login(req, error=notice)).wsgi(start_response)

        if req.path == "/login" and req.method == "POST":
            if not RATE_LIMITER.allow(req.client_ip):
                return Response(
                    render_login(req, "Too many login attempts. Try again later."),
                    status="429 Too Many Requests",
                ).wsgi(start_response)
            email = req.form.get("email", "").strip().lower()
            password = req.form.get("password", "")
            try:
                identity = AUTHENTICATOR.authenticate(email, password)
            except AuthenticationError as exc:
                LOGGER.info("Login rejected for %s: %s", email or "<blank>", exc)
                return Response(render_login(req, str(exc)), status="401 Unauthorized").wsgi(start_response)
            raw_token, new_session = SESSIONS.create(identity)
            cookie = set_cookie(SESSION_COOKIE, sign_value(raw_token), max_age=SESSION_HOURS * 3600)
            return redirect(landing_path(new_session.role), cookies=[cookie]).wsgi(start_response)

        if req.path == "/logout" and req.method == "POST":
            if session and validate_csrf(req, session):
                SESSIONS.destroy(session_token(req))
            return redirect("/login", cookies=[clear_cookie(SESSION_COOKIE)]).wsgi(start_response)

        if not session:
            return redirect("/login").wsgi(start_response)

        if req.path == "/":
            return redirect(landing_path(session.role)).wsgi(start_response)

        if req.path == "/dashboard":
            gate = require_roles(session, DASHBOARD_ROLES)
            if gate:
                return gate.wsgi(start_response)
            page = render_layout("Dashboard", render_dashboard(session), req, session, notice)
            return Response(page).wsgi(start_response)

        if req.path == "/api/session":
            identity = session.identity
            return json_response(
                {"name": identity.name, "email": identity.email, "role": identity.role, "nav": nav_items_for_role(session.role)}
            ).wsgi(start_response)

        if req.path.startswith("/export/"):
            key = req.path.replace("/export/", "", 1)
            if key.endswith(".csv"):
                key = key[:-4]
            screen = screen_by_key(key)
            if screen is None or screen.export is None:
                return Response("Unknown export entity", status="404 Not Found").wsgi(start_response)
            gate = require_roles(session, screen.roles)
            if gate:
                return gate.wsgi(start_response)
            return export_response(screen, session, req.query.get("q", "")).wsgi(start_response)

        screen, action = screen_action(req.path)
        if screen is not None:
            return handle_screen(req, session, screen, action, notice).wsgi(start_response)

        return not_found().wsgi(start_response)
    except Exception:
        LOGGER.exception("Unhandled error for %s %s", req.method, req.path)
        return Response(
            "<h1>500 Internal Server Error</h1><p>An unexpected server error occurred.</p>",
            status="500 Internal Server Error",
        ).wsgi(start_response)


class ThreadedWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


def run() -> None:
    configure_logging()
    server_mode = "threaded" if WSGI_THREADED else "single-threaded"
    LOGGER.info("%s running on http://%s:%s (mode=%s)", APP_NAME, HOST, PORT, server_mode)
    if WSGI_THREADED:
        server = make_server(HOST, PORT, app, server_class=ThreadedWSGIServer)
    else:
        server = make_server(HOST, PORT, app)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        LOGGER.info("Shutting down")


if __name__ == "__main__":
    run()
