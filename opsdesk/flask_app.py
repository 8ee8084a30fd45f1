#!/usr/bin/env python3
"""OpsDesk - Flask Application

Runs the WSGI back office under Flask so it can be served and managed with the
usual Flask tooling. Routing stays in ``opsdesk.server``.
"""

from __future__ import annotations

import os
from typing import Any, Dict

import click
from flask import Flask, request

from .config import COOKIE_SECURE, HOST, PORT, SECRET_KEY, configure_logging
from .screens import SCREENS, ROLE_OPTIONS, nav_items_for_role
from .server import app as wsgi_app

configure_logging()

flask_app = Flask(__name__, static_folder=None, template_folder=None)

flask_app.config['SECRET_KEY'] = SECRET_KEY
flask_app.config['SESSION_COOKIE_SECURE'] = COOKIE_SECURE
flask_app.config['SESSION_COOKIE_HTTPONLY'] = True
flask_app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'


@flask_app.route('/', defaults={'path': ''}, methods=['GET', 'POST', 'PUT', 'DELETE', 'PATCH'])
@flask_app.route('/<path:path>', methods=['GET', 'POST', 'PUT', 'DELETE', 'PATCH'])
def catch_all(path):
    """Delegate every request to the WSGI app and replay its status and headers."""
    response_data: Dict[str, Any] = {}

    def start_response(status, headers, exc_info=None):
        response_data['status'] = status
        response_data['headers'] = headers
        return lambda s: None

    body = b''.join(wsgi_app(request.environ, start_response))
    status_code = int(response_data.get('status', '200 OK').split()[0])

    response = flask_app.make_response((body, status_code))
    for header_name, header_value in response_data.get('headers', []):
        if header_name.lower() == 'set-cookie':
            response.headers.add(header_name, header_value)
        else:
            response.headers[header_name] = header_value
    return response


@flask_app.cli.command("show-routes")
@click.option("--role", default="", help="Only list screens this role can open.")
def show_routes(role):
    """List every list screen with its path, roles and export."""
    if role and role not in ROLE_OPTIONS:
        raise click.BadParameter(f"unknown role {role!r}", param_hint="--role")
    visible = {item["key"] for item in nav_items_for_role(role)} if role else None
    for screen in SCREENS:
        if visible is not None and screen.key not in visible:
            continue
        export = f"/export/{screen.key}.csv" if screen.export else "-"
        click.echo(f"{screen.path:<20} {','.join(screen.roles):<22} {export}")


if __name__ == '__main__':
    flask_app.run(
        host=HOST,
        port=PORT,
        debug=os.environ.get('FLASK_DEBUG', '0') == '1',
        threaded=True
    )
