#!/usr/bin/env python3
"""WSGI entry point for production deployment.

This file can be used with production WSGI servers like:
- Gunicorn: gunicorn wsgi:application
- Waitress: waitress-serve --port=8080 wsgi:application
"""

from opsdesk.flask_app import flask_app

application = flask_app

if __name__ == "__main__":
    application.run()
