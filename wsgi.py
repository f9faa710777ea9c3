"""
WSGI entry point.

Usage:
    gunicorn wsgi:app
    flask --app wsgi seed-mock-data
"""

from buildops import create_app

app = create_app()
