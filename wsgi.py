"""
WSGI Entry Point for Production Deployment

Exposes ``application`` for WSGI servers. The configuration defaults to
production unless FLASK_CONFIG or FLASK_ENV selects another one.

Gunicorn Configuration Example:
    gunicorn --bind 0.0.0.0:8000 --workers 4 wsgi:application
"""

import os

from app import create_app

application = create_app(os.environ.get('FLASK_CONFIG') or os.environ.get('FLASK_ENV', 'production'))
