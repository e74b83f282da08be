"""WSGI entrypoint for serverless deployments of the calendar portal."""
from __future__ import annotations
import os

from portal.app import create_app

app = create_app(os.getenv("FLASK_ENV"))
