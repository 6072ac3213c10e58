"""Database setup utilities.

This module owns the shared ``db`` object used by every model and
service in the senior registry. Each request gets its own scoped
session from Flask-SQLAlchemy; connection pooling is whatever the
configured engine provides.

Import ``db`` from ``sampaguita`` rather than from this module
directly. The application factory binds it to the Flask app.
"""
from __future__ import annotations

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
