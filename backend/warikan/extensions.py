"""
extensions.py — Flask extension singletons.

Initialises SQLAlchemy as a module-level object so it can be imported
anywhere without creating circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in warikan/__init__.py.
    3. Import `db` from here wherever needed.

    from backend.warikan.extensions import db

Validation schemas (warikan/schemas/) inherit from marshmallow.Schema
directly and need no extension object, so unit tests can load them without
an application context.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
