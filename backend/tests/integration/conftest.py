"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against the app created by create_app("testing"), which uses
    in-memory SQLite unless TEST_DATABASE_URL points somewhere else.
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.
  - Identity is external: tests mint HS256 tokens with the testing secret,
    exactly as the identity provider would.

Helper functions (not fixtures) are provided for common operations:
  - make_token(sub, name)          → signed bearer token
  - auth_headers(token)            → {"Authorization": "Bearer <token>"}
  - make_group(client, token, ...) → group dict
  - join_group(client, token, id)  → group dict
  - make_event(client, token, id)  → event dict
  - calculate(client, token, ...)  → HTTP response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy import text

from backend.warikan import create_app
from backend.warikan.extensions import db as _db

TEST_SECRET = "testing-secret"


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """Deletes all rows after every test: events and members before groups."""
    yield

    with app.app_context():
        _db.session.rollback()
        _db.session.execute(text("DELETE FROM events"))
        _db.session.execute(text("DELETE FROM members"))
        _db.session.execute(text("DELETE FROM groups"))
        _db.session.commit()


@pytest.fixture
def client(app):
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def make_token(
    sub: str = "alice",
    name: str | None = None,
    expires_in: timedelta = timedelta(minutes=15),
    secret: str = TEST_SECRET,
    **claims,
) -> str:
    """Signs a token the way the external identity provider does."""
    now = datetime.now(timezone.utc)
    payload = {"sub": sub, "iat": now, "exp": now + expires_in, **claims}
    if name is not None:
        payload["name"] = name
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


ALICE = make_token("alice", "Alice")
BOB   = make_token("bob", "Bob")
CAROL = make_token("carol", "Carol")


def make_group(client, token: str = ALICE, name: str = "Trip") -> dict:
    resp = client.post(
        "/api/v1/groups/",
        json={"name": name},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_group failed: {resp.get_json()}"
    return resp.get_json()["data"]


def join_group(client, token: str, group_id: int) -> dict:
    resp = client.post(
        f"/api/v1/groups/{group_id}/join",
        json={},
        headers=auth_headers(token),
    )
    assert resp.status_code == 200, f"join_group failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_trio(client) -> dict:
    """Group owned by alice with bob and carol joined, in that order."""
    group = make_group(client, ALICE)
    join_group(client, BOB, group["id"])
    return join_group(client, CAROL, group["id"])


def make_event(client, token: str, group_id: int, name: str = "Dinner") -> dict:
    resp = client.post(
        f"/api/v1/groups/{group_id}/events",
        json={"name": name},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_event failed: {resp.get_json()}"
    return resp.get_json()["data"]


def event_url(group_id: int, event_id: int, suffix: str = "") -> str:
    return f"/api/v1/groups/{group_id}/events/{event_id}{suffix}"


def calculate(client, token: str, group_id: int, event_id: int, **body):
    return client.post(
        event_url(group_id, event_id, "/calculate"),
        json=body,
        headers=auth_headers(token),
    )
