"""
middleware/auth_middleware.py — Bearer token authentication decorator.

Identity is owned by an external provider. Warikan never registers users or
issues tokens; it only verifies the HS256 JWT the provider signed with the
shared AUTH_TOKEN_SECRET.

The @require_auth decorator:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Decodes and verifies the JWT signature, expiry and (optionally) audience
  3. Attaches the caller's opaque id (`sub`) and display name (`name`, falling
     back to `sub`) to flask.g as g.user_id / g.user_name
  4. Raises the appropriate 401 AppError if any step fails

Strict responsibility boundary:
  - This middleware authenticates (401) only.
  - Group membership and ownership checks (403) live in the service layer.
    Services receive user_id as a plain string argument.
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from backend.warikan.errors import AppError, ErrorCode


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces bearer-token authentication.

    Usage:
        @groups_bp.route("/", methods=["GET"])
        @require_auth
        def list_groups():
            user_id = g.user_id  # always a non-empty str when this runs
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def _decode_token(raw_token: str) -> dict:
    audience = current_app.config.get("AUTH_TOKEN_AUDIENCE") or None
    options = {"require": ["sub"]}
    if audience is None:
        options["verify_aud"] = False

    return jwt.decode(
        raw_token,
        current_app.config["AUTH_TOKEN_SECRET"],
        algorithms=[current_app.config.get("AUTH_TOKEN_ALGORITHM", "HS256")],
        audience=audience,
        leeway=current_app.config.get("AUTH_TOKEN_LEEWAY", 0),
        options=options,
    )


def _authenticate_request() -> None:
    """
    Performs the full authentication sequence and sets flask.g.user_id.

    Raises AppError on any authentication failure (never returns a response
    directly — the error propagates to the global Flask error handler).
    """
    auth_header = request.headers.get("Authorization", "")

    # ── Step 1: Require Authorization header ──────────────────────────────
    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    # ── Step 2: Parse "Bearer <token>" format ─────────────────────────────
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )

    # ── Step 3: Decode and verify the JWT ─────────────────────────────────
    try:
        payload = _decode_token(parts[1])
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Sign in again to obtain a new one.",
            401,
        )
    except jwt.InvalidTokenError:
        # Bad signature, malformed token, missing sub, wrong audience, ...
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
            401,
        )

    # ── Step 4: Extract the caller identity ───────────────────────────────
    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub.strip():
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The 'sub' claim in the access token is not a valid identity.",
            401,
        )

    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        name = sub

    g.user_id = sub
    g.user_name = name.strip()[:100]
