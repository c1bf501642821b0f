"""
errors.py — AppError base class and error code registry.

Every error returned by the Warikan API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Never conflate 401 (unauthenticated) with 403 (unauthorized).
  - The allocation and settlement core never raises. Zeroed or imbalanced
    results are valid output; at most they produce a warning (WarningCode),
    never an AppError.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_ROUNDING_MODE      = "INVALID_ROUNDING_MODE"
    INVALID_CURRENCY           = "INVALID_CURRENCY"
    INVALID_CATEGORY           = "INVALID_CATEGORY"
    INVALID_PAYMENT_METHOD     = "INVALID_PAYMENT_METHOD"
    DUPLICATE_MEMBER           = "DUPLICATE_MEMBER"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    GROUP_NOT_FOUND            = "GROUP_NOT_FOUND"
    EVENT_NOT_FOUND            = "EVENT_NOT_FOUND"
    NOT_FOUND                  = "NOT_FOUND"               # unknown route
    METHOD_NOT_ALLOWED         = "METHOD_NOT_ALLOWED"      # 405

    # ── Business Rule Violations (422) ────────────────────────────────────
    PARTICIPANT_NOT_IN_EVENT   = "PARTICIPANT_NOT_IN_EVENT"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, but you are not allowed (unauthorized)
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a 2xx response in the `warnings` array.
# They do not block the request.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # Even-split allocation whose details do not add up to the total
    # (the per-head remainder is not redistributed).
    SUM_MISMATCH = "SUM_MISMATCH"

    # Recorded payments do not add up to the allocated total; some balances
    # are left unmatched by the settlement.
    UNBALANCED_PAYMENTS = "UNBALANCED_PAYMENTS"
