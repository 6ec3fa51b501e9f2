"""
errors.py — AppError base class and error code registry.

Every error returned by the PlayMatch API uses a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Never conflate 401 (unauthenticated) with 403 (unauthorized).
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
    INVALID_STATUS             = "INVALID_STATUS"
    CAPACITY_BELOW_PLAYERS     = "CAPACITY_BELOW_PLAYERS"
    FILE_MISSING               = "FILE_MISSING"
    INVALID_FILE_TYPE          = "INVALID_FILE_TYPE"
    FILE_TOO_LARGE             = "FILE_TOO_LARGE"         # 413

    # ── Matchmaking (400) ──────────────────────────────────────────────────
    # Every join rejection is a 400.
    ALREADY_MEMBER             = "ALREADY_MEMBER"
    HOST_CANNOT_JOIN           = "HOST_CANNOT_JOIN"
    NOT_ACCEPTING_MEMBERS      = "NOT_ACCEPTING_MEMBERS"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    NOT_FOUND                  = "NOT_FOUND"              # unknown route
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    POSTING_NOT_FOUND          = "POSTING_NOT_FOUND"
    CHAT_NOT_FOUND             = "CHAT_NOT_FOUND"
    VENUE_NOT_FOUND            = "VENUE_NOT_FOUND"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, but you are not allowed (unauthorized)
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    REFRESH_TOKEN_INVALID      = "REFRESH_TOKEN_INVALID"  # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403 — host/admin only
    NOT_CHAT_MEMBER            = "NOT_CHAT_MEMBER"        # 403

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"
