"""Error taxonomy and normalization for Kalshi API calls."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION_FAILED = "authentication_failed"
    AUTHORIZATION_FAILED = "authorization_failed"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    BAD_REQUEST = "bad_request"
    DECODE_ERROR = "decode_error"
    REMOTE_ERROR = "remote_error"
    UNKNOWN = "unknown"


class KalshiError(Exception):
    """Base class for every error raised by the client."""

    default_code = ErrorCode.UNKNOWN

    def __init__(self, message: str, *, code: ErrorCode | None = None, cause: Exception | None = None):
        super().__init__(message)
        self.code = code or self.default_code
        self.cause = cause


class ValidationError(KalshiError, ValueError):
    """Raised when local input is rejected before any network I/O."""

    default_code = ErrorCode.VALIDATION


class AuthError(KalshiError):
    """Session is missing, expired, or was rejected by the exchange."""

    default_code = ErrorCode.AUTHENTICATION_FAILED


class TransportError(KalshiError):
    """Connection, DNS, TLS or timeout failure."""

    default_code = ErrorCode.NETWORK_ERROR


class DecodeError(KalshiError):
    """Response body is not JSON or does not match the expected schema."""

    default_code = ErrorCode.DECODE_ERROR


class ApiError(KalshiError):
    """The exchange answered with a non-success status."""

    default_code = ErrorCode.REMOTE_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        code: ErrorCode | None = None,
        error_code: str | None = None,
        error_message: str | None = None,
        details: Any = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, code=code, cause=cause)
        self.status_code = status_code
        self.error_code = error_code
        self.error_message = error_message
        self.details = details


class NotFoundError(ApiError):
    default_code = ErrorCode.NOT_FOUND


_STATUS_CODES: dict[int, ErrorCode] = {
    400: ErrorCode.BAD_REQUEST,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    429: ErrorCode.RATE_LIMITED,
}


def parse_error_body(body: str) -> tuple[str | None, str | None, Any]:
    """Extract ``(code, message, details)`` from an exchange error payload.

    Kalshi wraps errors as ``{"error": {"code": ..., "message": ..., "details": ...}}``;
    anything else yields ``None`` fields.
    """

    try:
        payload = json.loads(body) if body else None
    except ValueError:
        return None, None, None
    if not isinstance(payload, dict):
        return None, None, None
    error = payload.get("error") if isinstance(payload.get("error"), dict) else payload
    code = error.get("code")
    message = error.get("message")
    return (
        str(code) if code is not None else None,
        str(message) if message is not None else None,
        error.get("details"),
    )


def map_kalshi_error(error: Exception | Any) -> KalshiError:
    """Map transport or HTTP status errors to the client error taxonomy.

    Supports both structured HTTP errors (anything with ``status_code``) and
    generic exceptions. Anything raised without a status is a transport
    failure; decode failures are raised by the caller once a body exists.
    """

    if isinstance(error, KalshiError):
        return error

    status_code = getattr(error, "status_code", None)
    message = str(error)

    if status_code is not None:
        status = int(status_code)
        error_code, error_message, details = parse_error_body(message)
        summary = f"HTTP {status}: {error_message or message or 'no response body'}"
        if status in (401, 403):
            code = ErrorCode.AUTHENTICATION_FAILED if status == 401 else ErrorCode.AUTHORIZATION_FAILED
            return AuthError(summary, code=code, cause=error)
        error_cls = NotFoundError if status == 404 else ApiError
        return error_cls(
            summary,
            status_code=status,
            code=_STATUS_CODES.get(status, ErrorCode.REMOTE_ERROR if status >= 500 else ErrorCode.BAD_REQUEST),
            error_code=error_code,
            error_message=error_message,
            details=details,
            cause=error,
        )

    if isinstance(error, TimeoutError):
        return TransportError(message or "request timed out", code=ErrorCode.TIMEOUT, cause=error)
    if isinstance(error, OSError):
        return TransportError(message, code=ErrorCode.NETWORK_ERROR, cause=error)

    lowered = message.lower()
    if "timed out" in lowered or "timeout" in lowered:
        return TransportError(message, code=ErrorCode.TIMEOUT, cause=error)

    # No status and no body: the request never completed.
    return TransportError(message or type(error).__name__, code=ErrorCode.NETWORK_ERROR, cause=error)
