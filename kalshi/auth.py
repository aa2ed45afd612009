"""Login credentials and the shared session-token cell."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Mapping

from .errors import AuthError, DecodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str = field(repr=False)

    def to_exchange_payload(self) -> dict[str, str]:
        return {"email": self.email, "password": self.password}


@dataclass(frozen=True)
class Session:
    """Opaque bearer token returned by ``/login``."""

    token: str = field(repr=False)
    member_id: str
    issued_at: datetime
    expires_at: datetime | None = None

    @classmethod
    def from_exchange(
        cls,
        payload: Mapping[str, Any],
        *,
        ttl_seconds: float | None = None,
        now: datetime | None = None,
    ) -> "Session":
        token = payload.get("token")
        if not token:
            raise DecodeError("login response missing token")
        issued_at = now or datetime.now(UTC)
        expires_at = issued_at + timedelta(seconds=ttl_seconds) if ttl_seconds is not None else None
        return cls(
            token=str(token),
            member_id=str(payload.get("member_id") or ""),
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(UTC)) >= self.expires_at

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.token}"


class SessionStore:
    """Single-writer token cell shared by concurrent requests.

    Writers replace the whole ``Session`` under a lock; readers take one
    snapshot per request, so a request never sees a half-updated token.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._session: Session | None = None

    def current(self) -> Session | None:
        with self._lock:
            return self._session

    def replace(self, session: Session | None) -> Session | None:
        """Swap in ``session`` and return the previous value."""

        with self._lock:
            previous, self._session = self._session, session
            return previous

    def invalidate(self, expected: Session | None = None, *, reason: str) -> bool:
        """Drop the current session.

        With ``expected`` set, the session is only dropped if it is still the
        one the caller observed; a concurrent re-login is left untouched.
        """

        with self._lock:
            if self._session is None or (expected is not None and self._session is not expected):
                return False
            self._session = None
        logger.info("kalshi_session_invalidated", extra={"event": "session_invalidated", "reason": reason})
        return True

    def require(self, now: datetime | None = None) -> Session:
        session = self.current()
        if session is None:
            raise AuthError("not logged in: call login() before authenticated requests")
        if session.is_expired(now):
            self.invalidate(session, reason="expired")
            raise AuthError("session expired: call login() again")
        return session
