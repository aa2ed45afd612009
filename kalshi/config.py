"""Configuration model for the Kalshi client."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from os import getenv
from urllib.parse import urlsplit

from .auth import Credentials
from .errors import AuthError, ValidationError


class TradingEnvironment(str, Enum):
    DEMO = "demo"
    LIVE = "live"


BASE_URLS: dict[TradingEnvironment, str] = {
    TradingEnvironment.DEMO: "https://demo-api.kalshi.co/trade-api/v2",
    TradingEnvironment.LIVE: "https://trading-api.kalshi.com/trade-api/v2",
}


@dataclass(frozen=True)
class KalshiConfig:
    """Centralized client configuration."""

    base_url: str = BASE_URLS[TradingEnvironment.DEMO]
    timeout_seconds: float = 10.0
    session_ttl_seconds: float | None = None
    user_name: str = ""
    password: str = ""
    user_agent: str = "kalshi-trade-client/0.9.0"

    def __post_init__(self) -> None:
        parts = urlsplit(self.base_url) if isinstance(self.base_url, str) else None
        if parts is None or parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValidationError(f"base_url must be an absolute http(s) URL, got {self.base_url!r}")

    @classmethod
    def for_environment(cls, environment: TradingEnvironment | str) -> "KalshiConfig":
        try:
            resolved = environment if isinstance(environment, TradingEnvironment) else TradingEnvironment(str(environment).lower())
        except ValueError as exc:
            raise ValidationError(f"unknown trading environment: {environment!r}") from exc
        return cls(base_url=BASE_URLS[resolved])

    @classmethod
    def from_env(cls) -> "KalshiConfig":
        """Build config from environment variables."""

        environment = getenv("KALSHI_ENVIRONMENT", TradingEnvironment.DEMO.value)
        raw_ttl = getenv("KALSHI_SESSION_TTL_SECONDS", "")
        base = cls.for_environment(environment)

        return cls(
            base_url=getenv("KALSHI_BASE_URL", base.base_url),
            timeout_seconds=float(getenv("KALSHI_TIMEOUT_SECONDS", "10.0")),
            session_ttl_seconds=float(raw_ttl) if raw_ttl else None,
            user_name=getenv("KALSHI_USER_NAME", ""),
            password=getenv("KALSHI_PASSWORD", ""),
        )

    def credentials(self) -> Credentials:
        if not self.user_name or not self.password:
            raise AuthError("KALSHI_USER_NAME and KALSHI_PASSWORD must be set to log in")
        return Credentials(email=self.user_name, password=self.password)
