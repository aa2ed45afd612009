"""Dependency injection entry points for Kalshi client interfaces."""

from __future__ import annotations

from dataclasses import dataclass

from .client import KalshiClient, KalshiTransportFactory
from .config import KalshiConfig
from .interfaces import AccountReadClient, ExchangeInfoClient, MarketDataClient, OrderExecutionClient, SessionClient


@dataclass(frozen=True)
class KalshiDependencies:
    """Container exposing interface-typed client dependencies."""

    session: SessionClient
    orders: OrderExecutionClient
    account: AccountReadClient
    markets: MarketDataClient
    exchange: ExchangeInfoClient


def build_kalshi_dependencies(config: KalshiConfig | None = None) -> KalshiDependencies:
    """Build the default dependency graph; all capabilities share one client and session."""

    resolved_config = config or KalshiConfig.from_env()
    transport = KalshiTransportFactory(resolved_config).create_http_transport()
    client = KalshiClient(config=resolved_config, transport=transport)

    return KalshiDependencies(session=client, orders=client, account=client, markets=client, exchange=client)
