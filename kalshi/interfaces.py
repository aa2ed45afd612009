"""Interfaces for Kalshi client capabilities."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from .auth import Credentials, Session
from .markets import Event, ExchangeSchedule, ExchangeStatus, Market, Orderbook, Series, Snapshot, Trade
from .models import CancelResult, Fill, Order, OrderAck, OrderRequest, Page, PositionsPage


class SessionClient(Protocol):
    """Owns the login session."""

    def login(self, credentials: Credentials | None = None) -> Session:
        """Exchange credentials for a bearer token."""

    def logout(self) -> None:
        """Drop the local session and revoke it remotely."""


class OrderExecutionClient(Protocol):
    """Places and manages orders."""

    def create_order(self, order: OrderRequest | Mapping[str, Any]) -> OrderAck:
        """Submit a new order."""

    def cancel_order(self, order_id: str) -> CancelResult:
        """Cancel a resting order."""

    def decrease_order(self, order_id: str, *, reduce_by: int | None = None, reduce_to: int | None = None) -> Order:
        """Shrink a resting order."""

    def get_order(self, order_id: str) -> Order:
        """Fetch an order by id."""


class AccountReadClient(Protocol):
    """Reads account state from Kalshi."""

    def get_balance(self) -> int:
        """Read the cash balance in cents."""

    def get_orders(self, **filters: Any) -> Page[Order]:
        """Read one page of orders."""

    def get_fills(self, **filters: Any) -> Page[Fill]:
        """Read one page of fills."""

    def get_positions(self, **filters: Any) -> PositionsPage:
        """Read one page of market and event positions."""


class MarketDataClient(Protocol):
    """Reads markets, events, series and trades."""

    def get_market(self, ticker: str) -> Market: ...

    def get_markets(self, **filters: Any) -> Page[Market]: ...

    def get_event(self, event_ticker: str, *, with_nested_markets: bool | None = None) -> Event: ...

    def get_events(self, **filters: Any) -> Page[Event]: ...

    def get_series(self, series_ticker: str) -> Series: ...

    def get_trades(self, **filters: Any) -> Page[Trade]: ...

    def get_market_orderbook(self, ticker: str, *, depth: int | None = None) -> Orderbook: ...

    def get_market_history(self, ticker: str, **filters: Any) -> Page[Snapshot]: ...


class ExchangeInfoClient(Protocol):
    """Reads exchange-wide status."""

    def get_exchange_status(self) -> ExchangeStatus: ...

    def get_exchange_schedule(self) -> ExchangeSchedule: ...
