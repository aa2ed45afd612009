"""Declarative descriptors for every supported Kalshi REST endpoint."""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Any, Iterable, Mapping
from urllib.parse import quote, urlencode

from .errors import ValidationError


@dataclass(frozen=True)
class Endpoint:
    name: str
    method: str
    path: str
    requires_auth: bool = True
    query_params: tuple[str, ...] = ()

    @property
    def path_params(self) -> tuple[str, ...]:
        return tuple(field for _, field, _, _ in string.Formatter().parse(self.path) if field)

    def render_path(self, path_params: Mapping[str, Any] | None = None) -> str:
        values = dict(path_params or {})
        missing = [name for name in self.path_params if values.get(name) in (None, "")]
        if missing:
            raise ValidationError(f"{self.name}: missing path parameter(s) {', '.join(missing)}")
        quoted = {name: quote(str(values[name]), safe="") for name in self.path_params}
        return self.path.format(**quoted)

    def encode_query(self, query: Mapping[str, Any] | None = None) -> str:
        """Encode the non-``None`` filters, rejecting names the endpoint does not accept."""

        pairs: list[tuple[str, str]] = []
        for name, value in (query or {}).items():
            if value is None:
                continue
            if name not in self.query_params:
                raise ValidationError(f"{self.name}: unsupported query parameter {name!r}")
            pairs.append((name, _format_query_value(value)))
        return urlencode(pairs)


def _format_query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, Iterable):
        return ",".join(str(item) for item in value)
    return str(value)


_PAGINATION = ("limit", "cursor")
_TIME_RANGE = ("min_ts", "max_ts")

LOGIN = Endpoint("login", "POST", "/login", requires_auth=False)
LOGOUT = Endpoint("logout", "POST", "/logout")

GET_BALANCE = Endpoint("get_balance", "GET", "/portfolio/balance")
GET_ORDERS = Endpoint(
    "get_orders",
    "GET",
    "/portfolio/orders",
    query_params=("ticker", "event_ticker", "status", *_TIME_RANGE, *_PAGINATION),
)
GET_ORDER = Endpoint("get_order", "GET", "/portfolio/orders/{order_id}")
CREATE_ORDER = Endpoint("create_order", "POST", "/portfolio/orders")
CANCEL_ORDER = Endpoint("cancel_order", "DELETE", "/portfolio/orders/{order_id}")
DECREASE_ORDER = Endpoint("decrease_order", "POST", "/portfolio/orders/{order_id}/decrease")
GET_FILLS = Endpoint(
    "get_fills",
    "GET",
    "/portfolio/fills",
    query_params=("ticker", "order_id", *_TIME_RANGE, *_PAGINATION),
)
GET_POSITIONS = Endpoint(
    "get_positions",
    "GET",
    "/portfolio/positions",
    query_params=("ticker", "event_ticker", "settlement_status", *_PAGINATION),
)

GET_MARKETS = Endpoint(
    "get_markets",
    "GET",
    "/markets",
    requires_auth=False,
    query_params=("event_ticker", "series_ticker", "status", "tickers", "min_close_ts", "max_close_ts", *_PAGINATION),
)
GET_MARKET = Endpoint("get_market", "GET", "/markets/{ticker}", requires_auth=False)
GET_TRADES = Endpoint(
    "get_trades",
    "GET",
    "/markets/trades",
    requires_auth=False,
    query_params=("ticker", *_TIME_RANGE, *_PAGINATION),
)
GET_MARKET_ORDERBOOK = Endpoint("get_market_orderbook", "GET", "/markets/{ticker}/orderbook", query_params=("depth",))
GET_MARKET_HISTORY = Endpoint(
    "get_market_history",
    "GET",
    "/markets/{ticker}/history",
    query_params=(*_TIME_RANGE, *_PAGINATION),
)
GET_EVENTS = Endpoint(
    "get_events",
    "GET",
    "/events",
    requires_auth=False,
    query_params=("series_ticker", "status", "with_nested_markets", *_PAGINATION),
)
GET_EVENT = Endpoint(
    "get_event",
    "GET",
    "/events/{event_ticker}",
    requires_auth=False,
    query_params=("with_nested_markets",),
)
GET_SERIES = Endpoint("get_series", "GET", "/series/{series_ticker}", requires_auth=False)

GET_EXCHANGE_STATUS = Endpoint("get_exchange_status", "GET", "/exchange/status", requires_auth=False)
GET_EXCHANGE_SCHEDULE = Endpoint("get_exchange_schedule", "GET", "/exchange/schedule", requires_auth=False)

ENDPOINTS: dict[str, Endpoint] = {
    endpoint.name: endpoint
    for endpoint in (
        LOGIN,
        LOGOUT,
        GET_BALANCE,
        GET_ORDERS,
        GET_ORDER,
        CREATE_ORDER,
        CANCEL_ORDER,
        DECREASE_ORDER,
        GET_FILLS,
        GET_POSITIONS,
        GET_MARKETS,
        GET_MARKET,
        GET_TRADES,
        GET_MARKET_ORDERBOOK,
        GET_MARKET_HISTORY,
        GET_EVENTS,
        GET_EVENT,
        GET_SERIES,
        GET_EXCHANGE_STATUS,
        GET_EXCHANGE_SCHEDULE,
    )
}
