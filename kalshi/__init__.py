"""Typed client for the Kalshi trade API."""

from .auth import Credentials, Session, SessionStore
from .client import KalshiClient, KalshiTransportFactory, SimpleHttpTransport
from .config import KalshiConfig, TradingEnvironment
from .dependencies import KalshiDependencies, build_kalshi_dependencies
from .endpoints import ENDPOINTS, Endpoint
from .errors import (
    ApiError,
    AuthError,
    DecodeError,
    ErrorCode,
    KalshiError,
    NotFoundError,
    TransportError,
    ValidationError,
    map_kalshi_error,
)
from .markets import (
    DaySchedule,
    Event,
    ExchangeSchedule,
    ExchangeStatus,
    Market,
    Orderbook,
    PriceLevel,
    Series,
    SettlementSource,
    Snapshot,
    Trade,
)
from .models import (
    Action,
    CancelResult,
    EventPosition,
    Fill,
    MarketPosition,
    Order,
    OrderAck,
    OrderRequest,
    OrderStatus,
    OrderType,
    Page,
    PositionsPage,
    Side,
)

__all__ = [
    "Action",
    "ApiError",
    "AuthError",
    "CancelResult",
    "Credentials",
    "DaySchedule",
    "DecodeError",
    "ENDPOINTS",
    "Endpoint",
    "ErrorCode",
    "Event",
    "EventPosition",
    "ExchangeSchedule",
    "ExchangeStatus",
    "Fill",
    "KalshiClient",
    "KalshiConfig",
    "KalshiDependencies",
    "KalshiError",
    "KalshiTransportFactory",
    "Market",
    "MarketPosition",
    "NotFoundError",
    "Order",
    "OrderAck",
    "OrderRequest",
    "OrderStatus",
    "OrderType",
    "Orderbook",
    "Page",
    "PositionsPage",
    "PriceLevel",
    "Series",
    "Session",
    "SessionStore",
    "SettlementSource",
    "Side",
    "SimpleHttpTransport",
    "Snapshot",
    "Trade",
    "TradingEnvironment",
    "TransportError",
    "ValidationError",
    "build_kalshi_dependencies",
    "map_kalshi_error",
]
