"""Typed request/response models and schema validation for Kalshi portfolio endpoints."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Mapping, TypeVar

from .errors import DecodeError, ValidationError

T = TypeVar("T")


class Side(str, Enum):
    YES = "yes"
    NO = "no"


class Action(str, Enum):
    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"


class OrderStatus(str, Enum):
    RESTING = "resting"
    CANCELED = "canceled"
    EXECUTED = "executed"
    PENDING = "pending"
    UNKNOWN = "unknown"


_STATUS_MAP: dict[str, OrderStatus] = {
    "resting": OrderStatus.RESTING,
    "open": OrderStatus.RESTING,
    "canceled": OrderStatus.CANCELED,
    "cancelled": OrderStatus.CANCELED,
    "executed": OrderStatus.EXECUTED,
    "filled": OrderStatus.EXECUTED,
    "pending": OrderStatus.PENDING,
    "queued": OrderStatus.PENDING,
}


def normalize_order_status(status: str) -> OrderStatus:
    """Normalize Kalshi status values to the order status enum."""

    return _STATUS_MAP.get(status.strip().lower(), OrderStatus.UNKNOWN)


def _coerce_enum(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as exc:
        allowed = "/".join(member.value for member in enum_cls)
        raise ValidationError(f"{field_name} must be one of {allowed}, got {value!r}") from exc


def _optional_int(payload: Mapping[str, Any], key: str) -> int | None:
    value = payload.get(key)
    return int(value) if value is not None else None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_order_int(value: Any, field_name: str) -> int | None:
    if value is None:
        return None
    if _is_int(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        digits = text.removeprefix("-")
        if digits.isascii() and digits.isdigit():
            return int(text)
    raise ValidationError(f"{field_name} must be an integer, got {value!r}")


def _optional_str(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    return str(value) if value is not None else None


def _require(payload: Mapping[str, Any], key: str, record: str) -> Any:
    value = payload.get(key)
    if value is None:
        raise DecodeError(f"{record} response missing {key}")
    return value


def new_client_order_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a cursor-paginated listing."""

    items: tuple[T, ...]
    cursor: str | None = None

    @classmethod
    def from_exchange(
        cls,
        payload: Mapping[str, Any],
        key: str,
        decode: Callable[[Mapping[str, Any]], T],
    ) -> "Page[T]":
        raw_items = payload.get(key)
        if raw_items is None:
            raw_items = []
        if not isinstance(raw_items, list):
            raise DecodeError(f"expected a list under {key!r}")
        return cls(items=tuple(decode(item) for item in raw_items), cursor=payload.get("cursor") or None)

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def has_more(self) -> bool:
        return self.cursor is not None


@dataclass(frozen=True)
class OrderRequest:
    ticker: str
    side: Side
    action: Action
    count: int
    order_type: OrderType = OrderType.MARKET
    yes_price: int | None = None
    no_price: int | None = None
    buy_max_cost: int | None = None
    sell_position_floor: int | None = None
    expiration_ts: int | None = None
    client_order_id: str = field(default_factory=new_client_order_id)

    def __post_init__(self) -> None:
        object.__setattr__(self, "side", _coerce_enum(Side, self.side, "side"))
        object.__setattr__(self, "action", _coerce_enum(Action, self.action, "action"))
        object.__setattr__(self, "order_type", _coerce_enum(OrderType, self.order_type, "type"))
        if not self.client_order_id:
            object.__setattr__(self, "client_order_id", new_client_order_id())

        if not isinstance(self.client_order_id, str):
            raise ValidationError("client_order_id must be a string")
        if not isinstance(self.ticker, str) or not self.ticker.strip():
            raise ValidationError("ticker must be a non-empty string")
        if not _is_int(self.count):
            raise ValidationError("count must be an integer")
        if self.count <= 0:
            raise ValidationError("count must be positive")
        for name in ("yes_price", "no_price", "buy_max_cost", "sell_position_floor", "expiration_ts"):
            value = getattr(self, name)
            if value is not None and not _is_int(value):
                raise ValidationError(f"{name} must be an integer, got {value!r}")

        limit_prices = [price for price in (self.yes_price, self.no_price) if price is not None]
        market_bounds = [bound for bound in (self.buy_max_cost, self.sell_position_floor) if bound is not None]

        if self.order_type == OrderType.LIMIT:
            if len(limit_prices) != 1:
                raise ValidationError("limit orders require exactly one of yes_price or no_price")
            if market_bounds:
                raise ValidationError("limit orders cannot set buy_max_cost or sell_position_floor")
            if not 1 <= limit_prices[0] <= 99:
                raise ValidationError("limit price must be in [1, 99]")
        else:
            if limit_prices:
                raise ValidationError("market orders cannot set yes_price or no_price")
            if self.buy_max_cost is not None and self.action != Action.BUY:
                raise ValidationError("buy_max_cost only applies to buy orders")
            if self.sell_position_floor is not None and self.action != Action.SELL:
                raise ValidationError("sell_position_floor only applies to sell orders")
            if self.buy_max_cost is not None and self.buy_max_cost <= 0:
                raise ValidationError("buy_max_cost must be positive")
            if self.sell_position_floor is not None and self.sell_position_floor < 0:
                raise ValidationError("sell_position_floor cannot be negative")

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "OrderRequest":
        try:
            return cls(
                ticker=payload.get("ticker", ""),
                side=payload.get("side", ""),
                action=payload.get("action", ""),
                count=_parse_order_int(payload.get("count", 0), "count"),
                order_type=payload.get("type", OrderType.MARKET),
                yes_price=_parse_order_int(payload.get("yes_price"), "yes_price"),
                no_price=_parse_order_int(payload.get("no_price"), "no_price"),
                buy_max_cost=_parse_order_int(payload.get("buy_max_cost"), "buy_max_cost"),
                sell_position_floor=_parse_order_int(payload.get("sell_position_floor"), "sell_position_floor"),
                expiration_ts=_parse_order_int(payload.get("expiration_ts"), "expiration_ts"),
                client_order_id=str(payload.get("client_order_id") or ""),
            )
        except (TypeError, ValueError) as exc:
            if isinstance(exc, ValidationError):
                raise
            raise ValidationError(str(exc)) from exc

    def to_exchange_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "action": self.action.value,
            "ticker": self.ticker,
            "client_order_id": self.client_order_id,
            "count": self.count,
            "side": self.side.value,
            "type": self.order_type.value,
        }
        if self.order_type == OrderType.LIMIT:
            if self.yes_price is not None:
                payload["yes_price"] = self.yes_price
            else:
                payload["no_price"] = self.no_price
        elif self.action == Action.BUY:
            payload["buy_max_cost"] = self.buy_max_cost
        elif self.sell_position_floor is not None:
            payload["sell_position_floor"] = self.sell_position_floor
        if self.expiration_ts is not None:
            payload["expiration_ts"] = self.expiration_ts
        return payload


@dataclass(frozen=True)
class Order:
    order_id: str
    ticker: str
    status: OrderStatus
    raw_status: str
    side: Side
    action: Action
    order_type: OrderType
    yes_price: int | None = None
    no_price: int | None = None
    client_order_id: str | None = None
    user_id: str | None = None
    remaining_count: int | None = None
    place_count: int | None = None
    decrease_count: int | None = None
    maker_fill_count: int | None = None
    taker_fill_count: int | None = None
    taker_fill_cost: int | None = None
    taker_fees: int | None = None
    queue_position: int | None = None
    order_group_id: str | None = None
    created_time: str | None = None
    expiration_time: str | None = None
    last_update_time: str | None = None

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any]) -> "Order":
        order_id = str(payload.get("order_id") or "")
        if not order_id:
            raise DecodeError("order response missing order_id")

        raw_status = str(payload.get("status") or "")

        return cls(
            order_id=order_id,
            ticker=str(_require(payload, "ticker", "order")),
            status=normalize_order_status(raw_status),
            raw_status=raw_status,
            side=Side(str(_require(payload, "side", "order")).lower()),
            action=Action(str(_require(payload, "action", "order")).lower()),
            order_type=OrderType(str(payload.get("type") or "limit").lower()),
            yes_price=_optional_int(payload, "yes_price"),
            no_price=_optional_int(payload, "no_price"),
            client_order_id=_optional_str(payload, "client_order_id"),
            user_id=_optional_str(payload, "user_id"),
            remaining_count=_optional_int(payload, "remaining_count"),
            place_count=_optional_int(payload, "place_count"),
            decrease_count=_optional_int(payload, "decrease_count"),
            maker_fill_count=_optional_int(payload, "maker_fill_count"),
            taker_fill_count=_optional_int(payload, "taker_fill_count"),
            taker_fill_cost=_optional_int(payload, "taker_fill_cost"),
            taker_fees=_optional_int(payload, "taker_fees"),
            queue_position=_optional_int(payload, "queue_position"),
            order_group_id=_optional_str(payload, "order_group_id"),
            created_time=_optional_str(payload, "created_time"),
            expiration_time=_optional_str(payload, "expiration_time"),
            last_update_time=_optional_str(payload, "last_update_time"),
        )


def _order_payload(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    order_payload = payload.get("order")
    if not isinstance(order_payload, Mapping):
        raise DecodeError("response missing order object")
    return order_payload


@dataclass(frozen=True)
class OrderAck:
    order: Order
    client_order_id: str

    @property
    def order_id(self) -> str:
        return self.order.order_id

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any], *, client_order_id: str) -> "OrderAck":
        order = Order.from_exchange(_order_payload(payload))
        return cls(order=order, client_order_id=order.client_order_id or client_order_id)


@dataclass(frozen=True)
class CancelResult:
    order: Order
    reduced_by: int

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any]) -> "CancelResult":
        return cls(order=Order.from_exchange(_order_payload(payload)), reduced_by=int(payload.get("reduced_by") or 0))


@dataclass(frozen=True)
class Fill:
    trade_id: str
    order_id: str
    ticker: str
    side: Side
    action: Action
    count: int
    yes_price: int
    no_price: int
    is_taker: bool
    created_time: str

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any]) -> "Fill":
        return cls(
            trade_id=str(_require(payload, "trade_id", "fill")),
            order_id=str(_require(payload, "order_id", "fill")),
            ticker=str(_require(payload, "ticker", "fill")),
            side=Side(str(_require(payload, "side", "fill")).lower()),
            action=Action(str(_require(payload, "action", "fill")).lower()),
            count=int(_require(payload, "count", "fill")),
            yes_price=int(_require(payload, "yes_price", "fill")),
            no_price=int(_require(payload, "no_price", "fill")),
            is_taker=bool(payload.get("is_taker", False)),
            created_time=str(payload.get("created_time") or ""),
        )


@dataclass(frozen=True)
class MarketPosition:
    ticker: str
    position: int
    market_exposure: int
    realized_pnl: int
    total_traded: int
    resting_orders_count: int
    fees_paid: int

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any]) -> "MarketPosition":
        return cls(
            ticker=str(_require(payload, "ticker", "market position")),
            position=int(payload.get("position") or 0),
            market_exposure=int(payload.get("market_exposure") or 0),
            realized_pnl=int(payload.get("realized_pnl") or 0),
            total_traded=int(payload.get("total_traded") or 0),
            resting_orders_count=int(payload.get("resting_orders_count") or 0),
            fees_paid=int(payload.get("fees_paid") or 0),
        )


@dataclass(frozen=True)
class EventPosition:
    event_ticker: str
    event_exposure: int
    realized_pnl: int
    total_cost: int
    resting_order_count: int
    fees_paid: int

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any]) -> "EventPosition":
        return cls(
            event_ticker=str(_require(payload, "event_ticker", "event position")),
            event_exposure=int(payload.get("event_exposure") or 0),
            realized_pnl=int(payload.get("realized_pnl") or 0),
            total_cost=int(payload.get("total_cost") or 0),
            resting_order_count=int(payload.get("resting_order_count") or 0),
            fees_paid=int(payload.get("fees_paid") or 0),
        )


@dataclass(frozen=True)
class PositionsPage:
    market_positions: tuple[MarketPosition, ...]
    event_positions: tuple[EventPosition, ...]
    cursor: str | None = None

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any]) -> "PositionsPage":
        markets = Page.from_exchange(payload, "market_positions", MarketPosition.from_exchange)
        events = Page.from_exchange(payload, "event_positions", EventPosition.from_exchange)
        return cls(market_positions=markets.items, event_positions=events.items, cursor=markets.cursor)


def decode_balance(payload: Mapping[str, Any]) -> int:
    balance = payload.get("balance")
    if balance is None or isinstance(balance, bool):
        raise DecodeError("balance response missing balance")
    return int(balance)
