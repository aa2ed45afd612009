"""Read-only market, event, series and exchange records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .errors import DecodeError


def _require(payload: Mapping[str, Any], key: str, record: str) -> Any:
    value = payload.get(key)
    if value is None:
        raise DecodeError(f"{record} response missing {key}")
    return value


def _int(payload: Mapping[str, Any], key: str) -> int:
    return int(payload.get(key) or 0)


def _optional_float(payload: Mapping[str, Any], key: str) -> float | None:
    value = payload.get(key)
    return float(value) if value is not None else None


def _optional_str(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    return str(value) if value is not None else None


def unwrap(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    """Return the object nested under ``key`` in a single-record response."""

    value = payload.get(key)
    if not isinstance(value, Mapping):
        raise DecodeError(f"response missing {key} object")
    return value


@dataclass(frozen=True)
class Market:
    ticker: str
    event_ticker: str
    market_type: str
    title: str
    subtitle: str
    yes_sub_title: str
    no_sub_title: str
    status: str
    open_time: str
    close_time: str
    expected_expiration_time: str | None
    expiration_time: str | None
    latest_expiration_time: str
    settlement_timer_seconds: int
    response_price_units: str
    notional_value: int
    tick_size: int
    yes_bid: int
    yes_ask: int
    no_bid: int
    no_ask: int
    last_price: int
    previous_yes_bid: int
    previous_yes_ask: int
    previous_price: int
    volume: int
    volume_24h: int
    liquidity: int
    open_interest: int
    result: str
    can_close_early: bool
    expiration_value: str
    category: str
    risk_limit_cents: int
    rules_primary: str
    rules_secondary: str
    strike_type: str | None = None
    floor_strike: float | None = None
    cap_strike: float | None = None
    settlement_value: str | None = None
    functional_strike: str | None = None

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any]) -> "Market":
        return cls(
            ticker=str(_require(payload, "ticker", "market")),
            event_ticker=str(payload.get("event_ticker") or ""),
            market_type=str(payload.get("market_type") or ""),
            title=str(payload.get("title") or ""),
            subtitle=str(payload.get("subtitle") or ""),
            yes_sub_title=str(payload.get("yes_sub_title") or ""),
            no_sub_title=str(payload.get("no_sub_title") or ""),
            status=str(payload.get("status") or ""),
            open_time=str(payload.get("open_time") or ""),
            close_time=str(payload.get("close_time") or ""),
            expected_expiration_time=_optional_str(payload, "expected_expiration_time"),
            expiration_time=_optional_str(payload, "expiration_time"),
            latest_expiration_time=str(payload.get("latest_expiration_time") or ""),
            settlement_timer_seconds=_int(payload, "settlement_timer_seconds"),
            response_price_units=str(payload.get("response_price_units") or ""),
            notional_value=_int(payload, "notional_value"),
            tick_size=_int(payload, "tick_size"),
            yes_bid=_int(payload, "yes_bid"),
            yes_ask=_int(payload, "yes_ask"),
            no_bid=_int(payload, "no_bid"),
            no_ask=_int(payload, "no_ask"),
            last_price=_int(payload, "last_price"),
            previous_yes_bid=_int(payload, "previous_yes_bid"),
            previous_yes_ask=_int(payload, "previous_yes_ask"),
            previous_price=_int(payload, "previous_price"),
            volume=_int(payload, "volume"),
            volume_24h=_int(payload, "volume_24h"),
            liquidity=_int(payload, "liquidity"),
            open_interest=_int(payload, "open_interest"),
            result=str(payload.get("result") or ""),
            can_close_early=bool(payload.get("can_close_early", False)),
            expiration_value=str(payload.get("expiration_value") or ""),
            category=str(payload.get("category") or ""),
            risk_limit_cents=_int(payload, "risk_limit_cents"),
            rules_primary=str(payload.get("rules_primary") or ""),
            rules_secondary=str(payload.get("rules_secondary") or ""),
            strike_type=_optional_str(payload, "strike_type"),
            floor_strike=_optional_float(payload, "floor_strike"),
            cap_strike=_optional_float(payload, "cap_strike"),
            settlement_value=_optional_str(payload, "settlement_value"),
            functional_strike=_optional_str(payload, "functional_strike"),
        )


@dataclass(frozen=True)
class Event:
    event_ticker: str
    series_ticker: str
    title: str
    sub_title: str
    category: str
    mutually_exclusive: bool
    strike_date: str | None = None
    strike_period: str | None = None
    markets: tuple[Market, ...] = ()

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any], *, markets: Any = None) -> "Event":
        raw_markets = payload.get("markets") if markets is None else markets
        return cls(
            event_ticker=str(_require(payload, "event_ticker", "event")),
            series_ticker=str(payload.get("series_ticker") or ""),
            title=str(payload.get("title") or ""),
            sub_title=str(payload.get("sub_title") or ""),
            category=str(payload.get("category") or ""),
            mutually_exclusive=bool(payload.get("mutually_exclusive", False)),
            strike_date=_optional_str(payload, "strike_date"),
            strike_period=_optional_str(payload, "strike_period"),
            markets=tuple(Market.from_exchange(item) for item in raw_markets or ()),
        )


@dataclass(frozen=True)
class SettlementSource:
    name: str
    url: str


@dataclass(frozen=True)
class Series:
    ticker: str
    title: str
    category: str
    frequency: str
    contract_url: str
    tags: tuple[str, ...] = ()
    settlement_sources: tuple[SettlementSource, ...] = ()

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any]) -> "Series":
        return cls(
            ticker=str(_require(payload, "ticker", "series")),
            title=str(payload.get("title") or ""),
            category=str(payload.get("category") or ""),
            frequency=str(payload.get("frequency") or ""),
            contract_url=str(payload.get("contract_url") or ""),
            tags=tuple(str(tag) for tag in payload.get("tags") or ()),
            settlement_sources=tuple(
                SettlementSource(name=str(source.get("name") or ""), url=str(source.get("url") or ""))
                for source in payload.get("settlement_sources") or ()
            ),
        )


@dataclass(frozen=True)
class Trade:
    trade_id: str
    ticker: str
    taker_side: str
    count: int
    yes_price: int
    no_price: int
    created_time: str

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any]) -> "Trade":
        return cls(
            trade_id=str(_require(payload, "trade_id", "trade")),
            ticker=str(_require(payload, "ticker", "trade")),
            taker_side=str(payload.get("taker_side") or ""),
            count=_int(payload, "count"),
            yes_price=_int(payload, "yes_price"),
            no_price=_int(payload, "no_price"),
            created_time=str(payload.get("created_time") or ""),
        )


@dataclass(frozen=True)
class PriceLevel:
    price: int
    quantity: int


def _levels(raw: Any, side: str) -> tuple[PriceLevel, ...]:
    if raw is None:
        return ()
    levels = []
    for level in raw:
        if len(level) != 2:
            raise DecodeError(f"orderbook {side} level must be [price, quantity], got {level!r}")
        levels.append(PriceLevel(price=int(level[0]), quantity=int(level[1])))
    return tuple(levels)


@dataclass(frozen=True)
class Orderbook:
    """Resting bids on each side; the exchange omits a side with no depth."""

    yes: tuple[PriceLevel, ...]
    no: tuple[PriceLevel, ...]

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any]) -> "Orderbook":
        return cls(yes=_levels(payload.get("yes"), "yes"), no=_levels(payload.get("no"), "no"))

    def best_yes_bid(self) -> int | None:
        return max((level.price for level in self.yes), default=None)

    def best_no_bid(self) -> int | None:
        return max((level.price for level in self.no), default=None)


@dataclass(frozen=True)
class Snapshot:
    ts: int
    yes_price: int
    yes_bid: int
    yes_ask: int
    no_bid: int
    no_ask: int
    volume: int
    open_interest: int

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any]) -> "Snapshot":
        return cls(
            ts=int(_require(payload, "ts", "market history")),
            yes_price=_int(payload, "yes_price"),
            yes_bid=_int(payload, "yes_bid"),
            yes_ask=_int(payload, "yes_ask"),
            no_bid=_int(payload, "no_bid"),
            no_ask=_int(payload, "no_ask"),
            volume=_int(payload, "volume"),
            open_interest=_int(payload, "open_interest"),
        )


@dataclass(frozen=True)
class ExchangeStatus:
    exchange_active: bool
    trading_active: bool

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any]) -> "ExchangeStatus":
        return cls(
            exchange_active=bool(_require(payload, "exchange_active", "exchange status")),
            trading_active=bool(_require(payload, "trading_active", "exchange status")),
        )


@dataclass(frozen=True)
class DaySchedule:
    open_time: str
    close_time: str


WEEKDAYS: tuple[str, ...] = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class ExchangeSchedule:
    standard_hours: tuple[tuple[str, DaySchedule], ...]
    maintenance_windows: tuple[str, ...] = ()

    def day(self, name: str) -> DaySchedule:
        for day, hours in self.standard_hours:
            if day == name:
                return hours
        raise KeyError(name)

    @classmethod
    def from_exchange(cls, payload: Mapping[str, Any]) -> "ExchangeSchedule":
        schedule = unwrap(payload, "schedule")
        hours = schedule.get("standard_hours")
        if not isinstance(hours, Mapping):
            raise DecodeError("schedule response missing standard_hours")
        standard_hours = []
        for day in WEEKDAYS:
            window = hours.get(day)
            if not isinstance(window, Mapping):
                raise DecodeError(f"schedule response missing {day}")
            standard_hours.append(
                (day, DaySchedule(open_time=str(window.get("open_time") or ""), close_time=str(window.get("close_time") or "")))
            )
        windows = schedule.get("maintenance_windows") or ()
        if not isinstance(windows, (list, tuple)) or not all(isinstance(window, str) for window in windows):
            raise DecodeError("maintenance_windows must be a list of strings")
        return cls(standard_hours=tuple(standard_hours), maintenance_windows=tuple(windows))


def decode_event(payload: Mapping[str, Any]) -> Event:
    # Nested markets come back beside the event object, not inside it.
    event = unwrap(payload, "event")
    return Event.from_exchange(event, markets=event.get("markets") or payload.get("markets"))
