"""Kalshi REST client with shared session-token plumbing."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from http.client import HTTPException
from typing import Any, Callable, TypeVar
from urllib.error import HTTPError, URLError
from urllib.parse import urljoin
from urllib.request import Request, urlopen

from . import endpoints
from .auth import Credentials, Session, SessionStore
from .config import KalshiConfig
from .endpoints import Endpoint
from .errors import ApiError, AuthError, DecodeError, ErrorCode, KalshiError, TransportError, ValidationError, map_kalshi_error
from .interfaces import AccountReadClient, ExchangeInfoClient, MarketDataClient, OrderExecutionClient, SessionClient
from .markets import Event, ExchangeSchedule, ExchangeStatus, Market, Orderbook, Series, Snapshot, Trade, decode_event, unwrap
from .models import (
    CancelResult,
    Fill,
    Order,
    OrderAck,
    OrderRequest,
    Page,
    PositionsPage,
    decode_balance,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class HttpResponse:
    status_code: int
    body: bytes

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise HttpStatusError(self.status_code, self.body.decode("utf-8", errors="ignore"))

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


class HttpStatusError(Exception):
    def __init__(self, status_code: int, body: str):
        super().__init__(body)
        self.status_code = status_code


class SimpleHttpTransport:
    """Minimal urllib-backed HTTP transport."""

    def __init__(self, *, default_headers: Mapping[str, str] | None = None):
        self.default_headers = dict(default_headers or {})

    def request(self, *, method: str, url: str, data: str | None, headers: Mapping[str, str], timeout: float) -> HttpResponse:
        payload = data.encode("utf-8") if data is not None else None
        request = Request(url=url, data=payload, headers={**self.default_headers, **headers}, method=method)
        try:
            with urlopen(request, timeout=timeout) as response:  # noqa: S310 - URL is explicit config
                return HttpResponse(status_code=response.status, body=response.read())
        except HTTPError as exc:
            body = exc.read() if hasattr(exc, "read") else b""
            raise HttpStatusError(exc.code, body.decode("utf-8", errors="ignore")) from exc
        except URLError as exc:
            if isinstance(exc.reason, TimeoutError):
                raise TimeoutError(str(exc.reason)) from exc
            raise OSError(str(exc.reason)) from exc
        except HTTPException as exc:
            # Truncated or malformed responses, e.g. IncompleteRead.
            raise OSError(f"{type(exc).__name__}: {exc}") from exc


class KalshiTransportFactory:
    """Creates HTTP transports for a given configuration."""

    def __init__(self, config: KalshiConfig):
        self._config = config

    def create_http_transport(self) -> SimpleHttpTransport:
        return SimpleHttpTransport(default_headers={"User-Agent": self._config.user_agent})


class KalshiClient(SessionClient, OrderExecutionClient, AccountReadClient, MarketDataClient, ExchangeInfoClient):
    """Typed client for the Kalshi trade API.

    One instance may be shared between threads. The bearer token lives in a
    ``SessionStore`` that is only replaced wholesale by ``login``/``logout``;
    every request reads a single snapshot of it. The client never retries:
    order submissions carry a ``client_order_id`` so callers can resubmit
    after a ``TransportError`` without creating a duplicate order.
    """

    def __init__(
        self,
        *,
        config: KalshiConfig,
        transport: SimpleHttpTransport | None = None,
        sessions: SessionStore | None = None,
    ) -> None:
        self._config = config
        self._transport = transport or KalshiTransportFactory(config).create_http_transport()
        self._sessions = sessions or SessionStore()

    @property
    def session(self) -> Session | None:
        return self._sessions.current()

    @property
    def is_authenticated(self) -> bool:
        session = self._sessions.current()
        return session is not None and not session.is_expired()

    def _execute(
        self,
        endpoint: Endpoint,
        *,
        path_params: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        payload: Mapping[str, Any] | None = None,
        session: Session | None = None,
    ) -> dict[str, Any]:
        # Everything up to the transport call is local and may fail without I/O.
        if endpoint.requires_auth and session is None:
            session = self._sessions.require()
        path = endpoint.render_path(path_params)
        query_string = endpoint.encode_query(query)

        url = urljoin(f"{self._config.base_url}/", path.lstrip("/"))
        if query_string:
            url = f"{url}?{query_string}"
        body = json.dumps(dict(payload), separators=(",", ":")) if payload is not None else None
        headers = {"Accept": "application/json"}
        if body is not None:
            headers["Content-Type"] = "application/json"
        if endpoint.requires_auth and session is not None:
            headers["Authorization"] = session.authorization_header

        logger.debug(
            "kalshi_request_sent",
            extra={"event": "request", "endpoint": endpoint.name, "method": endpoint.method, "path": path},
        )
        try:
            response = self._transport.request(
                method=endpoint.method,
                url=url,
                data=body,
                headers=headers,
                timeout=self._config.timeout_seconds,
            )
            response.raise_for_status()
        except Exception as exc:  # mapped to the client error taxonomy
            mapped = map_kalshi_error(exc)
            logger.warning(
                "kalshi_request_failed",
                extra={
                    "event": "request_failed",
                    "endpoint": endpoint.name,
                    "code": mapped.code.value,
                    "status_code": getattr(exc, "status_code", None),
                },
            )
            if session is not None and getattr(exc, "status_code", None) == 401:
                self._sessions.invalidate(session, reason="rejected_by_exchange")
            raise mapped from exc

        if not response.body:
            return {}
        try:
            decoded = response.json()
        except ValueError as exc:
            raise DecodeError(f"{endpoint.name}: response is not valid JSON", cause=exc) from exc
        if not isinstance(decoded, dict):
            raise DecodeError(f"{endpoint.name}: expected a JSON object, got {type(decoded).__name__}")
        return decoded

    @staticmethod
    def _decode(endpoint: Endpoint, decoder: Callable[[], T]) -> T:
        try:
            return decoder()
        except KalshiError:
            raise
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            raise DecodeError(f"{endpoint.name}: unexpected response shape: {exc}", cause=exc) from exc

    def _page(self, endpoint: Endpoint, key: str, decode: Callable[[Mapping[str, Any]], T], **kwargs: Any) -> Page[T]:
        response = self._execute(endpoint, **kwargs)
        return self._decode(endpoint, lambda: Page.from_exchange(response, key, decode))

    def login(self, credentials: Credentials | None = None) -> Session:
        resolved = credentials or self._config.credentials()
        try:
            response = self._execute(endpoints.LOGIN, payload=resolved.to_exchange_payload())
        except AuthError:
            logger.warning("kalshi_login_rejected", extra={"event": "login", "outcome": "rejected"})
            raise
        except (TransportError, ApiError) as exc:
            raise AuthError(f"login failed: {exc}", code=exc.code, cause=exc) from exc

        session = self._decode(
            endpoints.LOGIN,
            lambda: Session.from_exchange(response, ttl_seconds=self._config.session_ttl_seconds),
        )
        self._sessions.replace(session)
        logger.info("kalshi_login_succeeded", extra={"event": "login", "member_id": session.member_id})
        return session

    def logout(self) -> None:
        session = self._sessions.replace(None)
        if session is None:
            logger.debug("kalshi_logout_skipped", extra={"event": "logout", "reason": "not_logged_in"})
            return
        logger.info("kalshi_logout", extra={"event": "logout", "member_id": session.member_id})
        if session.is_expired():
            return
        try:
            self._execute(endpoints.LOGOUT, session=session)
        except AuthError as exc:
            if exc.code != ErrorCode.AUTHENTICATION_FAILED:
                raise
            logger.debug("kalshi_logout_token_already_invalid", extra={"event": "logout"})

    def create_order(self, order: OrderRequest | Mapping[str, Any]) -> OrderAck:
        request = order if isinstance(order, OrderRequest) else OrderRequest.from_mapping(order)
        response = self._execute(endpoints.CREATE_ORDER, payload=request.to_exchange_payload())
        ack = self._decode(
            endpoints.CREATE_ORDER,
            lambda: OrderAck.from_exchange(response, client_order_id=request.client_order_id),
        )
        logger.info(
            "kalshi_order_created",
            extra={"event": "order_created", "order_id": ack.order_id, "client_order_id": ack.client_order_id},
        )
        return ack

    def get_order(self, order_id: str) -> Order:
        response = self._execute(endpoints.GET_ORDER, path_params={"order_id": order_id})
        return self._decode(endpoints.GET_ORDER, lambda: Order.from_exchange(unwrap(response, "order")))

    def get_orders(
        self,
        *,
        ticker: str | None = None,
        event_ticker: str | None = None,
        min_ts: int | None = None,
        max_ts: int | None = None,
        status: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> Page[Order]:
        return self._page(
            endpoints.GET_ORDERS,
            "orders",
            Order.from_exchange,
            query={
                "ticker": ticker,
                "event_ticker": event_ticker,
                "min_ts": min_ts,
                "max_ts": max_ts,
                "status": status,
                "limit": limit,
                "cursor": cursor,
            },
        )

    def cancel_order(self, order_id: str) -> CancelResult:
        response = self._execute(endpoints.CANCEL_ORDER, path_params={"order_id": order_id})
        return self._decode(endpoints.CANCEL_ORDER, lambda: CancelResult.from_exchange(response))

    def decrease_order(self, order_id: str, *, reduce_by: int | None = None, reduce_to: int | None = None) -> Order:
        if (reduce_by is None) == (reduce_to is None):
            raise ValidationError("provide exactly one of reduce_by or reduce_to")
        if reduce_by is not None and (not _is_count(reduce_by) or reduce_by <= 0):
            raise ValidationError(f"reduce_by must be a positive integer, got {reduce_by!r}")
        if reduce_to is not None and (not _is_count(reduce_to) or reduce_to < 0):
            raise ValidationError(f"reduce_to must be a non-negative integer, got {reduce_to!r}")

        payload = {"reduce_by": reduce_by} if reduce_by is not None else {"reduce_to": reduce_to}
        response = self._execute(endpoints.DECREASE_ORDER, path_params={"order_id": order_id}, payload=payload)
        return self._decode(endpoints.DECREASE_ORDER, lambda: Order.from_exchange(unwrap(response, "order")))

    def get_balance(self) -> int:
        response = self._execute(endpoints.GET_BALANCE)
        return self._decode(endpoints.GET_BALANCE, lambda: decode_balance(response))

    def get_fills(
        self,
        *,
        ticker: str | None = None,
        order_id: str | None = None,
        min_ts: int | None = None,
        max_ts: int | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> Page[Fill]:
        return self._page(
            endpoints.GET_FILLS,
            "fills",
            Fill.from_exchange,
            query={
                "ticker": ticker,
                "order_id": order_id,
                "min_ts": min_ts,
                "max_ts": max_ts,
                "limit": limit,
                "cursor": cursor,
            },
        )

    def get_positions(
        self,
        *,
        ticker: str | None = None,
        event_ticker: str | None = None,
        settlement_status: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> PositionsPage:
        response = self._execute(
            endpoints.GET_POSITIONS,
            query={
                "ticker": ticker,
                "event_ticker": event_ticker,
                "settlement_status": settlement_status,
                "limit": limit,
                "cursor": cursor,
            },
        )
        return self._decode(endpoints.GET_POSITIONS, lambda: PositionsPage.from_exchange(response))

    def get_market(self, ticker: str) -> Market:
        response = self._execute(endpoints.GET_MARKET, path_params={"ticker": ticker})
        return self._decode(endpoints.GET_MARKET, lambda: Market.from_exchange(unwrap(response, "market")))

    def get_markets(
        self,
        *,
        event_ticker: str | None = None,
        series_ticker: str | None = None,
        status: str | None = None,
        tickers: Iterable[str] | str | None = None,
        min_close_ts: int | None = None,
        max_close_ts: int | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> Page[Market]:
        return self._page(
            endpoints.GET_MARKETS,
            "markets",
            Market.from_exchange,
            query={
                "event_ticker": event_ticker,
                "series_ticker": series_ticker,
                "status": status,
                "tickers": tickers,
                "min_close_ts": min_close_ts,
                "max_close_ts": max_close_ts,
                "limit": limit,
                "cursor": cursor,
            },
        )

    def get_event(self, event_ticker: str, *, with_nested_markets: bool | None = None) -> Event:
        response = self._execute(
            endpoints.GET_EVENT,
            path_params={"event_ticker": event_ticker},
            query={"with_nested_markets": with_nested_markets},
        )
        return self._decode(endpoints.GET_EVENT, lambda: decode_event(response))

    def get_events(
        self,
        *,
        series_ticker: str | None = None,
        status: str | None = None,
        with_nested_markets: bool | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> Page[Event]:
        return self._page(
            endpoints.GET_EVENTS,
            "events",
            Event.from_exchange,
            query={
                "series_ticker": series_ticker,
                "status": status,
                "with_nested_markets": with_nested_markets,
                "limit": limit,
                "cursor": cursor,
            },
        )

    def get_series(self, series_ticker: str) -> Series:
        response = self._execute(endpoints.GET_SERIES, path_params={"series_ticker": series_ticker})
        return self._decode(endpoints.GET_SERIES, lambda: Series.from_exchange(unwrap(response, "series")))

    def get_trades(
        self,
        *,
        ticker: str | None = None,
        min_ts: int | None = None,
        max_ts: int | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> Page[Trade]:
        return self._page(
            endpoints.GET_TRADES,
            "trades",
            Trade.from_exchange,
            query={"ticker": ticker, "min_ts": min_ts, "max_ts": max_ts, "limit": limit, "cursor": cursor},
        )

    def get_market_orderbook(self, ticker: str, *, depth: int | None = None) -> Orderbook:
        if depth is not None and (not _is_count(depth) or depth <= 0):
            raise ValidationError(f"depth must be a positive integer, got {depth!r}")
        response = self._execute(endpoints.GET_MARKET_ORDERBOOK, path_params={"ticker": ticker}, query={"depth": depth})
        return self._decode(endpoints.GET_MARKET_ORDERBOOK, lambda: Orderbook.from_exchange(unwrap(response, "orderbook")))

    def get_market_history(
        self,
        ticker: str,
        *,
        min_ts: int | None = None,
        max_ts: int | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> Page[Snapshot]:
        return self._page(
            endpoints.GET_MARKET_HISTORY,
            "history",
            Snapshot.from_exchange,
            path_params={"ticker": ticker},
            query={"min_ts": min_ts, "max_ts": max_ts, "limit": limit, "cursor": cursor},
        )

    def get_exchange_status(self) -> ExchangeStatus:
        response = self._execute(endpoints.GET_EXCHANGE_STATUS)
        return self._decode(endpoints.GET_EXCHANGE_STATUS, lambda: ExchangeStatus.from_exchange(response))

    def get_exchange_schedule(self) -> ExchangeSchedule:
        response = self._execute(endpoints.GET_EXCHANGE_SCHEDULE)
        return self._decode(endpoints.GET_EXCHANGE_SCHEDULE, lambda: ExchangeSchedule.from_exchange(response))
