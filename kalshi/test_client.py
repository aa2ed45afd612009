from __future__ import annotations

import dataclasses
import http.client
import json
import threading
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import Any
from urllib.parse import parse_qs, urlsplit

import pytest

from kalshi import client as client_module
from kalshi.auth import Credentials, Session, SessionStore
from kalshi.client import HttpResponse, KalshiClient, KalshiTransportFactory, SimpleHttpTransport
from kalshi.config import KalshiConfig
from kalshi.errors import ApiError, AuthError, DecodeError, ErrorCode, NotFoundError, TransportError, ValidationError
from kalshi.models import OrderRequest, OrderStatus

BASE_URL = "https://demo-api.kalshi.co/trade-api/v2"
TICKER = "GOVSHUTLENGTH-23DEC31-T14"

MARKET_FIXTURE: dict[str, Any] = {
    "ticker": TICKER,
    "event_ticker": "GOVSHUTLENGTH-23DEC31",
    "market_type": "binary",
    "title": "Will the government shutdown last longer than 14 days?",
    "subtitle": "More than 14 days",
    "yes_sub_title": "More than 14 days",
    "no_sub_title": "14 days or fewer",
    "status": "active",
    "open_time": "2023-11-17T15:00:00Z",
    "close_time": "2023-12-31T15:00:00Z",
    "expected_expiration_time": "2024-01-01T15:00:00Z",
    "expiration_time": "2024-01-07T15:00:00Z",
    "latest_expiration_time": "2024-01-07T15:00:00Z",
    "settlement_timer_seconds": 3600,
    "response_price_units": "usd_cent",
    "notional_value": 100,
    "tick_size": 1,
    "yes_bid": 11,
    "yes_ask": 14,
    "no_bid": 86,
    "no_ask": 89,
    "last_price": 12,
    "previous_yes_bid": 10,
    "previous_yes_ask": 15,
    "previous_price": 13,
    "volume": 4210,
    "volume_24h": 310,
    "liquidity": 125000,
    "open_interest": 2980,
    "result": "",
    "can_close_early": True,
    "expiration_value": "",
    "category": "Politics",
    "risk_limit_cents": 2500000,
    "strike_type": "greater",
    "floor_strike": 14,
    "cap_strike": None,
    "rules_primary": "If the shutdown lasts more than 14 days, resolves Yes.",
    "rules_secondary": "",
    "settlement_value": None,
    "functional_strike": None,
}


def _order_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "order_id": "o-123",
        "user_id": "u-1",
        "ticker": TICKER,
        "status": "executed",
        "yes_price": 14,
        "no_price": 86,
        "action": "buy",
        "side": "yes",
        "type": "market",
        "client_order_id": "cid-1",
        "order_group_id": "",
        "remaining_count": 0,
        "place_count": 1,
        "created_time": "2023-12-01T10:00:00Z",
    }
    payload.update(overrides)
    return payload


class DummyTransport(SimpleHttpTransport):
    def __init__(self, responses: list[dict[str, Any]] | None = None):
        self.responses = responses or []
        self.requests: list[dict[str, Any]] = []

    def request(self, *, method: str, url: str, data: str | None, headers: Mapping[str, str], timeout: float) -> HttpResponse:
        self.requests.append({"method": method, "url": url, "data": data, "headers": dict(headers), "timeout": timeout})
        if not self.responses:
            return HttpResponse(200, b"{}")
        response = self.responses.pop(0)
        if "raise" in response:
            raise response["raise"]
        status = int(response.get("status_code", 200))
        if "body" in response:
            return HttpResponse(status_code=status, body=response["body"])
        payload = response.get("payload", {})
        return HttpResponse(status_code=status, body=json.dumps(payload).encode("utf-8"))

    def sent_json(self, index: int = -1) -> dict[str, Any]:
        return json.loads(self.requests[index]["data"])

    def sent_query(self, index: int = -1) -> dict[str, list[str]]:
        return parse_qs(urlsplit(self.requests[index]["url"]).query)


def _build_client(
    transport: SimpleHttpTransport | None = None,
    *,
    logged_in: bool = False,
    config: KalshiConfig | None = None,
) -> KalshiClient:
    sessions = SessionStore()
    if logged_in:
        sessions.replace(Session(token="tok-1", member_id="m-1", issued_at=datetime.now(UTC)))
    return KalshiClient(
        config=config or KalshiConfig(base_url=BASE_URL, timeout_seconds=5.0),
        transport=transport or DummyTransport(),
        sessions=sessions,
    )


def test_login_stores_token_and_attaches_bearer_header() -> None:
    transport = DummyTransport(
        responses=[
            {"payload": {"member_id": "m-42", "token": "secret-token"}},
            {"payload": {"balance": 150000}},
        ]
    )
    client = _build_client(transport)

    session = client.login(Credentials(email="trader@example.com", password="hunter2"))
    balance = client.get_balance()

    assert session.member_id == "m-42"
    assert client.is_authenticated
    assert transport.requests[0]["method"] == "POST"
    assert transport.requests[0]["url"] == f"{BASE_URL}/login"
    assert transport.sent_json(0) == {"email": "trader@example.com", "password": "hunter2"}
    assert "Authorization" not in transport.requests[0]["headers"]
    assert transport.requests[1]["url"] == f"{BASE_URL}/portfolio/balance"
    assert transport.requests[1]["headers"]["Authorization"] == "Bearer secret-token"
    assert transport.requests[1]["timeout"] == 5.0
    assert balance == 150000


def test_login_rejected_credentials_raise_auth_error() -> None:
    transport = DummyTransport(
        responses=[{"status_code": 401, "payload": {"error": {"code": "invalid_credentials", "message": "bad login"}}}]
    )
    client = _build_client(transport)

    with pytest.raises(AuthError):
        client.login(Credentials(email="trader@example.com", password="wrong"))
    assert client.session is None


def test_login_transport_failure_raises_auth_error() -> None:
    client = _build_client(DummyTransport(responses=[{"raise": ConnectionRefusedError("connection refused")}]))

    with pytest.raises(AuthError) as excinfo:
        client.login(Credentials(email="trader@example.com", password="pw"))

    assert excinfo.value.code == ErrorCode.NETWORK_ERROR
    assert isinstance(excinfo.value.cause, TransportError)


def test_login_uses_configured_credentials() -> None:
    transport = DummyTransport(responses=[{"payload": {"member_id": "m-1", "token": "t"}}])
    client = _build_client(transport, config=KalshiConfig(base_url=BASE_URL, user_name="env-user", password="env-pw"))

    client.login()

    assert transport.sent_json(0) == {"email": "env-user", "password": "env-pw"}


@pytest.mark.parametrize(
    "call",
    [
        lambda client: client.get_balance(),
        lambda client: client.get_orders(ticker=TICKER),
        lambda client: client.get_order("o-1"),
        lambda client: client.get_fills(),
        lambda client: client.get_positions(),
        lambda client: client.cancel_order("o-1"),
        lambda client: client.decrease_order("o-1", reduce_by=1),
        lambda client: client.get_market_orderbook(TICKER),
        lambda client: client.get_market_history(TICKER),
        lambda client: client.create_order(OrderRequest(ticker=TICKER, side="yes", action="buy", count=1)),
    ],
)
def test_authenticated_calls_without_session_fail_before_io(call: Any) -> None:
    transport = DummyTransport()
    client = _build_client(transport)

    with pytest.raises(AuthError):
        call(client)
    assert transport.requests == []


def test_public_calls_do_not_require_session() -> None:
    transport = DummyTransport(responses=[{"payload": {"exchange_active": True, "trading_active": False}}])
    client = _build_client(transport)

    status = client.get_exchange_status()

    assert status.exchange_active is True
    assert status.trading_active is False
    assert "Authorization" not in transport.requests[0]["headers"]


def test_logout_invalidates_session_and_is_idempotent() -> None:
    transport = DummyTransport(responses=[{"payload": {}}])
    client = _build_client(transport, logged_in=True)

    client.logout()
    client.logout()

    assert len(transport.requests) == 1
    assert transport.requests[0]["url"] == f"{BASE_URL}/logout"
    assert transport.requests[0]["headers"]["Authorization"] == "Bearer tok-1"
    assert client.session is None

    with pytest.raises(AuthError):
        client.get_balance()
    assert len(transport.requests) == 1


def test_logout_tolerates_already_revoked_token() -> None:
    client = _build_client(DummyTransport(responses=[{"status_code": 401, "payload": {}}]), logged_in=True)

    client.logout()

    assert client.session is None


def test_remote_401_invalidates_session() -> None:
    transport = DummyTransport(responses=[{"status_code": 401, "payload": {"error": {"code": "unauthorized"}}}])
    client = _build_client(transport, logged_in=True)

    with pytest.raises(AuthError):
        client.get_balance()
    with pytest.raises(AuthError):
        client.get_balance()

    assert client.session is None
    assert len(transport.requests) == 1


def test_expired_session_fails_without_io() -> None:
    transport = DummyTransport(responses=[{"payload": {"member_id": "m-1", "token": "t"}}])
    client = _build_client(transport, config=KalshiConfig(base_url=BASE_URL, session_ttl_seconds=0))
    client.login(Credentials(email="a@b.c", password="pw"))

    with pytest.raises(AuthError):
        client.get_balance()
    assert len(transport.requests) == 1


def test_create_market_order_scenario() -> None:
    transport = DummyTransport(
        responses=[
            {"payload": {"member_id": "m-1", "token": "tok"}},
            {"status_code": 201, "payload": {"order": _order_payload(client_order_id=None)}},
        ]
    )
    client = _build_client(transport)
    client.login(Credentials(email="trader@example.com", password="pw"))

    ack = client.create_order({"action": "buy", "ticker": TICKER, "side": "yes", "type": "market", "count": 1})

    body = transport.sent_json()
    assert transport.requests[-1]["method"] == "POST"
    assert transport.requests[-1]["url"] == f"{BASE_URL}/portfolio/orders"
    assert body["action"] == "buy"
    assert body["ticker"] == TICKER
    assert body["side"] == "yes"
    assert body["type"] == "market"
    assert body["count"] == 1
    assert "buy_max_cost" in body and body["buy_max_cost"] is None
    assert "yes_price" not in body and "no_price" not in body
    assert body["client_order_id"]
    assert ack.order_id == "o-123"
    assert ack.client_order_id == body["client_order_id"]
    assert ack.order.status == OrderStatus.EXECUTED


def test_create_limit_order_serializes_only_limit_price() -> None:
    transport = DummyTransport(responses=[{"payload": {"order": _order_payload(type="limit", status="resting")}}])
    client = _build_client(transport, logged_in=True)

    ack = client.create_order(
        OrderRequest(ticker=TICKER, side="no", action="buy", count=3, order_type="limit", no_price=40, client_order_id="cid-1")
    )

    body = transport.sent_json()
    assert body["no_price"] == 40
    assert "yes_price" not in body
    assert "buy_max_cost" not in body
    assert body["client_order_id"] == "cid-1"
    assert ack.order.status == OrderStatus.RESTING


@pytest.mark.parametrize(
    "order",
    [
        {"action": "buy", "ticker": TICKER, "side": "yes", "type": "market", "count": 0},
        {"action": "buy", "ticker": "", "side": "yes", "type": "market", "count": 1},
        {"action": "hold", "ticker": TICKER, "side": "yes", "type": "market", "count": 1},
        {"action": "buy", "ticker": TICKER, "side": "yes", "type": "limit", "count": 1},
        {"action": "buy", "ticker": TICKER, "side": "yes", "type": "market", "count": 1.9},
        {"action": "buy", "ticker": TICKER, "side": "yes", "type": "limit", "count": 1, "yes_price": 50.7},
        {"action": "buy", "ticker": TICKER, "side": "yes", "type": "market", "count": 1, "buy_max_cost": "10.5"},
    ],
)
def test_create_order_validation_fails_before_io(order: dict[str, Any]) -> None:
    transport = DummyTransport()
    client = _build_client(transport, logged_in=True)

    with pytest.raises(ValidationError):
        client.create_order(order)
    assert transport.requests == []


def test_generated_client_order_ids_are_unique() -> None:
    transport = DummyTransport(responses=[{"payload": {"order": _order_payload()}}, {"payload": {"order": _order_payload()}}])
    client = _build_client(transport, logged_in=True)
    order = {"action": "buy", "ticker": TICKER, "side": "yes", "type": "market", "count": 1}

    client.create_order(order)
    client.create_order(order)

    assert transport.sent_json(0)["client_order_id"] != transport.sent_json(1)["client_order_id"]


class FakeExchangeTransport(SimpleHttpTransport):
    """Accepts each client_order_id once, like the exchange does."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.accepted: dict[str, dict[str, Any]] = {}
        self.submitted_ids: list[str] = []

    def request(self, *, method: str, url: str, data: str | None, headers: Mapping[str, str], timeout: float) -> HttpResponse:
        body = json.loads(data or "{}")
        client_order_id = body["client_order_id"]
        with self._lock:
            self.submitted_ids.append(client_order_id)
            if client_order_id in self.accepted:
                error = {"error": {"code": "order_already_exists", "message": "duplicate client_order_id"}}
                return HttpResponse(409, json.dumps(error).encode("utf-8"))
            order = _order_payload(order_id=f"o-{len(self.accepted) + 1}", client_order_id=client_order_id)
            self.accepted[client_order_id] = order
        return HttpResponse(201, json.dumps({"order": order}).encode("utf-8"))


def test_concurrent_submissions_with_same_client_order_id_are_not_duplicated() -> None:
    transport = FakeExchangeTransport()
    client = _build_client(transport, logged_in=True)
    order = OrderRequest(ticker=TICKER, side="yes", action="buy", count=1, client_order_id="retry-token-1")
    barrier = threading.Barrier(2)

    def _submit() -> Any:
        barrier.wait()
        try:
            return client.create_order(order)
        except ApiError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(lambda _: _submit(), range(2)))

    acks = [result for result in results if not isinstance(result, Exception)]
    rejections = [result for result in results if isinstance(result, ApiError)]
    assert transport.submitted_ids == ["retry-token-1", "retry-token-1"]
    assert len(transport.accepted) == 1
    assert len(acks) == 1
    assert acks[0].client_order_id == "retry-token-1"
    assert len(rejections) == 1
    assert rejections[0].status_code == 409
    assert rejections[0].code == ErrorCode.CONFLICT
    assert rejections[0].error_code == "order_already_exists"


def test_cancel_and_decrease_unknown_order_raise_not_found() -> None:
    not_found = {"status_code": 404, "payload": {"error": {"code": "not_found", "message": "order not found"}}}
    transport = DummyTransport(responses=[dict(not_found), dict(not_found)])
    client = _build_client(transport, logged_in=True)

    with pytest.raises(NotFoundError):
        client.cancel_order("missing")
    with pytest.raises(NotFoundError) as excinfo:
        client.decrease_order("missing", reduce_to=0)

    assert transport.requests[0]["method"] == "DELETE"
    assert transport.requests[0]["url"] == f"{BASE_URL}/portfolio/orders/missing"
    assert transport.requests[1]["url"] == f"{BASE_URL}/portfolio/orders/missing/decrease"
    assert transport.sent_json(1) == {"reduce_to": 0}
    assert excinfo.value.error_message == "order not found"


def test_cancel_and_decrease_decode_orders() -> None:
    transport = DummyTransport(
        responses=[
            {"payload": {"order": _order_payload(status="canceled"), "reduced_by": 4}},
            {"payload": {"order": _order_payload(status="resting", remaining_count=2)}},
        ]
    )
    client = _build_client(transport, logged_in=True)

    canceled = client.cancel_order("o-123")
    decreased = client.decrease_order("o-123", reduce_by=2)

    assert canceled.order.status == OrderStatus.CANCELED
    assert canceled.reduced_by == 4
    assert decreased.remaining_count == 2
    assert transport.sent_json(1) == {"reduce_by": 2}


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"reduce_by": 1, "reduce_to": 1},
        {"reduce_by": 0},
        {"reduce_to": -1},
        {"reduce_by": "2"},
        {"reduce_by": True},
        {"reduce_by": 1.5},
        {"reduce_to": "0"},
        {"reduce_to": 1.0},
    ],
)
def test_decrease_order_amount_validation(kwargs: dict[str, Any]) -> None:
    transport = DummyTransport()
    client = _build_client(transport, logged_in=True)

    with pytest.raises(ValidationError):
        client.decrease_order("o-1", **kwargs)
    assert transport.requests == []


def test_order_ids_are_quoted_into_paths() -> None:
    transport = DummyTransport(responses=[{"payload": {"order": _order_payload()}}])
    client = _build_client(transport, logged_in=True)

    client.get_order("a/b")

    assert transport.requests[0]["url"] == f"{BASE_URL}/portfolio/orders/a%2Fb"


def test_empty_order_id_is_rejected_before_io() -> None:
    transport = DummyTransport()
    client = _build_client(transport, logged_in=True)

    with pytest.raises(ValidationError):
        client.cancel_order("")
    assert transport.requests == []


def test_get_orders_encodes_only_set_filters_and_pages() -> None:
    transport = DummyTransport(
        responses=[
            {"payload": {"orders": [_order_payload(), _order_payload(order_id="o-124", status="resting")], "cursor": "next-1"}},
            {"payload": {"orders": [], "cursor": ""}},
        ]
    )
    client = _build_client(transport, logged_in=True)

    first = client.get_orders(ticker=TICKER, status="resting", limit=2)
    second = client.get_orders(cursor=first.cursor)

    assert transport.sent_query(0) == {"ticker": [TICKER], "status": ["resting"], "limit": ["2"]}
    assert [order.order_id for order in first] == ["o-123", "o-124"]
    assert first.cursor == "next-1"
    assert first.has_more
    assert transport.sent_query(1) == {"cursor": ["next-1"]}
    assert len(second) == 0
    assert second.cursor is None


def test_get_fills_and_positions() -> None:
    fill = {
        "trade_id": "t-1",
        "order_id": "o-123",
        "ticker": TICKER,
        "side": "yes",
        "action": "buy",
        "count": 1,
        "yes_price": 14,
        "no_price": 86,
        "is_taker": True,
        "created_time": "2023-12-01T10:00:01Z",
    }
    transport = DummyTransport(
        responses=[
            {"payload": {"fills": [fill], "cursor": None}},
            {
                "payload": {
                    "market_positions": [
                        {"ticker": TICKER, "position": 5, "market_exposure": 70, "realized_pnl": 0, "total_traded": 70, "resting_orders_count": 1, "fees_paid": 2}
                    ],
                    "event_positions": [
                        {"event_ticker": "GOVSHUTLENGTH-23DEC31", "event_exposure": 70, "realized_pnl": 0, "total_cost": 70, "resting_order_count": 1, "fees_paid": 2}
                    ],
                    "cursor": "pos-2",
                }
            },
        ]
    )
    client = _build_client(transport, logged_in=True)

    fills = client.get_fills(order_id="o-123", min_ts=1700000000)
    positions = client.get_positions(settlement_status="unsettled")

    assert transport.sent_query(0) == {"order_id": ["o-123"], "min_ts": ["1700000000"]}
    assert fills.items[0].is_taker is True
    assert fills.items[0].yes_price == 14
    assert transport.requests[1]["url"] == f"{BASE_URL}/portfolio/positions?settlement_status=unsettled"
    assert positions.market_positions[0].position == 5
    assert positions.event_positions[0].event_ticker == "GOVSHUTLENGTH-23DEC31"
    assert positions.cursor == "pos-2"


def test_get_market_decodes_fixture_exactly() -> None:
    transport = DummyTransport(responses=[{"payload": {"market": MARKET_FIXTURE}}])
    client = _build_client(transport)

    market = client.get_market(TICKER)

    assert transport.requests[0]["url"] == f"{BASE_URL}/markets/{TICKER}"
    assert dataclasses.asdict(market) == MARKET_FIXTURE
    assert market.floor_strike == 14.0
    assert market.cap_strike is None


@pytest.mark.parametrize("depth", [0, -1, "2", 2.0, True])
def test_orderbook_depth_must_be_positive_integer(depth: Any) -> None:
    transport = DummyTransport()
    client = _build_client(transport, logged_in=True)

    with pytest.raises(ValidationError):
        client.get_market_orderbook(TICKER, depth=depth)
    assert transport.requests == []


def test_get_markets_joins_tickers_and_events_decode_nested_markets() -> None:
    transport = DummyTransport(
        responses=[
            {"payload": {"markets": [MARKET_FIXTURE], "cursor": ""}},
            {
                "payload": {
                    "event": {
                        "event_ticker": "GOVSHUTLENGTH-23DEC31",
                        "series_ticker": "GOVSHUTLENGTH",
                        "title": "Government shutdown length",
                        "sub_title": "In 2023",
                        "category": "Politics",
                        "mutually_exclusive": False,
                    },
                    "markets": [MARKET_FIXTURE],
                }
            },
        ]
    )
    client = _build_client(transport)

    markets = client.get_markets(tickers=[TICKER, "OTHER-1"], status="open")
    event = client.get_event("GOVSHUTLENGTH-23DEC31", with_nested_markets=True)

    assert transport.sent_query(0) == {"tickers": [f"{TICKER},OTHER-1"], "status": ["open"]}
    assert markets.items[0].ticker == TICKER
    assert markets.cursor is None
    assert transport.sent_query(1) == {"with_nested_markets": ["true"]}
    assert event.series_ticker == "GOVSHUTLENGTH"
    assert [market.ticker for market in event.markets] == [TICKER]


def test_series_trades_orderbook_and_history() -> None:
    transport = DummyTransport(
        responses=[
            {
                "payload": {
                    "series": {
                        "ticker": "GOVSHUTLENGTH",
                        "frequency": "custom",
                        "title": "Government shutdown length",
                        "category": "Politics",
                        "tags": ["Politics"],
                        "settlement_sources": [{"name": "OPM", "url": "https://www.opm.gov"}],
                        "contract_url": "https://kalshi.com/contracts/govshut",
                    }
                }
            },
            {"payload": {"trades": [{"trade_id": "tr-1", "ticker": TICKER, "taker_side": "yes", "count": 3, "yes_price": 12, "no_price": 88, "created_time": "2023-12-01T10:00:00Z"}], "cursor": "c"}},
            {"payload": {"orderbook": {"yes": [[11, 100], [10, 40]], "no": None}}},
            {"payload": {"ticker": TICKER, "history": [{"ts": 1701424800, "yes_price": 12, "yes_bid": 11, "yes_ask": 14, "no_bid": 86, "no_ask": 89, "volume": 4210, "open_interest": 2980}], "cursor": ""}},
        ]
    )
    client = _build_client(transport, logged_in=True)

    series = client.get_series("GOVSHUTLENGTH")
    trades = client.get_trades(ticker=TICKER, limit=1)
    book = client.get_market_orderbook(TICKER, depth=2)
    history = client.get_market_history(TICKER, max_ts=1701500000)

    assert series.settlement_sources[0].name == "OPM"
    assert series.tags == ("Politics",)
    assert trades.items[0].count == 3
    assert trades.cursor == "c"
    assert "Authorization" not in transport.requests[1]["headers"]
    assert transport.requests[2]["url"] == f"{BASE_URL}/markets/{TICKER}/orderbook?depth=2"
    assert transport.requests[2]["headers"]["Authorization"] == "Bearer tok-1"
    assert book.best_yes_bid() == 11
    assert book.no == ()
    assert book.best_no_bid() is None
    assert history.items[0].ts == 1701424800
    assert transport.sent_query(3) == {"max_ts": ["1701500000"]}


def test_exchange_schedule_decodes_all_days() -> None:
    day = {"open_time": "08:00", "close_time": "03:00"}
    payload = {
        "schedule": {
            "standard_hours": {name: day for name in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")},
            "maintenance_windows": ["Thursday 03:00-05:00 ET"],
        }
    }
    client = _build_client(DummyTransport(responses=[{"payload": payload}, {"payload": payload}]))

    schedule = client.get_exchange_schedule()

    assert schedule.day("friday").open_time == "08:00"
    assert [name for name, _ in schedule.standard_hours][:2] == ["monday", "tuesday"]
    assert schedule.maintenance_windows == ("Thursday 03:00-05:00 ET",)
    assert hash(schedule) == hash(client.get_exchange_schedule())
    with pytest.raises(KeyError):
        schedule.day("holiday")


def test_exchange_schedule_rejects_structured_maintenance_windows() -> None:
    day = {"open_time": "08:00", "close_time": "03:00"}
    payload = {
        "schedule": {
            "standard_hours": {name: day for name in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")},
            "maintenance_windows": [{"start": "03:00"}],
        }
    }
    client = _build_client(DummyTransport(responses=[{"payload": payload}]))

    with pytest.raises(DecodeError):
        client.get_exchange_schedule()


def test_transport_failures_are_mapped() -> None:
    transport = DummyTransport(
        responses=[
            {"raise": ConnectionResetError("connection reset by peer")},
            {"raise": TimeoutError("timed out")},
        ]
    )
    client = _build_client(transport, logged_in=True)

    with pytest.raises(TransportError) as network:
        client.get_balance()
    with pytest.raises(TransportError) as timeout:
        client.get_balance()

    assert network.value.code == ErrorCode.NETWORK_ERROR
    assert timeout.value.code == ErrorCode.TIMEOUT
    assert len(transport.requests) == 2


@pytest.mark.parametrize(
    "error",
    [
        http.client.IncompleteRead(b""),
        http.client.RemoteDisconnected("Remote end closed connection without response"),
        ValueError("unknown url type: 'demo-api.kalshi.co/trade-api/v2/exchange/status'"),
    ],
)
def test_failures_without_a_response_are_transport_errors(error: Exception) -> None:
    client = _build_client(DummyTransport(responses=[{"raise": error}]))

    with pytest.raises(TransportError) as raised:
        client.get_exchange_status()

    assert raised.value.code == ErrorCode.NETWORK_ERROR
    assert raised.value.cause is error


class _TruncatedResponse:
    status = 200

    def __enter__(self) -> "_TruncatedResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def read(self) -> bytes:
        raise http.client.IncompleteRead(b"{\"bal", 12)


def test_simple_transport_reports_truncated_bodies_as_os_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(client_module, "urlopen", lambda request, timeout: _TruncatedResponse())
    client = _build_client(SimpleHttpTransport(), logged_in=True)

    with pytest.raises(TransportError) as raised:
        client.get_balance()

    assert isinstance(raised.value.cause, OSError)
    assert isinstance(raised.value.cause.__cause__, http.client.IncompleteRead)


def test_factory_transport_sends_configured_user_agent(monkeypatch: pytest.MonkeyPatch) -> None:
    sent: list[Any] = []

    class _Response(_TruncatedResponse):
        def read(self) -> bytes:
            return b'{"exchange_active": true, "trading_active": true}'

    def fake_urlopen(request: Any, timeout: float) -> _Response:
        sent.append((request, timeout))
        return _Response()

    monkeypatch.setattr(client_module, "urlopen", fake_urlopen)
    config = KalshiConfig(base_url=BASE_URL, timeout_seconds=3.0, user_agent="desk-bot/1.2")
    transport = KalshiTransportFactory(config).create_http_transport()
    client = KalshiClient(config=config, transport=transport)

    status = client.get_exchange_status()

    request, timeout = sent[0]
    assert status.trading_active is True
    assert request.get_header("User-agent") == "desk-bot/1.2"
    assert request.get_header("Accept") == "application/json"
    assert timeout == 3.0


def test_remote_errors_carry_exchange_payload() -> None:
    transport = DummyTransport(
        responses=[
            {"status_code": 503, "payload": {"error": {"code": "exchange_closed", "message": "exchange is closed", "details": "maintenance"}}},
            {"status_code": 429, "body": b"slow down"},
        ]
    )
    client = _build_client(transport)

    with pytest.raises(ApiError) as server:
        client.get_exchange_status()
    with pytest.raises(ApiError) as throttled:
        client.get_exchange_status()

    assert server.value.status_code == 503
    assert server.value.code == ErrorCode.REMOTE_ERROR
    assert server.value.error_code == "exchange_closed"
    assert server.value.details == "maintenance"
    assert throttled.value.code == ErrorCode.RATE_LIMITED
    assert throttled.value.error_code is None


@pytest.mark.parametrize(
    "response",
    [
        {"body": b"<html>gateway</html>"},
        {"payload": ["not", "an", "object"]},
        {"payload": {"balance": None}},
    ],
)
def test_malformed_responses_raise_decode_error(response: dict[str, Any]) -> None:
    client = _build_client(DummyTransport(responses=[response]), logged_in=True)

    with pytest.raises(DecodeError):
        client.get_balance()


def test_schema_mismatch_in_records_raises_decode_error() -> None:
    transport = DummyTransport(responses=[{"payload": {"order": {"ticker": TICKER}}}, {"payload": {"markets": [{"title": "no ticker"}]}}])
    client = _build_client(transport, logged_in=True)

    with pytest.raises(DecodeError):
        client.get_order("o-1")
    with pytest.raises(DecodeError):
        client.get_markets()

