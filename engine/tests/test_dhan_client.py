"""
Tests for the Dhan client and live adapter with mocked HTTP responses.
"""

import json
from pathlib import Path

import httpx
import pytest
import respx
from httpx import Response

from tradegate_engine.broker.dhan.adapter import (
    CONNECTIVITY_FAILURE_REASON,
    MISSING_CREDENTIALS_REASON,
    DhanBroker,
)
from tradegate_engine.broker.dhan.client import AsyncDhanClient, DhanAPIError, DhanAuthError
from tradegate_engine.broker.dhan.rate_limit import RateLimiter, TokenBucket
from tradegate_engine.broker.dhan.redaction import redact_body, redact_headers
from tradegate_engine.broker.dhan.types import DhanOrderRequest
from tradegate_engine.broker.instruments import (
    UnknownInstrumentError,
    resolve_exchange_segment,
    resolve_security_id,
)
from tradegate_engine.config import Settings, TradingMode
from tradegate_engine.domain import OrderRecord, OrderSide, OrderStatus
from tradegate_engine.interfaces.broker_adapter import BrokerUnavailableError
from tradegate_engine.logging import get_logger

BASE_URL = "https://api.dhan.test/v2"

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def live_settings(tmp_path: Path) -> Settings:
    """LIVE settings with test credentials and no rate-limit delays."""
    return Settings(
        _env_file=None,
        data_dir=tmp_path,
        mode=TradingMode.LIVE,
        dhan_client_id="1000000001",
        dhan_access_token="test-access-token",
        dhan_base_url=BASE_URL,
        broker_max_retries=1,
        broker_rate_limit_rps=100.0,
        broker_rate_limit_burst=100,
    )


@pytest.fixture
def client(live_settings: Settings) -> AsyncDhanClient:
    client = AsyncDhanClient(live_settings, get_logger("test"))
    client._backoff_base_s = 0.0
    return client


@pytest.fixture
def broker(live_settings: Settings, client: AsyncDhanClient) -> DhanBroker:
    return DhanBroker(live_settings, client=client)


def make_order(
    symbol: str = "RELIANCE", price: float = 2500.0, side: OrderSide = OrderSide.BUY
) -> OrderRecord:
    return OrderRecord(
        account_id="acct-1",
        symbol=symbol,
        side=side,
        quantity=2,
        price=price,
    )


# =============================================================================
# Client Tests
# =============================================================================


class TestClient:
    @pytest.mark.asyncio
    @respx.mock
    async def test_fund_limits_sends_auth_headers(self, client: AsyncDhanClient) -> None:
        route = respx.get(f"{BASE_URL}/fundlimit").mock(
            return_value=Response(
                200, json={"availabelBalance": 98440.0, "utilizedAmount": 1560.0}
            )
        )

        funds = await client.get_fund_limits()

        assert funds.available_balance == 98440.0
        assert funds.utilized_amount == 1560.0
        request = route.calls.last.request
        assert request.headers["access-token"] == "test-access-token"
        assert request.headers["client-id"] == "1000000001"

    @pytest.mark.asyncio
    @respx.mock
    async def test_ltp_request_body_and_nested_response(self, client: AsyncDhanClient) -> None:
        route = respx.post(f"{BASE_URL}/marketfeed/ltp").mock(
            return_value=Response(
                200,
                json={"data": {"NSE_EQ": {"2885": {"last_price": 2501.5}}}, "status": "success"},
            )
        )

        price = await client.get_ltp("NSE_EQ", "2885")

        assert price == 2501.5
        body = json.loads(route.calls.last.request.content)
        assert body == {"instruments": [{"exchangeSegment": "NSE_EQ", "securityId": "2885"}]}

    @pytest.mark.asyncio
    @respx.mock
    async def test_ltp_list_response(self, client: AsyncDhanClient) -> None:
        respx.post(f"{BASE_URL}/marketfeed/ltp").mock(
            return_value=Response(200, json={"data": [{"lastPrice": 3500}]})
        )

        assert await client.get_ltp("NSE_EQ", "11536") == 3500.0

    @pytest.mark.asyncio
    @respx.mock
    async def test_ltp_malformed_response_raises(self, client: AsyncDhanClient) -> None:
        respx.post(f"{BASE_URL}/marketfeed/ltp").mock(
            return_value=Response(200, json={"data": []})
        )

        with pytest.raises(DhanAPIError):
            await client.get_ltp("NSE_EQ", "2885")

    @pytest.mark.asyncio
    @respx.mock
    async def test_place_order_body(self, client: AsyncDhanClient) -> None:
        route = respx.post(f"{BASE_URL}/orders").mock(
            return_value=Response(200, json={"status": "success", "orderId": "112111182198"})
        )
        request = DhanOrderRequest(
            client_id="1000000001",
            correlation_id="ORD-1-ABC",
            transaction_type="BUY",
            exchange_segment="NSE_EQ",
            product_type="INTRADAY",
            order_type="LIMIT",
            validity="DAY",
            security_id="2885",
            quantity=2,
            price=2500.0,
        )

        response = await client.place_order(request)

        assert response.is_success
        assert response.order_id == "112111182198"
        body = json.loads(route.calls.last.request.content)
        assert body == {
            "clientId": "1000000001",
            "correlationId": "ORD-1-ABC",
            "transactionType": "BUY",
            "exchangeSegment": "NSE_EQ",
            "productType": "INTRADAY",
            "orderType": "LIMIT",
            "validity": "DAY",
            "securityId": "2885",
            "quantity": 2,
            "price": 2500.0,
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_reads_are_retried(self, client: AsyncDhanClient) -> None:
        """A 503 on a read is retried."""
        route = respx.get(f"{BASE_URL}/fundlimit").mock(
            side_effect=[
                Response(503),
                Response(200, json={"availabelBalance": 1.0, "utilizedAmount": 0.0}),
            ]
        )

        funds = await client.get_fund_limits()

        assert funds.available_balance == 1.0
        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_placement_is_never_retried(self, client: AsyncDhanClient) -> None:
        """A 500 on order placement is not repeated."""
        route = respx.post(f"{BASE_URL}/orders").mock(return_value=Response(500))

        with pytest.raises(DhanAPIError) as exc_info:
            await client.place_order(
                DhanOrderRequest(
                    client_id="1",
                    correlation_id="ORD-2",
                    transaction_type="SELL",
                    exchange_segment="NSE_EQ",
                    product_type="INTRADAY",
                    order_type="MARKET",
                    security_id="2885",
                    quantity=1,
                )
            )

        assert exc_info.value.status_code == 500
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_auth_error(self, client: AsyncDhanClient) -> None:
        respx.get(f"{BASE_URL}/fundlimit").mock(return_value=Response(401))

        with pytest.raises(DhanAuthError):
            await client.get_fund_limits()

    @pytest.mark.asyncio
    @respx.mock
    async def test_client_error_with_list_body(self, client: AsyncDhanClient) -> None:
        """A 4xx whose body is not an object still raises DhanAPIError."""
        respx.post(f"{BASE_URL}/marketfeed/ltp").mock(
            return_value=Response(400, json=[{"errorCode": "DH-905"}])
        )

        with pytest.raises(DhanAPIError) as exc_info:
            await client.get_ltp("NSE_EQ", "2885")

        assert exc_info.value.status_code == 400
        assert exc_info.value.error_code is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_client_error_code_extracted(self, client: AsyncDhanClient) -> None:
        respx.get(f"{BASE_URL}/fundlimit").mock(
            return_value=Response(400, json={"errorCode": "DH-906"})
        )

        with pytest.raises(DhanAPIError) as exc_info:
            await client.get_fund_limits()

        assert exc_info.value.error_code == "DH-906"

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_fund_limits_raise_api_error(self, client: AsyncDhanClient) -> None:
        respx.get(f"{BASE_URL}/fundlimit").mock(
            return_value=Response(200, json={"availabelBalance": "abc"})
        )

        with pytest.raises(DhanAPIError):
            await client.get_fund_limits()

    def test_metrics(self, client: AsyncDhanClient) -> None:
        metrics = client.metrics

        assert metrics["average_latency_ms"] == 0
        assert "rate_limiter" in metrics

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_after_retries(self, client: AsyncDhanClient) -> None:
        route = respx.get(f"{BASE_URL}/fundlimit").mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with pytest.raises(BrokerUnavailableError):
            await client.get_fund_limits()

        assert route.call_count == 2


# =============================================================================
# Adapter Tests
# =============================================================================


class TestDhanBroker:
    @pytest.mark.asyncio
    @respx.mock(assert_all_called=False)
    async def test_connectivity_without_credentials_skips_network(self, tmp_path: Path) -> None:
        settings = Settings(_env_file=None, data_dir=tmp_path, dhan_base_url=BASE_URL)
        route = respx.get(f"{BASE_URL}/fundlimit").mock(return_value=Response(200, json={}))

        status = await DhanBroker(settings).check_connectivity()

        assert not status.connected
        assert status.error == MISSING_CREDENTIALS_REASON
        assert not route.called

    @pytest.mark.asyncio
    @respx.mock
    async def test_connectivity_reports_margins(self, broker: DhanBroker) -> None:
        respx.get(f"{BASE_URL}/fundlimit").mock(
            return_value=Response(200, json={"availabelBalance": 5000.0, "utilizedAmount": 250.0})
        )

        status = await broker.check_connectivity()

        assert status.connected
        assert status.mode == "LIVE"
        assert status.available_margin == 5000.0
        assert status.utilized_margin == 250.0

    @pytest.mark.asyncio
    @respx.mock
    async def test_connectivity_failure(self, broker: DhanBroker) -> None:
        respx.get(f"{BASE_URL}/fundlimit").mock(return_value=Response(401))

        status = await broker.check_connectivity()

        assert not status.connected
        assert status.error

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_fund_limits_report_disconnected(self, broker: DhanBroker) -> None:
        """An unparseable margin payload is a failed check, not an exception."""
        respx.get(f"{BASE_URL}/fundlimit").mock(
            return_value=Response(200, json={"availabelBalance": "abc"})
        )

        status = await broker.check_connectivity()

        assert not status.connected
        assert "fund limit" in status.error

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_acknowledgment_rejected(self, broker: DhanBroker) -> None:
        respx.post(f"{BASE_URL}/orders").mock(
            return_value=Response(200, json={"status": "success", "orderId": ["5003"]})
        )

        result = await broker.place_order(make_order())

        assert result.status == OrderStatus.REJECTED

    def test_metrics_come_from_client(self, broker: DhanBroker) -> None:
        assert "rate_limiter" in broker.metrics

    @pytest.mark.asyncio
    @respx.mock
    async def test_limit_order_executed(self, broker: DhanBroker) -> None:
        route = respx.post(f"{BASE_URL}/orders").mock(
            return_value=Response(
                200, json={"status": "success", "orderId": "5001", "orderStatus": "PENDING"}
            )
        )
        order = make_order()

        result = await broker.place_order(order)

        assert result.status == OrderStatus.EXECUTED
        assert result.filled_qty == 2
        assert result.avg_price == 2500.0
        assert result.broker_order_id == "5001"
        body = json.loads(route.calls.last.request.content)
        assert body["correlationId"] == order.order_id
        assert body["orderType"] == "LIMIT"
        assert body["transactionType"] == "BUY"
        assert body["securityId"] == "2885"
        assert body["exchangeSegment"] == "NSE_EQ"
        assert body["productType"] == "INTRADAY"
        assert body["validity"] == "DAY"

    @pytest.mark.asyncio
    @respx.mock
    async def test_market_order_marked_at_ltp(self, broker: DhanBroker) -> None:
        route = respx.post(f"{BASE_URL}/orders").mock(
            return_value=Response(200, json={"status": "success", "orderId": "5002"})
        )
        respx.post(f"{BASE_URL}/marketfeed/ltp").mock(
            return_value=Response(200, json={"data": {"NSE_EQ": {"11536": {"last_price": 3490.0}}}})
        )

        result = await broker.place_order(make_order(symbol="TCS", price=0.0, side=OrderSide.SELL))

        assert result.status == OrderStatus.EXECUTED
        assert result.avg_price == 3490.0
        body = json.loads(route.calls.last.request.content)
        assert body["orderType"] == "MARKET"
        assert body["price"] == 0.0
        assert body["transactionType"] == "SELL"

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_success_status_rejected(self, broker: DhanBroker) -> None:
        respx.post(f"{BASE_URL}/orders").mock(
            return_value=Response(
                200, json={"status": "failure", "errorMessage": "RMS: margin shortfall"}
            )
        )

        result = await broker.place_order(make_order())

        assert result.status == OrderStatus.REJECTED
        assert result.rejection_reason == "RMS: margin shortfall"

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_rejected(self, broker: DhanBroker) -> None:
        """Timeouts never escape the adapter."""
        respx.post(f"{BASE_URL}/orders").mock(side_effect=httpx.ReadTimeout("timed out"))

        result = await broker.place_order(make_order())

        assert result.status == OrderStatus.REJECTED
        assert result.rejection_reason == CONNECTIVITY_FAILURE_REASON

    @pytest.mark.asyncio
    @respx.mock(assert_all_called=False)
    async def test_unknown_symbol_rejected_without_request(self, broker: DhanBroker) -> None:
        route = respx.post(f"{BASE_URL}/orders").mock(return_value=Response(200, json={}))

        result = await broker.place_order(make_order(symbol="UNLISTED"))

        assert result.status == OrderStatus.REJECTED
        assert "UNLISTED" in result.rejection_reason
        assert not route.called

    @pytest.mark.asyncio
    @respx.mock
    async def test_ltp_failure_defaults_to_zero(self, broker: DhanBroker) -> None:
        respx.post(f"{BASE_URL}/marketfeed/ltp").mock(return_value=Response(200, json={"data": {}}))

        quote = await broker.get_last_traded_price("NSE", "RELIANCE")

        assert quote.price == 0.0
        assert quote.security_id == "2885"

    @pytest.mark.asyncio
    @respx.mock
    async def test_ltp_client_error_with_list_body_defaults_to_zero(
        self, broker: DhanBroker
    ) -> None:
        respx.post(f"{BASE_URL}/marketfeed/ltp").mock(
            return_value=Response(400, json=[{"errorCode": "DH-905"}])
        )

        quote = await broker.get_last_traded_price("NSE", "RELIANCE")

        assert quote.price == 0.0

    @pytest.mark.asyncio
    @respx.mock
    async def test_index_ltp_uses_index_segment(self, broker: DhanBroker) -> None:
        route = respx.post(f"{BASE_URL}/marketfeed/ltp").mock(
            return_value=Response(200, json={"data": {"IDX_I": {"13": {"last_price": 24000.0}}}})
        )

        quote = await broker.get_last_traded_price("NSE", "NIFTY")

        assert quote.price == 24000.0
        body = json.loads(route.calls.last.request.content)
        assert body["instruments"][0]["exchangeSegment"] == "IDX_I"


# =============================================================================
# Instruments, Rate Limiting and Redaction
# =============================================================================


class TestInstruments:
    def test_resolve_security_id(self) -> None:
        assert resolve_security_id("reliance") == "2885"
        assert resolve_security_id("ANYTHING", "999") == "999"

    def test_unknown_symbol(self) -> None:
        with pytest.raises(UnknownInstrumentError):
            resolve_security_id("UNLISTED")

    def test_exchange_segments(self) -> None:
        assert resolve_exchange_segment("NSE") == "NSE_EQ"
        assert resolve_exchange_segment("BSE") == "BSE_EQ"
        assert resolve_exchange_segment("NFO") == "NSE_FNO"
        assert resolve_exchange_segment("NSE", "BANKNIFTY") == "IDX_I"


class TestRateLimiter:
    @pytest.mark.asyncio
    async def test_burst_without_wait(self) -> None:
        bucket = TokenBucket(rate=1.0, burst=3)
        waits = [await bucket.acquire() for _ in range(3)]
        assert waits == [0.0, 0.0, 0.0]

    @pytest.mark.asyncio
    async def test_stats(self) -> None:
        limiter = RateLimiter(requests_per_second=100.0, burst=10)
        await limiter.acquire()
        assert limiter.stats["total_requests"] == 1


class TestRedaction:
    def test_headers(self) -> None:
        redacted = redact_headers({"access-token": "secret", "client-id": "1", "Accept": "json"})
        assert redacted["access-token"] == "[REDACTED]"
        assert redacted["client-id"] == "[REDACTED]"
        assert redacted["Accept"] == "json"

    def test_body(self) -> None:
        redacted = redact_body({"dhanClientId": "1", "orderId": "5", "nested": [{"token": "x"}]})
        assert redacted["dhanClientId"] == "[REDACTED]"
        assert redacted["orderId"] == "5"
        assert redacted["nested"][0]["token"] == "[REDACTED]"
