"""
Live broker adapter backed by the Dhan REST API.

Translates journaled orders into Dhan order bodies and normalizes every
outcome, including transport failures, into an ExecutionResult.
"""

from logging import Logger
from typing import Any

from tradegate_engine.broker.dhan.client import AsyncDhanClient
from tradegate_engine.broker.dhan.redaction import redact_body
from tradegate_engine.broker.dhan.types import (
    DhanOrderRequest,
    DhanOrderType,
    DhanTransactionType,
)
from tradegate_engine.broker.instruments import (
    UnknownInstrumentError,
    resolve_exchange_segment,
    resolve_security_id,
)
from tradegate_engine.config import Settings, TradingMode
from tradegate_engine.domain import (
    ConnectivityStatus,
    ExecutionResult,
    OrderRecord,
    OrderSide,
    OrderStatus,
    PriceQuote,
    utcnow,
)
from tradegate_engine.interfaces.broker_adapter import BrokerAdapter, BrokerUnavailableError
from tradegate_engine.logging import get_logger

logger = get_logger(__name__)

CONNECTIVITY_FAILURE_REASON = "Broker connectivity failure"
MISSING_CREDENTIALS_REASON = "Broker credentials not configured"


class DhanBroker(BrokerAdapter):
    """BrokerAdapter for Dhan."""

    def __init__(
        self,
        settings: Settings,
        client: AsyncDhanClient | None = None,
        log: Logger | None = None,
    ) -> None:
        self._settings = settings
        self._client = client or AsyncDhanClient(settings, log or logger)

    @property
    def mode(self) -> str:
        return TradingMode.LIVE.value

    @property
    def metrics(self) -> dict[str, Any]:
        return self._client.metrics

    async def close(self) -> None:
        await self._client.close()

    async def check_connectivity(self) -> ConnectivityStatus:
        if not self._client.has_credentials:
            return ConnectivityStatus(
                connected=False,
                mode=self.mode,
                error=MISSING_CREDENTIALS_REASON,
            )

        try:
            funds = await self._client.get_fund_limits()
        except BrokerUnavailableError as e:
            logger.warning("Dhan connectivity probe failed: %s", e)
            return ConnectivityStatus(connected=False, mode=self.mode, error=str(e))

        return ConnectivityStatus(
            connected=True,
            mode=self.mode,
            available_margin=funds.available_balance,
            utilized_margin=funds.utilized_amount,
        )

    async def get_last_traded_price(
        self,
        exchange: str,
        symbol: str,
        security_id: str | None = None,
    ) -> PriceQuote:
        quote = PriceQuote(exchange=exchange, symbol=symbol.upper(), security_id=security_id)
        if not self._client.has_credentials:
            return quote

        try:
            resolved_id = resolve_security_id(symbol, security_id)
        except UnknownInstrumentError as e:
            logger.warning("LTP lookup skipped: %s", e)
            return quote

        segment = resolve_exchange_segment(exchange, symbol)
        try:
            price = await self._client.get_ltp(segment, resolved_id)
        except BrokerUnavailableError as e:
            logger.warning("LTP lookup failed for %s: %s", symbol, e)
            return quote.model_copy(update={"security_id": resolved_id})

        return quote.model_copy(update={"security_id": resolved_id, "price": price})

    def _build_request(self, order: OrderRecord) -> DhanOrderRequest:
        security_id = resolve_security_id(order.symbol, order.security_id)
        return DhanOrderRequest(
            client_id=self._client.client_id,
            correlation_id=order.order_id,
            transaction_type=(
                DhanTransactionType.BUY if order.side == OrderSide.BUY else DhanTransactionType.SELL
            ),
            exchange_segment=resolve_exchange_segment(order.exchange.value, order.symbol),
            product_type=self._settings.product_type,
            order_type=DhanOrderType.LIMIT if order.has_limit_price else DhanOrderType.MARKET,
            validity=self._settings.order_validity,
            security_id=security_id,
            quantity=order.quantity,
            price=order.price if order.has_limit_price else 0.0,
        )

    async def place_order(self, order: OrderRecord) -> ExecutionResult:
        if not self._client.has_credentials:
            return ExecutionResult.rejected(MISSING_CREDENTIALS_REASON)

        try:
            request = self._build_request(order)
        except UnknownInstrumentError as e:
            logger.warning("Order %s rejected before placement: %s", order.order_id, e)
            return ExecutionResult.rejected(str(e))

        try:
            response = await self._client.place_order(request)
        except BrokerUnavailableError as e:
            logger.error("Dhan placement failed for %s: %s", order.order_id, e)
            return ExecutionResult.rejected(CONNECTIVITY_FAILURE_REASON)
        except Exception as e:
            logger.exception("Unexpected error placing %s: %s", order.order_id, e)
            return ExecutionResult.rejected(CONNECTIVITY_FAILURE_REASON)

        raw = redact_body(response.model_dump(by_alias=True))

        if not response.is_success:
            reason = response.error_message or response.order_status or "Rejected by broker"
            logger.info("Dhan rejected %s: %s", order.order_id, reason)
            return ExecutionResult.rejected(
                reason,
                broker_order_id=response.order_id,
                raw_response=raw,
            )

        avg_price = order.price if order.has_limit_price else None
        if avg_price is None:
            # Acknowledgment carries no fill price; mark market orders at LTP
            quote = await self.get_last_traded_price(
                order.exchange.value, order.symbol, request.security_id
            )
            avg_price = quote.price

        return ExecutionResult(
            status=OrderStatus.EXECUTED,
            filled_qty=order.quantity,
            avg_price=avg_price,
            broker_order_id=response.order_id,
            executed_at=utcnow(),
            raw_response=raw,
        )
