"""
Simulated broker for paper trading.

Fills orders after a fixed artificial latency with a configurable success
probability. Randomness and sleeping are injectable so tests run without
real timers.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from tradegate_engine.config import TradingMode
from tradegate_engine.domain import (
    ConnectivityStatus,
    ExecutionResult,
    OrderRecord,
    OrderStatus,
    PriceQuote,
    utcnow,
)
from tradegate_engine.interfaces.broker_adapter import BrokerAdapter
from tradegate_engine.logging import get_logger

logger = get_logger(__name__)

SIMULATED_REJECTION_REASON = "Simulated exchange rejection (Price out of range)"


@dataclass
class SimulatedBroker(BrokerAdapter):
    """
    Paper-trading broker.

    Fill model:
    - Wait latency_ms, then fill with probability success_probability
    - Fill quantity is the full order quantity
    - Fill price is the order price; market orders fill at the price the
      risk gate checked, or a synthetic price when none was recorded

    Connectivity is delegated to connectivity_probe when one is given (a
    live adapter with credentials), otherwise reported as not connected.
    """

    latency_ms: int = 300
    success_probability: float = 0.95
    rng: random.Random = field(default_factory=random.Random)
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    connectivity_probe: BrokerAdapter | None = None
    order_history: list[OrderRecord] = field(default_factory=list)

    @property
    def mode(self) -> str:
        return TradingMode.PAPER.value

    async def check_connectivity(self) -> ConnectivityStatus:
        if self.connectivity_probe is not None:
            status = await self.connectivity_probe.check_connectivity()
            return status.model_copy(update={"mode": self.mode})
        return ConnectivityStatus(
            connected=False,
            mode=self.mode,
            error="Broker credentials not configured; orders are simulated",
        )

    @property
    def metrics(self) -> dict[str, Any] | None:
        if self.connectivity_probe is not None:
            return self.connectivity_probe.metrics
        return None

    async def close(self) -> None:
        if self.connectivity_probe is not None:
            await self.connectivity_probe.close()

    def _synthetic_price(self) -> float:
        return round(self.rng.random() * 1000 + 100, 2)

    def _fill_price(self, order: OrderRecord) -> float:
        if order.has_limit_price:
            return order.price
        if order.reference_price and order.reference_price > 0:
            return order.reference_price
        return self._synthetic_price()

    async def get_last_traded_price(
        self,
        exchange: str,
        symbol: str,
        security_id: str | None = None,
    ) -> PriceQuote:
        return PriceQuote(
            exchange=exchange,
            symbol=symbol.upper(),
            security_id=security_id,
            price=self._synthetic_price(),
        )

    async def place_order(self, order: OrderRecord) -> ExecutionResult:
        logger.info(
            "Simulating order %s: %s %d %s",
            order.order_id,
            order.side.value,
            order.quantity,
            order.symbol,
        )
        self.order_history.append(order)

        await self.sleep(self.latency_ms / 1000)

        if self.rng.random() < self.success_probability:
            return ExecutionResult(
                status=OrderStatus.EXECUTED,
                filled_qty=order.quantity,
                avg_price=self._fill_price(order),
                broker_order_id=f"EX-{self.rng.getrandbits(40):010X}",
                executed_at=utcnow(),
            )

        logger.info("Simulated rejection for %s", order.order_id)
        return ExecutionResult.rejected(SIMULATED_REJECTION_REASON)
