"""
BrokerAdapter interface.

Defines the contract shared by the simulated and live broker adapters.
"""

from abc import ABC, abstractmethod
from typing import Any

from tradegate_engine.domain import (
    ConnectivityStatus,
    ExecutionResult,
    OrderRecord,
    PriceQuote,
)


class BrokerAdapter(ABC):
    """
    Abstract base class for broker execution.

    Implementations must never raise out of place_order: transport and
    broker failures are returned as rejected ExecutionResults.
    """

    @property
    @abstractmethod
    def mode(self) -> str:
        """Adapter mode label (PAPER or LIVE)."""
        pass

    # =========================================================================
    # Connection Management
    # =========================================================================

    @abstractmethod
    async def check_connectivity(self) -> ConnectivityStatus:
        """
        Probe credentials and broker health.

        Returns:
            ConnectivityStatus; connected=False without network access when
            credentials are missing.
        """
        pass

    async def close(self) -> None:
        """Release network resources (no-op by default)."""
        return None

    @property
    def metrics(self) -> dict[str, Any] | None:
        """Client latency and rate limiter stats, None when not tracked."""
        return None

    # =========================================================================
    # Market Data
    # =========================================================================

    @abstractmethod
    async def get_last_traded_price(
        self,
        exchange: str,
        symbol: str,
        security_id: str | None = None,
    ) -> PriceQuote:
        """
        Get the last traded price for an instrument.

        Args:
            exchange: Exchange code (e.g. "NSE")
            symbol: Trading symbol
            security_id: Broker instrument id (resolved from symbol if None)

        Returns:
            PriceQuote; price is 0 when no price could be obtained.
        """
        pass

    # =========================================================================
    # Order Management
    # =========================================================================

    @abstractmethod
    async def place_order(self, order: OrderRecord) -> ExecutionResult:
        """
        Place an order with the broker.

        Args:
            order: Journaled order in pending status

        Returns:
            ExecutionResult with status executed or rejected.
        """
        pass


class BrokerUnavailableError(Exception):
    """
    Raised inside adapters on transport faults and non-success responses.

    Never escapes BrokerAdapter.place_order; adapters convert it into a
    rejected ExecutionResult.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
