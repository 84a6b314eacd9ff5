"""
Execution models for the risk gate and coordinator.

All models are Pydantic-based for validation and serialization.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from tradegate_engine.domain import OrderSide, OrderStatus, utcnow


class RiskCheckResult(BaseModel):
    """Result of risk engine validation."""

    allowed: bool
    reason: str | None = None
    reason_code: str | None = None
    reference_price: float | None = None  # Price used for the candidate notional

    @classmethod
    def admit(cls, reference_price: float | None = None) -> "RiskCheckResult":
        return cls(allowed=True, reference_price=reference_price)

    @classmethod
    def deny(cls, reason_code: str, reason: str) -> "RiskCheckResult":
        return cls(allowed=False, reason=reason, reason_code=reason_code)


class SubmissionDenied(BaseModel):
    """Returned to the caller when the risk gate refuses an order."""

    account_id: str
    symbol: str
    reason: str
    reason_code: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)


class OrderStats(BaseModel):
    """Order counts and latency for one account."""

    total_orders: int = 0
    executed_orders: int = 0
    rejected_orders: int = 0
    pending_orders: int = 0
    avg_latency_ms: float = 0.0


class LedgerEntry(BaseModel):
    """Single entry in the audit ledger."""

    timestamp: datetime = Field(default_factory=utcnow)
    entry_type: str  # denial, admission, execution, rejection, error, system_halt
    account_id: str | None = None
    order_id: str | None = None
    broker_order_id: str | None = None
    symbol: str | None = None
    side: OrderSide | None = None
    quantity: int | None = None
    price: float | None = None
    status: OrderStatus | None = None
    reason_code: str | None = None
    reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
