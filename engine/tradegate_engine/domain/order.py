"""
Order domain model.

Represents an order from the candidate request at the intake boundary to
its terminal broker outcome.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    """Timezone-aware now, used for every persisted timestamp."""
    return datetime.now(UTC)


def generate_order_id() -> str:
    """Generate an order id of the form ORD-<epoch ms>-<suffix>."""
    millis = int(utcnow().timestamp() * 1000)
    return f"ORD-{millis}-{uuid4().hex[:9].upper()}"


class OrderStateError(Exception):
    """Raised on an invalid order status transition."""

    pass


class OrderSide(str, Enum):
    """Order side (direction)."""

    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    """Order type."""

    MARKET = "MARKET"
    LIMIT = "LIMIT"
    STOP_LOSS = "SL"
    STOP_LOSS_MARKET = "SL-M"


class Exchange(str, Enum):
    """Exchanges an order can be routed to."""

    NSE = "NSE"
    BSE = "BSE"
    MCX = "MCX"
    NFO = "NFO"


class OrderSource(str, Enum):
    """Where an order originated."""

    MANUAL = "manual"
    STRATEGY = "strategy"
    API = "api"


class OrderStatus(str, Enum):
    """
    Order lifecycle status.

    Valid state transitions:
    - pending -> executed (broker filled)
    - pending -> rejected (broker rejected, timed out or unreachable)

    Terminal states: executed, rejected
    """

    PENDING = "pending"
    EXECUTED = "executed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        """Check if this is a terminal (final) state."""
        return self in (OrderStatus.EXECUTED, OrderStatus.REJECTED)


ORDER_STATE_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.EXECUTED, OrderStatus.REJECTED},
    # Terminal states have no valid transitions
    OrderStatus.EXECUTED: set(),
    OrderStatus.REJECTED: set(),
}


def validate_order_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    """
    Validate if a state transition is allowed.

    Args:
        from_status: Current order status
        to_status: Proposed new status

    Returns:
        True if transition is valid, False otherwise.
    """
    return to_status in ORDER_STATE_TRANSITIONS.get(from_status, set())


class OrderRequest(BaseModel):
    """
    Candidate order submitted at the intake boundary.

    Validated by the RiskEngine before anything is persisted.
    """

    symbol: str = Field(min_length=1)
    side: OrderSide
    quantity: int = Field(ge=1)
    price: float | None = Field(default=None, ge=0)
    trigger_price: float | None = Field(default=None, ge=0)
    order_type: OrderType = OrderType.MARKET
    exchange: Exchange = Exchange.NSE
    strategy_id: str | None = None
    security_id: str | None = None  # Broker instrument id, resolved if not provided
    source: OrderSource = OrderSource.MANUAL

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("side", mode="before")
    @classmethod
    def normalize_side(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class ExecutionResult(BaseModel):
    """Outcome of a broker placement, normalized across adapters."""

    status: OrderStatus
    filled_qty: int | None = None
    avg_price: float | None = None
    broker_order_id: str | None = None
    rejection_reason: str | None = None
    executed_at: datetime = Field(default_factory=utcnow)
    raw_response: dict[str, Any] | None = None  # Redacted broker response

    @classmethod
    def rejected(cls, reason: str, **kwargs: Any) -> "ExecutionResult":
        return cls(status=OrderStatus.REJECTED, rejection_reason=reason, **kwargs)


class OrderRecord(BaseModel):
    """
    Journaled order.

    Created with status pending at admission, moved exactly once to a
    terminal status by the broker's execution result.
    """

    order_id: str = Field(default_factory=generate_order_id)
    account_id: str
    strategy_id: str | None = None
    symbol: str
    exchange: Exchange = Exchange.NSE
    side: OrderSide
    order_type: OrderType = OrderType.MARKET
    quantity: int
    price: float = 0.0
    trigger_price: float = 0.0
    security_id: str | None = None
    filled_qty: int = 0
    avg_price: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    broker_order_id: str | None = None
    rejection_reason: str | None = None
    source: OrderSource = OrderSource.MANUAL
    created_at: datetime = Field(default_factory=utcnow)
    executed_at: datetime | None = None
    latency_ms: int = 0
    reference_price: float | None = None  # Price the exposure check used

    @classmethod
    def from_request(
        cls,
        account_id: str,
        request: OrderRequest,
        reference_price: float | None = None,
    ) -> "OrderRecord":
        return cls(
            account_id=account_id,
            strategy_id=request.strategy_id,
            symbol=request.symbol,
            exchange=request.exchange,
            side=request.side,
            order_type=request.order_type,
            quantity=request.quantity,
            price=request.price or 0.0,
            trigger_price=request.trigger_price or 0.0,
            security_id=request.security_id,
            source=request.source,
            reference_price=reference_price,
        )

    @property
    def has_limit_price(self) -> bool:
        return self.price > 0

    def apply_execution(self, result: ExecutionResult) -> None:
        """
        Move to the terminal status carried by an execution result.

        Raises:
            OrderStateError: order already terminal or result not terminal
        """
        if not validate_order_transition(self.status, result.status):
            raise OrderStateError(
                f"Order {self.order_id} cannot move from {self.status.value} "
                f"to {result.status.value}"
            )

        self.status = result.status
        self.executed_at = result.executed_at
        self.latency_ms = max(
            0, int((result.executed_at - self.created_at).total_seconds() * 1000)
        )
        self.broker_order_id = result.broker_order_id
        if result.status == OrderStatus.EXECUTED:
            self.filled_qty = result.filled_qty or self.quantity
            # Fills acknowledged without a price are booked at the gate price
            self.avg_price = result.avg_price or self.price or self.reference_price or 0.0
        else:
            self.rejection_reason = result.rejection_reason or "Rejected by broker"
