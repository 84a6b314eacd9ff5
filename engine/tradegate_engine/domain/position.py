"""
Position domain model.

One open position per (account, symbol). Quantity is always positive;
direction is carried by side.
"""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from tradegate_engine.domain.order import Exchange, OrderSide, utcnow


class PositionSide(str, Enum):
    """Position direction."""

    LONG = "LONG"
    SHORT = "SHORT"

    @classmethod
    def from_order_side(cls, side: OrderSide) -> "PositionSide":
        return cls.LONG if side == OrderSide.BUY else cls.SHORT


class PositionRecord(BaseModel):
    """
    Open position for one (account, symbol).

    current_price and P&L are refreshed on every fill and by the market
    data feed.
    """

    position_id: str = Field(default_factory=lambda: uuid4().hex)
    account_id: str
    strategy_id: str | None = None
    symbol: str
    exchange: Exchange = Exchange.NSE
    side: PositionSide
    quantity: int
    avg_entry_price: float
    current_price: float = 0.0
    unrealized_pnl: float = 0.0
    realized_pnl: float = 0.0
    pnl_percentage: float = 0.0
    entry_order_id: str | None = None
    opened_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def exposure(self) -> float:
        """Capital at risk at the current mark."""
        return self.current_price * abs(self.quantity)

    def mark(self, price: float) -> None:
        """Set the mark price and recompute unrealized P&L."""
        self.current_price = price
        self.updated_at = utcnow()
        if self.current_price and self.avg_entry_price and self.quantity:
            multiplier = 1 if self.side == PositionSide.LONG else -1
            self.unrealized_pnl = (
                multiplier * (self.current_price - self.avg_entry_price) * self.quantity
            )
            self.pnl_percentage = (
                (self.current_price - self.avg_entry_price)
                / self.avg_entry_price
                * 100
                * multiplier
            )
        else:
            self.unrealized_pnl = 0.0
            self.pnl_percentage = 0.0
