"""
Domain models for the TradeGate engine.

These models represent the core concepts used throughout the system:
- Account: Trading account flags and risk limits
- SystemSettings: Platform-wide master kill switch record
- OrderRequest / OrderRecord: Candidate and journaled orders
- ExecutionResult: Normalized broker outcome for a placement
- PositionRecord: Open holding per (account, symbol)
- ConnectivityStatus / PriceQuote: Broker probe and quote results
"""

from tradegate_engine.domain.account import (
    DEFAULT_MAX_EXPOSURE,
    DEFAULT_MAX_OPEN_POSITIONS,
    DEFAULT_MAX_ORDERS_PER_MINUTE,
    Account,
    RiskSettings,
    SystemSettings,
)
from tradegate_engine.domain.market import ConnectivityStatus, PriceQuote
from tradegate_engine.domain.order import (
    Exchange,
    ExecutionResult,
    OrderRecord,
    OrderRequest,
    OrderSide,
    OrderSource,
    OrderStateError,
    OrderStatus,
    OrderType,
    utcnow,
)
from tradegate_engine.domain.position import PositionRecord, PositionSide

__all__ = [
    "DEFAULT_MAX_EXPOSURE",
    "DEFAULT_MAX_OPEN_POSITIONS",
    "DEFAULT_MAX_ORDERS_PER_MINUTE",
    "Account",
    "ConnectivityStatus",
    "Exchange",
    "ExecutionResult",
    "OrderRecord",
    "OrderRequest",
    "OrderSide",
    "OrderSource",
    "OrderStateError",
    "OrderStatus",
    "OrderType",
    "PositionRecord",
    "PositionSide",
    "PriceQuote",
    "RiskSettings",
    "SystemSettings",
    "utcnow",
]
