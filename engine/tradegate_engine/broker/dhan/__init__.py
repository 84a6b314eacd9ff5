"""
Dhan broker integration.

Provides:
- AsyncDhanClient: Async REST client for the Dhan API
- DhanBroker: BrokerAdapter used in LIVE mode
- Rate limiting and retry logic for reads
"""

from tradegate_engine.broker.dhan.adapter import DhanBroker
from tradegate_engine.broker.dhan.client import AsyncDhanClient, DhanAPIError, DhanAuthError
from tradegate_engine.broker.dhan.types import (
    DhanFundLimits,
    DhanOrderRequest,
    DhanOrderResponse,
)

__all__ = [
    "AsyncDhanClient",
    "DhanAPIError",
    "DhanAuthError",
    "DhanBroker",
    "DhanFundLimits",
    "DhanOrderRequest",
    "DhanOrderResponse",
]
