"""
Broker-facing result models: connectivity probe and quotes.
"""

from pydantic import BaseModel


class ConnectivityStatus(BaseModel):
    """Broker connectivity probe result."""

    connected: bool
    mode: str
    available_margin: float | None = None
    utilized_margin: float | None = None
    error: str | None = None


class PriceQuote(BaseModel):
    """Last traded price for an instrument."""

    exchange: str
    symbol: str
    security_id: str | None = None
    price: float = 0.0
