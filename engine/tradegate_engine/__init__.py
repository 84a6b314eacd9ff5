"""
TradeGate Engine

Pre-trade risk gate and order execution coordinator:
- Kill switches (platform halt, account pause/deactivation)
- Rate, position-count and exposure limits per account
- Simulated and live (Dhan REST) broker adapters
- Position bookkeeping from broker fills
"""

__version__ = "1.0.0"
__author__ = "TradeGate Development Team"

from tradegate_engine.config import Settings, get_settings

__all__ = ["__version__", "Settings", "get_settings"]
