"""
Interfaces (abstract base classes) for the TradeGate engine.

These define the contracts that must be implemented by:
- BrokerAdapter: Broker connectivity (simulated, Dhan)
- AccountStateProvider: Account flags and risk limits
- SystemHaltStore: Platform-wide master kill switch
- OrderJournal: Append-only order records
- PositionLedger: Open positions per account
"""

from tradegate_engine.interfaces.broker_adapter import (
    BrokerAdapter,
    BrokerUnavailableError,
)
from tradegate_engine.interfaces.stores import (
    AccountStateProvider,
    DataAccessError,
    OrderJournal,
    PositionLedger,
    SystemHaltStore,
)

__all__ = [
    "AccountStateProvider",
    "BrokerAdapter",
    "BrokerUnavailableError",
    "DataAccessError",
    "OrderJournal",
    "PositionLedger",
    "SystemHaltStore",
]
