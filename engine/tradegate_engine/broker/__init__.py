"""
Broker adapters for the TradeGate engine.

Currently supported:
- Simulated paper broker
- Dhan (REST)
"""

from tradegate_engine.broker.factory import create_broker
from tradegate_engine.broker.simulated import SimulatedBroker

__all__ = ["SimulatedBroker", "create_broker"]
