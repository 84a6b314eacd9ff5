"""
Broker selection.

The simulated broker is used unless LIVE is requested and credentials are
present.
"""

import random

from tradegate_engine.broker.dhan.adapter import DhanBroker
from tradegate_engine.broker.simulated import SimulatedBroker
from tradegate_engine.config import Settings, TradingMode
from tradegate_engine.interfaces.broker_adapter import BrokerAdapter
from tradegate_engine.logging import get_logger

logger = get_logger(__name__)


def create_broker(settings: Settings, rng: random.Random | None = None) -> BrokerAdapter:
    """
    Build the broker adapter for the effective trading mode.

    Args:
        settings: Application settings
        rng: Random source for the simulated broker

    Returns:
        DhanBroker in effective LIVE mode, SimulatedBroker otherwise
    """
    if settings.effective_mode == TradingMode.LIVE:
        logger.info("Broker: Dhan (LIVE)")
        return DhanBroker(settings)

    probe = DhanBroker(settings) if settings.has_broker_credentials else None
    logger.info(
        "Broker: simulated (PAPER, latency=%dms, p_success=%.2f, probe=%s)",
        settings.sim_latency_ms,
        settings.sim_success_probability,
        "dhan" if probe else "none",
    )
    return SimulatedBroker(
        latency_ms=settings.sim_latency_ms,
        success_probability=settings.sim_success_probability,
        rng=rng or random.Random(),
        connectivity_probe=probe,
    )
