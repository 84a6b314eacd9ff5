"""
Wiring of the gate, coordinator and stores for one process.
"""

from dataclasses import dataclass

from tradegate_engine.broker.factory import create_broker
from tradegate_engine.config import Settings
from tradegate_engine.execution.coordinator import OrderCoordinator
from tradegate_engine.execution.kill_switch import FileSystemHaltStore, KillSwitch
from tradegate_engine.execution.ledger import AuditLedger
from tradegate_engine.execution.memory_store import (
    InMemoryAccountStore,
    InMemoryOrderJournal,
    InMemoryPositionLedger,
)
from tradegate_engine.execution.risk_engine import RiskEngine
from tradegate_engine.interfaces.broker_adapter import BrokerAdapter
from tradegate_engine.interfaces.stores import SystemHaltStore
from tradegate_engine.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ExecutionService:
    """Components shared by the API routes."""

    settings: Settings
    accounts: InMemoryAccountStore
    halt_store: SystemHaltStore
    kill_switch: KillSwitch
    order_journal: InMemoryOrderJournal
    position_ledger: InMemoryPositionLedger
    broker: BrokerAdapter
    risk_engine: RiskEngine
    coordinator: OrderCoordinator
    ledger: AuditLedger

    async def close(self) -> None:
        await self.broker.close()


def build_service(settings: Settings, broker: BrokerAdapter | None = None) -> ExecutionService:
    """
    Build the execution stack from settings.

    Args:
        settings: Application settings
        broker: Adapter override (selected from settings when None)

    Returns:
        Wired ExecutionService
    """
    ledger = AuditLedger(settings.data_dir)
    halt_store = FileSystemHaltStore(settings.data_dir / "execution" / "system_halt.json")
    kill_switch = KillSwitch(halt_store, ledger=ledger)
    accounts = InMemoryAccountStore()
    order_journal = InMemoryOrderJournal()
    position_ledger = InMemoryPositionLedger()
    broker = broker or create_broker(settings)

    risk_engine = RiskEngine(
        kill_switch,
        order_journal,
        position_ledger,
        price_source=broker,
        window_s=settings.rate_limit_window_s,
    )
    coordinator = OrderCoordinator(
        accounts,
        risk_engine,
        broker,
        order_journal,
        position_ledger,
        ledger=ledger,
        broker_timeout_s=settings.broker_timeout_s,
    )

    logger.info(
        "Execution service ready (mode=%s, effective=%s)",
        settings.mode.value,
        settings.effective_mode.value,
    )

    return ExecutionService(
        settings=settings,
        accounts=accounts,
        halt_store=halt_store,
        kill_switch=kill_switch,
        order_journal=order_journal,
        position_ledger=position_ledger,
        broker=broker,
        risk_engine=risk_engine,
        coordinator=coordinator,
        ledger=ledger,
    )
