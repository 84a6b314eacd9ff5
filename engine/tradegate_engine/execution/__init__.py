"""
Pre-trade gating and order execution.

Provides:
- KillSwitch: master/account halt checks and master switch control
- RiskEngine: ordered pre-trade checks
- OrderCoordinator: risk gate -> journal -> broker -> positions
- AuditLedger: append-only JSONL audit trail
- In-memory store implementations
"""

from tradegate_engine.execution.coordinator import OrderCoordinator
from tradegate_engine.execution.kill_switch import FileSystemHaltStore, KillSwitch
from tradegate_engine.execution.ledger import AuditLedger
from tradegate_engine.execution.memory_store import (
    InMemoryAccountStore,
    InMemoryOrderJournal,
    InMemoryPositionLedger,
    InMemorySystemHaltStore,
)
from tradegate_engine.execution.models import (
    LedgerEntry,
    OrderStats,
    RiskCheckResult,
    SubmissionDenied,
)
from tradegate_engine.execution.positions import PositionUpdate, apply_fill
from tradegate_engine.execution.risk_engine import RiskEngine

__all__ = [
    "AuditLedger",
    "FileSystemHaltStore",
    "InMemoryAccountStore",
    "InMemoryOrderJournal",
    "InMemoryPositionLedger",
    "InMemorySystemHaltStore",
    "KillSwitch",
    "LedgerEntry",
    "OrderCoordinator",
    "OrderStats",
    "PositionUpdate",
    "RiskCheckResult",
    "RiskEngine",
    "SubmissionDenied",
    "apply_fill",
]
