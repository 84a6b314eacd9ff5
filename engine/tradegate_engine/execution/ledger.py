"""
Audit Ledger for order decisions.

Append-only log of:
- Risk denials
- Admissions (order journaled as pending)
- Executions and broker rejections
- Errors
- System halt toggles
"""

from pathlib import Path

from tradegate_engine.domain import OrderRecord, OrderRequest, OrderStatus
from tradegate_engine.execution.models import LedgerEntry, RiskCheckResult
from tradegate_engine.logging import get_logger

logger = get_logger(__name__)


class AuditLedger:
    """
    Append-only audit ledger.

    Writes to {base_dir}/audit/ledger.jsonl (JSON lines format).
    """

    def __init__(self, base_dir: Path):
        """
        Initialize audit ledger.

        Args:
            base_dir: Data directory (e.g., settings.data_dir)
        """
        self._dir = base_dir / "audit"
        self._dir.mkdir(parents=True, exist_ok=True)
        self._ledger_path = self._dir / "ledger.jsonl"

        logger.info("Audit ledger initialized: %s", self._ledger_path)

    @property
    def path(self) -> Path:
        """Get ledger file path."""
        return self._ledger_path

    def _append_entry(self, entry: LedgerEntry) -> None:
        """Append entry to ledger file."""
        with open(self._ledger_path, "a") as f:
            f.write(entry.model_dump_json() + "\n")

    def record_denial(
        self,
        account_id: str,
        request: OrderRequest,
        result: RiskCheckResult,
    ) -> None:
        """Record an order refused by the risk gate."""
        entry = LedgerEntry(
            entry_type="denial",
            account_id=account_id,
            symbol=request.symbol,
            side=request.side,
            quantity=request.quantity,
            price=request.price,
            reason_code=result.reason_code,
            reason=result.reason,
            metadata={"source": request.source.value},
        )
        self._append_entry(entry)
        logger.debug("Ledger: denied %s for %s: %s", request.symbol, account_id, result.reason)

    def record_admission(self, order: OrderRecord) -> None:
        """Record an admitted order journaled as pending."""
        entry = LedgerEntry(
            entry_type="admission",
            account_id=order.account_id,
            order_id=order.order_id,
            symbol=order.symbol,
            side=order.side,
            quantity=order.quantity,
            price=order.price,
            status=OrderStatus.PENDING,
            metadata={
                "order_type": order.order_type.value,
                "exchange": order.exchange.value,
                "strategy_id": order.strategy_id,
            },
        )
        self._append_entry(entry)
        logger.debug("Ledger: admitted %s", order.order_id)

    def record_outcome(self, order: OrderRecord, realized_pnl: float | None = None) -> None:
        """Record the terminal broker outcome of an order."""
        executed = order.status == OrderStatus.EXECUTED
        entry = LedgerEntry(
            entry_type="execution" if executed else "rejection",
            account_id=order.account_id,
            order_id=order.order_id,
            broker_order_id=order.broker_order_id,
            symbol=order.symbol,
            side=order.side,
            quantity=order.filled_qty if executed else order.quantity,
            price=order.avg_price if executed else order.price,
            status=order.status,
            reason=order.rejection_reason,
            metadata={
                "latency_ms": order.latency_ms,
                "realized_pnl": realized_pnl,
            },
        )
        self._append_entry(entry)
        logger.debug(
            "Ledger: %s %s broker_id=%s",
            entry.entry_type,
            order.order_id,
            order.broker_order_id,
        )

    def record_error(
        self,
        error: str,
        account_id: str | None = None,
        order_id: str | None = None,
    ) -> None:
        """Record an error."""
        entry = LedgerEntry(
            entry_type="error",
            account_id=account_id,
            order_id=order_id,
            reason=error,
        )
        self._append_entry(entry)
        logger.error("Ledger: error %s", error)

    def record_system_halt(
        self,
        activated: bool,
        reason: str | None = None,
        by: str | None = None,
    ) -> None:
        """Record master kill switch event."""
        entry = LedgerEntry(
            entry_type="system_halt",
            reason=reason,
            metadata={
                "activated": activated,
                "by": by,
            },
        )
        self._append_entry(entry)
        logger.warning(
            "Ledger: master kill switch %s by %s: %s",
            "activated" if activated else "reset",
            by,
            reason,
        )

    def get_entries(
        self,
        entry_type: str | None = None,
        account_id: str | None = None,
    ) -> list[LedgerEntry]:
        """Read ledger entries (for testing/debugging)."""
        if not self._ledger_path.exists():
            return []

        entries = []
        with open(self._ledger_path) as f:
            for line in f:
                if line.strip():
                    entry = LedgerEntry.model_validate_json(line)
                    if entry_type is not None and entry.entry_type != entry_type:
                        continue
                    if account_id is not None and entry.account_id != account_id:
                        continue
                    entries.append(entry)
        return entries
