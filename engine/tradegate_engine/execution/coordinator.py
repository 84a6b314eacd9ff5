"""
Order Execution Coordinator.

Drives a candidate order through the risk gate, the order journal, the
broker adapter and the position ledger.

Submissions for one account are serialized by a per-account lock held from
validation until the position update, so concurrent orders cannot both pass
a limit that only one of them fits. Different accounts never wait on each
other, and an account's lock is dropped once no submission holds or
awaits it.

Audit ledger writes are best effort: a failed write is logged and the
order proceeds.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from tradegate_engine.domain import (
    ExecutionResult,
    OrderRecord,
    OrderRequest,
    OrderStatus,
)
from tradegate_engine.execution.ledger import AuditLedger
from tradegate_engine.execution.models import OrderStats, RiskCheckResult, SubmissionDenied
from tradegate_engine.execution.positions import apply_fill
from tradegate_engine.execution.risk_engine import RiskEngine
from tradegate_engine.interfaces.broker_adapter import BrokerAdapter
from tradegate_engine.interfaces.stores import (
    AccountStateProvider,
    OrderJournal,
    PositionLedger,
)
from tradegate_engine.logging import bind_order_id, clear_order_id, get_logger

logger = get_logger(__name__)

CONNECTIVITY_FAILURE_REASON = "Broker connectivity failure"


class OrderCoordinator:
    """
    Single entry point for order submission.

    Outcomes:
    - SubmissionDenied: risk gate refused; nothing journaled, broker untouched
    - OrderRecord executed: fill applied to the position ledger
    - OrderRecord rejected: broker refused, timed out or failed

    DataAccessError from any store propagates to the caller.
    """

    def __init__(
        self,
        accounts: AccountStateProvider,
        risk_engine: RiskEngine,
        broker: BrokerAdapter,
        order_journal: OrderJournal,
        position_ledger: PositionLedger,
        ledger: AuditLedger | None = None,
        broker_timeout_s: float = 5.0,
    ):
        """
        Initialize coordinator.

        Args:
            accounts: Account state lookup
            risk_engine: Pre-trade gate
            broker: Broker adapter (simulated or live)
            order_journal: Order persistence
            position_ledger: Position persistence
            ledger: Optional audit ledger
            broker_timeout_s: Deadline for a single placement
        """
        self._accounts = accounts
        self._risk_engine = risk_engine
        self._broker = broker
        self._order_journal = order_journal
        self._position_ledger = position_ledger
        self._ledger = ledger
        self._broker_timeout_s = broker_timeout_s
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @property
    def broker(self) -> BrokerAdapter:
        return self._broker

    @asynccontextmanager
    async def _account_lock(self, account_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(account_id, asyncio.Lock())
        self._lock_users[account_id] = self._lock_users.get(account_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[account_id] -= 1
            if self._lock_users[account_id] == 0:
                del self._lock_users[account_id]
                del self._locks[account_id]

    def _audit(self, event: str, *args: Any, **kwargs: Any) -> None:
        if self._ledger is None:
            return
        try:
            getattr(self._ledger, f"record_{event}")(*args, **kwargs)
        except OSError as e:
            logger.error("Audit ledger write failed for %s entry: %s", event, e)

    async def submit(
        self, account_id: str, request: OrderRequest
    ) -> OrderRecord | SubmissionDenied:
        """
        Submit a candidate order.

        Account flags are loaded fresh for every submission.

        Args:
            account_id: Account placing the order
            request: Candidate order

        Returns:
            SubmissionDenied, or the journaled order in its terminal status

        Raises:
            DataAccessError: account, journal or position store failed
        """
        async with self._account_lock(account_id):
            account = await self._accounts.get_account(account_id)
            if account is None:
                verdict = RiskCheckResult.deny(
                    "ACCOUNT_NOT_FOUND", f"Account {account_id} not found"
                )
            else:
                verdict = await self._risk_engine.validate(account, request)

            if not verdict.allowed:
                return self._deny(account_id, request, verdict)

            order = OrderRecord.from_request(
                account_id, request, reference_price=verdict.reference_price
            )
            bind_order_id(order.order_id)
            try:
                return await self._execute(order)
            finally:
                clear_order_id()

    def _deny(
        self, account_id: str, request: OrderRequest, verdict: RiskCheckResult
    ) -> SubmissionDenied:
        self._audit("denial", account_id, request, verdict)
        return SubmissionDenied(
            account_id=account_id,
            symbol=request.symbol,
            reason=verdict.reason or "Order denied",
            reason_code=verdict.reason_code,
        )

    async def _execute(self, order: OrderRecord) -> OrderRecord:
        order = await self._order_journal.create(order)
        self._audit("admission", order)

        logger.info(
            "Order admitted: %s %d %s @ %s",
            order.side.value,
            order.quantity,
            order.symbol,
            order.price if order.has_limit_price else "MKT",
        )

        result = await self._place(order)
        order.apply_execution(result)

        try:
            order = await self._order_journal.update(order)

            realized_pnl = None
            if order.status == OrderStatus.EXECUTED:
                realized_pnl = await self._apply_fill(order)
        except Exception as e:
            self._audit("error", str(e), account_id=order.account_id, order_id=order.order_id)
            raise

        self._audit("outcome", order, realized_pnl=realized_pnl)

        if order.status == OrderStatus.EXECUTED:
            logger.info(
                "Order executed: %d %s @ %.2f broker_id=%s (%dms)",
                order.filled_qty,
                order.symbol,
                order.avg_price,
                order.broker_order_id,
                order.latency_ms,
            )
        else:
            logger.warning("Order rejected: %s", order.rejection_reason)
        return order

    async def _place(self, order: OrderRecord) -> ExecutionResult:
        """Call the broker; timeouts and exceptions become rejections."""
        try:
            return await asyncio.wait_for(
                self._broker.place_order(order),
                timeout=self._broker_timeout_s,
            )
        except TimeoutError:
            logger.error(
                "Broker did not answer within %.1fs for %s",
                self._broker_timeout_s,
                order.order_id,
            )
            return ExecutionResult.rejected(
                f"Broker timeout after {self._broker_timeout_s:g}s"
            )
        except Exception as e:
            logger.exception("Broker placement failed for %s: %s", order.order_id, e)
            return ExecutionResult.rejected(CONNECTIVITY_FAILURE_REASON)

    async def _apply_fill(self, order: OrderRecord) -> float:
        existing = await self._position_ledger.find_by_symbol(order.account_id, order.symbol)
        update = apply_fill(existing, order)

        if update.position is None:
            await self._position_ledger.remove(order.account_id, order.symbol)
            logger.info(
                "Position closed: %s realized P&L %.2f", order.symbol, update.realized_pnl
            )
        else:
            await self._position_ledger.upsert(update.position)
            logger.debug(
                "Position %s: %s %d @ %.2f",
                order.symbol,
                update.position.side.value,
                update.position.quantity,
                update.position.avg_entry_price,
            )
        return update.realized_pnl

    async def order_stats(self, account_id: str) -> OrderStats:
        """Order counts and average latency for an account."""
        orders = await self._order_journal.list_for_account(account_id)
        executed = [o for o in orders if o.status == OrderStatus.EXECUTED]
        rejected = [o for o in orders if o.status == OrderStatus.REJECTED]
        pending = [o for o in orders if o.status == OrderStatus.PENDING]
        terminal = executed + rejected
        avg_latency = (
            sum(o.latency_ms for o in terminal) / len(terminal) if terminal else 0.0
        )
        return OrderStats(
            total_orders=len(orders),
            executed_orders=len(executed),
            rejected_orders=len(rejected),
            pending_orders=len(pending),
            avg_latency_ms=round(avg_latency, 1),
        )
