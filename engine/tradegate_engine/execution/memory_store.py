"""
In-memory implementations of the data-access contracts.

Used by the standalone service and by tests. Records are copied on the way
in and out so callers never share mutable state with the store.
"""

from datetime import datetime

from tradegate_engine.domain import (
    Account,
    OrderRecord,
    OrderStateError,
    PositionRecord,
    RiskSettings,
    SystemSettings,
    utcnow,
)
from tradegate_engine.interfaces.stores import (
    AccountStateProvider,
    OrderJournal,
    PositionLedger,
    SystemHaltStore,
)


class InMemoryAccountStore(AccountStateProvider):
    """Accounts keyed by id, with the admin operations the gate reads."""

    def __init__(self, accounts: list[Account] | None = None):
        self._accounts: dict[str, Account] = {}
        for account in accounts or []:
            self.add(account)

    def add(self, account: Account) -> Account:
        self._accounts[account.account_id] = account.model_copy(deep=True)
        return account

    async def get_account(self, account_id: str) -> Account | None:
        account = self._accounts.get(account_id)
        return account.model_copy(deep=True) if account else None

    def _require(self, account_id: str) -> Account:
        account = self._accounts.get(account_id)
        if account is None:
            raise KeyError(f"Unknown account: {account_id}")
        return account

    def set_paused(self, account_id: str, paused: bool) -> None:
        self._require(account_id).is_paused = paused

    def set_active(self, account_id: str, active: bool) -> None:
        self._require(account_id).is_active = active

    def update_risk_settings(self, account_id: str, risk_settings: RiskSettings) -> None:
        self._require(account_id).risk_settings = risk_settings.model_copy()


class InMemorySystemHaltStore(SystemHaltStore):
    """Master kill switch held in process memory."""

    def __init__(self) -> None:
        self._settings = SystemSettings()

    async def get_settings(self) -> SystemSettings:
        return self._settings.model_copy()

    async def set_halt(
        self,
        active: bool,
        reason: str | None = None,
        updated_by: str | None = None,
    ) -> SystemSettings:
        self._settings = SystemSettings(
            master_kill_switch=active,
            reason=reason,
            updated_by=updated_by,
            updated_at=utcnow(),
        )
        return self._settings.model_copy()


class InMemoryOrderJournal(OrderJournal):
    """Orders keyed by id, in insertion order."""

    def __init__(self) -> None:
        self._orders: dict[str, OrderRecord] = {}

    async def create(self, order: OrderRecord) -> OrderRecord:
        if order.order_id in self._orders:
            raise ValueError(f"Order {order.order_id} already exists")
        self._orders[order.order_id] = order.model_copy(deep=True)
        return order.model_copy(deep=True)

    async def update(self, order: OrderRecord) -> OrderRecord:
        stored = self._orders.get(order.order_id)
        if stored is None:
            raise KeyError(f"Unknown order: {order.order_id}")
        if stored.status.is_terminal:
            raise OrderStateError(
                f"Order {order.order_id} is already {stored.status.value} and cannot change"
            )
        self._orders[order.order_id] = order.model_copy(deep=True)
        return order.model_copy(deep=True)

    async def get(self, order_id: str) -> OrderRecord | None:
        order = self._orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    async def count_since(self, account_id: str, since: datetime) -> int:
        return sum(
            1
            for order in self._orders.values()
            if order.account_id == account_id and order.created_at >= since
        )

    async def list_for_account(self, account_id: str) -> list[OrderRecord]:
        orders = [o for o in self._orders.values() if o.account_id == account_id]
        return [o.model_copy(deep=True) for o in reversed(orders)]


class InMemoryPositionLedger(PositionLedger):
    """Open positions keyed by (account, symbol)."""

    def __init__(self) -> None:
        self._positions: dict[tuple[str, str], PositionRecord] = {}

    async def find_all(self, account_id: str) -> list[PositionRecord]:
        return [
            p.model_copy(deep=True)
            for (owner, _), p in self._positions.items()
            if owner == account_id
        ]

    async def find_by_symbol(self, account_id: str, symbol: str) -> PositionRecord | None:
        position = self._positions.get((account_id, symbol.upper()))
        return position.model_copy(deep=True) if position else None

    async def upsert(self, position: PositionRecord) -> PositionRecord:
        self._positions[(position.account_id, position.symbol.upper())] = position.model_copy(
            deep=True
        )
        return position

    async def remove(self, account_id: str, symbol: str) -> None:
        self._positions.pop((account_id, symbol.upper()), None)
