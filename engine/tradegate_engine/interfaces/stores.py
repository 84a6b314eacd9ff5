"""
Data-access contracts consumed by the risk gate and coordinator.

Persistence lives outside the engine; implementations raise
DataAccessError when the backing store cannot answer.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from tradegate_engine.domain import (
    Account,
    OrderRecord,
    PositionRecord,
    SystemSettings,
)


class DataAccessError(Exception):
    """Raised when the backing store is unavailable or returns garbage."""

    def __init__(self, message: str, store: str | None = None):
        super().__init__(message)
        self.store = store


class AccountStateProvider(ABC):
    """Source of account flags and risk limits."""

    @abstractmethod
    async def get_account(self, account_id: str) -> Account | None:
        """
        Get an account by id.

        Returns:
            Account if found, None otherwise.
        """
        pass


class SystemHaltStore(ABC):
    """Read/write access to the platform-wide master kill switch."""

    @abstractmethod
    async def get_settings(self) -> SystemSettings:
        """Get the system settings record (defaults when none exists)."""
        pass

    @abstractmethod
    async def set_halt(
        self,
        active: bool,
        reason: str | None = None,
        updated_by: str | None = None,
    ) -> SystemSettings:
        """Activate or reset the master kill switch."""
        pass

    async def is_halted(self) -> bool:
        """Check if trading is halted platform-wide."""
        settings = await self.get_settings()
        return settings.master_kill_switch


class OrderJournal(ABC):
    """Append-only store of submitted orders."""

    @abstractmethod
    async def create(self, order: OrderRecord) -> OrderRecord:
        """Persist a new order."""
        pass

    @abstractmethod
    async def update(self, order: OrderRecord) -> OrderRecord:
        """
        Persist a status change of an existing order.

        Implementations refuse to modify an order already in a terminal
        status.
        """
        pass

    @abstractmethod
    async def get(self, order_id: str) -> OrderRecord | None:
        """Get an order by id."""
        pass

    @abstractmethod
    async def count_since(self, account_id: str, since: datetime) -> int:
        """Count orders created by an account at or after `since`."""
        pass

    @abstractmethod
    async def list_for_account(self, account_id: str) -> list[OrderRecord]:
        """All orders for an account, newest first."""
        pass


class PositionLedger(ABC):
    """Open positions, at most one per (account, symbol)."""

    @abstractmethod
    async def find_all(self, account_id: str) -> list[PositionRecord]:
        """All open positions for an account."""
        pass

    @abstractmethod
    async def find_by_symbol(self, account_id: str, symbol: str) -> PositionRecord | None:
        """Open position for (account, symbol), if any."""
        pass

    @abstractmethod
    async def upsert(self, position: PositionRecord) -> PositionRecord:
        """Create or replace the open position for (account, symbol)."""
        pass

    @abstractmethod
    async def remove(self, account_id: str, symbol: str) -> None:
        """Remove the open position for (account, symbol)."""
        pass
