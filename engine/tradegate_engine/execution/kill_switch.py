"""
Kill switches for trading halt.

Checked before any quantitative limit, first failure wins:
1. Master kill switch (platform-wide)
2. Account paused
3. Account deactivated

The halt flag lives in a SystemHaltStore and is read fresh on every check.
"""

import json
from datetime import UTC, datetime
from pathlib import Path

from tradegate_engine.domain import Account, OrderRequest, SystemSettings, utcnow
from tradegate_engine.execution.ledger import AuditLedger
from tradegate_engine.execution.models import RiskCheckResult
from tradegate_engine.interfaces.stores import DataAccessError, SystemHaltStore
from tradegate_engine.logging import get_logger

logger = get_logger(__name__)

SYSTEM_HALTED_REASON = "Trading is halted platform-wide (Master Kill Switch active)"
ACCOUNT_PAUSED_REASON = "Account is paused (Kill Switch active)"
ACCOUNT_INACTIVE_REASON = "Account is deactivated"


class KillSwitch:
    """
    Safety-flag gate and master kill switch control.

    Activation and reset are written through to the halt store so every
    engine sharing the store sees them on the next check.
    """

    def __init__(self, halt_store: SystemHaltStore, ledger: AuditLedger | None = None):
        """
        Initialize kill switch.

        Args:
            halt_store: Store holding the master kill switch
            ledger: Optional audit ledger for halt toggles
        """
        self._halt_store = halt_store
        self._ledger = ledger

    async def check(
        self, account: Account, request: OrderRequest | None = None
    ) -> RiskCheckResult:
        """
        Check the safety flags for an account.

        The request is accepted so the kill switch can sit in the risk
        engine's check chain; the flags do not depend on it.

        Raises:
            DataAccessError: halt state could not be read
        """
        if await self._halt_store.is_halted():
            return RiskCheckResult.deny("SYSTEM_HALTED", SYSTEM_HALTED_REASON)
        if account.is_paused:
            return RiskCheckResult.deny("ACCOUNT_PAUSED", ACCOUNT_PAUSED_REASON)
        if not account.is_active:
            return RiskCheckResult.deny("ACCOUNT_INACTIVE", ACCOUNT_INACTIVE_REASON)
        return RiskCheckResult.admit()

    async def activate(self, reason: str = "manual", activated_by: str = "user") -> SystemSettings:
        """
        Activate the master kill switch.

        Args:
            reason: Reason for activation
            activated_by: Who/what activated it

        Returns:
            Updated system settings
        """
        current = await self._halt_store.get_settings()
        if current.master_kill_switch:
            logger.warning("Master kill switch already active, ignoring duplicate activation")
            return current

        settings = await self._halt_store.set_halt(True, reason=reason, updated_by=activated_by)
        logger.critical("MASTER KILL SWITCH ACTIVATED by %s: %s", activated_by, reason)
        if self._ledger is not None:
            self._ledger.record_system_halt(True, reason=reason, by=activated_by)
        return settings

    async def reset(self, reset_by: str = "user") -> SystemSettings:
        """
        Reset (deactivate) the master kill switch.

        Args:
            reset_by: Who/what reset it

        Returns:
            Updated system settings
        """
        current = await self._halt_store.get_settings()
        if not current.master_kill_switch:
            logger.info("Master kill switch not active, nothing to reset")
            return current

        settings = await self._halt_store.set_halt(False, reason=None, updated_by=reset_by)
        logger.warning(
            "Master kill switch RESET by %s (was activated at %s for: %s)",
            reset_by,
            current.updated_at.isoformat() if current.updated_at else "unknown",
            current.reason or "unknown",
        )
        if self._ledger is not None:
            self._ledger.record_system_halt(False, reason=current.reason, by=reset_by)
        return settings

    async def get_state(self) -> dict[str, str | bool | None]:
        """Get current master kill switch state."""
        settings = await self._halt_store.get_settings()
        return {
            "active": settings.master_kill_switch,
            "reason": settings.reason,
            "updated_by": settings.updated_by,
            "updated_at": settings.updated_at.isoformat() if settings.updated_at else None,
        }


class FileSystemHaltStore(SystemHaltStore):
    """
    Master kill switch persisted to a JSON state file.

    The file is re-read on every call; a missing file means not halted.
    """

    def __init__(self, state_file: Path):
        self._state_file = state_file

    @property
    def state_file(self) -> Path:
        return self._state_file

    async def get_settings(self) -> SystemSettings:
        if not self._state_file.exists():
            return SystemSettings()

        try:
            with open(self._state_file) as f:
                state = json.load(f)
            if not isinstance(state, dict):
                raise ValueError("halt state is not a JSON object")

            updated_at = None
            updated_at_str = state.get("updated_at")
            if updated_at_str:
                parsed = datetime.fromisoformat(str(updated_at_str).replace("Z", "+00:00"))
                updated_at = parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
        except (OSError, ValueError) as e:
            raise DataAccessError(
                f"Failed to read halt state from {self._state_file}: {e}",
                store="system_halt",
            ) from e

        return SystemSettings(
            master_kill_switch=bool(state.get("master_kill_switch", False)),
            reason=state.get("reason"),
            updated_by=state.get("updated_by"),
            updated_at=updated_at,
        )

    async def set_halt(
        self,
        active: bool,
        reason: str | None = None,
        updated_by: str | None = None,
    ) -> SystemSettings:
        settings = SystemSettings(
            master_kill_switch=active,
            reason=reason,
            updated_by=updated_by,
            updated_at=utcnow(),
        )

        state = {
            "master_kill_switch": settings.master_kill_switch,
            "reason": settings.reason,
            "updated_by": settings.updated_by,
            "updated_at": settings.updated_at.isoformat() if settings.updated_at else None,
        }

        try:
            self._state_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self._state_file, "w") as f:
                json.dump(state, f, indent=2)
        except OSError as e:
            raise DataAccessError(
                f"Failed to write halt state to {self._state_file}: {e}",
                store="system_halt",
            ) from e

        logger.debug("Halt state saved to %s", self._state_file)
        return settings
