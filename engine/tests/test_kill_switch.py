"""
Tests for the kill switches and halt state persistence.
"""

import json
from pathlib import Path

import pytest

from tradegate_engine.domain import Account, OrderRequest, OrderSide
from tradegate_engine.execution.kill_switch import (
    ACCOUNT_INACTIVE_REASON,
    ACCOUNT_PAUSED_REASON,
    SYSTEM_HALTED_REASON,
    FileSystemHaltStore,
    KillSwitch,
)
from tradegate_engine.execution.ledger import AuditLedger
from tradegate_engine.execution.memory_store import InMemorySystemHaltStore
from tradegate_engine.interfaces.stores import DataAccessError

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def state_file(tmp_path: Path) -> Path:
    return tmp_path / "execution" / "system_halt.json"


@pytest.fixture
def halt_store(state_file: Path) -> FileSystemHaltStore:
    return FileSystemHaltStore(state_file)


@pytest.fixture
def ledger(tmp_path: Path) -> AuditLedger:
    return AuditLedger(tmp_path)


@pytest.fixture
def kill_switch(halt_store: FileSystemHaltStore, ledger: AuditLedger) -> KillSwitch:
    return KillSwitch(halt_store, ledger=ledger)


# =============================================================================
# Account Flag Tests
# =============================================================================


class TestAccountFlags:
    @pytest.mark.asyncio
    async def test_clear_account_admitted(self, kill_switch: KillSwitch) -> None:
        result = await kill_switch.check(Account(account_id="acct-1"))
        assert result.allowed

    @pytest.mark.asyncio
    async def test_reason_strings(self, kill_switch: KillSwitch) -> None:
        """Each flag has its own reason."""
        paused = await kill_switch.check(Account(account_id="a", is_paused=True))
        inactive = await kill_switch.check(Account(account_id="b", is_active=False))

        assert paused.reason == ACCOUNT_PAUSED_REASON
        assert inactive.reason == ACCOUNT_INACTIVE_REASON

        await kill_switch.activate(reason="test")
        halted = await kill_switch.check(Account(account_id="c"))
        assert halted.reason == SYSTEM_HALTED_REASON

    @pytest.mark.asyncio
    async def test_check_accepts_candidate_order(self, halt_store: FileSystemHaltStore) -> None:
        """The check can be called with the candidate order, as the risk engine does."""
        kill_switch = KillSwitch(halt_store)
        request = OrderRequest(symbol="SBIN", side=OrderSide.BUY, quantity=1, price=600.0)

        clear = await kill_switch.check(Account(account_id="a"), request)
        paused = await kill_switch.check(Account(account_id="b", is_paused=True), request)

        assert clear.allowed
        assert paused.reason_code == "ACCOUNT_PAUSED"


# =============================================================================
# Master Kill Switch Tests
# =============================================================================


class TestMasterKillSwitch:
    @pytest.mark.asyncio
    async def test_activate_and_reset(self, kill_switch: KillSwitch, ledger: AuditLedger) -> None:
        """Activation and reset are persisted and audited."""
        settings = await kill_switch.activate(reason="circuit breaker", activated_by="ops")

        assert settings.master_kill_switch
        assert settings.updated_by == "ops"
        state = await kill_switch.get_state()
        assert state["active"] is True
        assert state["reason"] == "circuit breaker"

        settings = await kill_switch.reset(reset_by="ops")

        assert not settings.master_kill_switch
        assert (await kill_switch.get_state())["active"] is False

        events = ledger.get_entries(entry_type="system_halt")
        assert [e.metadata["activated"] for e in events] == [True, False]

    @pytest.mark.asyncio
    async def test_duplicate_activation_is_noop(
        self, kill_switch: KillSwitch, ledger: AuditLedger
    ) -> None:
        """A second activation keeps the original reason."""
        await kill_switch.activate(reason="first")
        settings = await kill_switch.activate(reason="second")

        assert settings.reason == "first"
        assert len(ledger.get_entries(entry_type="system_halt")) == 1

    @pytest.mark.asyncio
    async def test_reset_when_inactive_is_noop(
        self, kill_switch: KillSwitch, ledger: AuditLedger
    ) -> None:
        settings = await kill_switch.reset()

        assert not settings.master_kill_switch
        assert ledger.get_entries(entry_type="system_halt") == []

    @pytest.mark.asyncio
    async def test_in_memory_store(self) -> None:
        """KillSwitch works without a ledger over the in-memory store."""
        kill_switch = KillSwitch(InMemorySystemHaltStore())

        await kill_switch.activate(reason="test")

        result = await kill_switch.check(Account(account_id="acct-1"))
        assert result.reason_code == "SYSTEM_HALTED"


# =============================================================================
# File Persistence Tests
# =============================================================================


class TestFileSystemHaltStore:
    @pytest.mark.asyncio
    async def test_missing_file_means_not_halted(self, halt_store: FileSystemHaltStore) -> None:
        assert not await halt_store.is_halted()

    @pytest.mark.asyncio
    async def test_state_survives_restart(self, state_file: Path) -> None:
        """A new store instance sees the persisted halt."""
        await FileSystemHaltStore(state_file).set_halt(True, reason="restart", updated_by="ops")

        restored = await FileSystemHaltStore(state_file).get_settings()

        assert restored.master_kill_switch
        assert restored.reason == "restart"
        assert restored.updated_at is not None
        assert restored.updated_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_external_change_seen_on_next_read(
        self, halt_store: FileSystemHaltStore, state_file: Path
    ) -> None:
        """The file is re-read on every call."""
        assert not await halt_store.is_halted()

        state_file.parent.mkdir(parents=True, exist_ok=True)
        state_file.write_text(json.dumps({"master_kill_switch": True, "reason": "external"}))

        assert await halt_store.is_halted()

    @pytest.mark.asyncio
    async def test_corrupt_file_raises_data_access_error(
        self, halt_store: FileSystemHaltStore, state_file: Path
    ) -> None:
        """Unreadable halt state is a fault, not 'not halted'."""
        state_file.parent.mkdir(parents=True, exist_ok=True)
        state_file.write_text("{not json")

        with pytest.raises(DataAccessError):
            await halt_store.is_halted()

    @pytest.mark.asyncio
    async def test_malformed_timestamp_raises_data_access_error(
        self, halt_store: FileSystemHaltStore, state_file: Path
    ) -> None:
        state_file.parent.mkdir(parents=True, exist_ok=True)
        state_file.write_text(json.dumps({"master_kill_switch": True, "updated_at": "yesterday"}))

        with pytest.raises(DataAccessError):
            await halt_store.get_settings()
