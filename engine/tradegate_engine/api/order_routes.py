"""
Order intake API routes.

Translates coordinator outcomes into HTTP responses:
- Risk denial -> 400 with the denial reason
- Broker rejection -> 201 with the rejected order
- DataAccessError -> 503 (risk decision could not be computed)
- ConfigurationError -> 500
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from tradegate_engine.config import (
    AppEnvironment,
    ConfigurationError,
    Settings,
    get_settings_dep,
    validate_startup,
)
from tradegate_engine.domain import (
    Account,
    ConnectivityStatus,
    Exchange,
    OrderRecord,
    OrderRequest,
    PositionRecord,
    PriceQuote,
    RiskSettings,
)
from tradegate_engine.execution.models import OrderStats, SubmissionDenied
from tradegate_engine.execution.service import ExecutionService, build_service
from tradegate_engine.interfaces.stores import DataAccessError
from tradegate_engine.logging import get_logger

router = APIRouter(tags=["Orders"])
logger = get_logger(__name__)

# Singleton execution service
_service: ExecutionService | None = None


def get_service(settings: Settings = Depends(get_settings_dep)) -> ExecutionService:
    """Get or create execution service singleton."""
    global _service
    # Recreate when tests point settings at a new data_dir
    if _service is None or _service.settings.data_dir != settings.data_dir:
        _service = build_service(settings)
    return _service


async def close_service() -> None:
    """Release broker resources held by the singleton."""
    global _service
    if _service is not None:
        await _service.close()
        _service = None


def _unavailable(e: DataAccessError) -> HTTPException:
    logger.error("Data access failure (%s): %s", e.store or "unknown", e)
    return HTTPException(status_code=503, detail=f"Risk state unavailable: {e}")


# =============================================================================
# Request/Response Models
# =============================================================================


class OrderSubmission(OrderRequest):
    """Order intake body: candidate order plus owning account."""

    account_id: str = Field(min_length=1)


class AccountUpsertRequest(BaseModel):
    """Register or replace an account's flags and limits."""

    name: str | None = None
    is_active: bool = True
    is_paused: bool = False
    risk_settings: RiskSettings = Field(default_factory=RiskSettings)


class KillSwitchRequest(BaseModel):
    """Request to activate the master kill switch."""

    reason: str = "manual"
    actor: str = "admin"


class KillSwitchResponse(BaseModel):
    """Master kill switch state."""

    active: bool
    reason: str | None = None
    updated_by: str | None = None
    updated_at: str | None = None


class BrokerHealthResponse(ConnectivityStatus):
    """Connectivity probe plus LIVE configuration blockers."""

    requested_mode: str
    effective_mode: str
    blockers: list[str] = Field(default_factory=list)
    metrics: dict[str, Any] | None = None  # Live client latency and rate limiter


# =============================================================================
# Orders
# =============================================================================


@router.post("/orders", response_model=OrderRecord, status_code=201)
async def submit_order(
    submission: OrderSubmission,
    service: ExecutionService = Depends(get_service),
) -> OrderRecord:
    """
    Submit an order through the risk gate.

    Denied orders are not journaled and never reach the broker.
    """
    request = OrderRequest.model_validate(submission.model_dump(exclude={"account_id"}))
    try:
        outcome = await service.coordinator.submit(submission.account_id, request)
    except DataAccessError as e:
        raise _unavailable(e) from e

    if isinstance(outcome, SubmissionDenied):
        raise HTTPException(
            status_code=400,
            detail={"reason": outcome.reason, "reason_code": outcome.reason_code},
        )
    return outcome


@router.get("/orders", response_model=list[OrderRecord])
async def list_orders(
    account_id: str = Query(..., min_length=1),
    service: ExecutionService = Depends(get_service),
) -> list[OrderRecord]:
    """List an account's orders, newest first."""
    try:
        return await service.order_journal.list_for_account(account_id)
    except DataAccessError as e:
        raise _unavailable(e) from e


@router.get("/orders/stats/summary", response_model=OrderStats)
async def order_stats(
    account_id: str = Query(..., min_length=1),
    service: ExecutionService = Depends(get_service),
) -> OrderStats:
    """Order counts and average latency for an account."""
    try:
        return await service.coordinator.order_stats(account_id)
    except DataAccessError as e:
        raise _unavailable(e) from e


@router.get("/positions", response_model=list[PositionRecord])
async def list_positions(
    account_id: str = Query(..., min_length=1),
    service: ExecutionService = Depends(get_service),
) -> list[PositionRecord]:
    """List an account's open positions."""
    try:
        return await service.position_ledger.find_all(account_id)
    except DataAccessError as e:
        raise _unavailable(e) from e


# =============================================================================
# Accounts
# =============================================================================


@router.put("/accounts/{account_id}", response_model=Account)
async def upsert_account(
    account_id: str,
    body: AccountUpsertRequest,
    service: ExecutionService = Depends(get_service),
) -> Account:
    """Register or replace an account."""
    account = Account(account_id=account_id, **body.model_dump())
    service.accounts.add(account)
    logger.info(
        "Account %s registered (active=%s, paused=%s)",
        account_id,
        account.is_active,
        account.is_paused,
    )
    return account


async def _set_paused(service: ExecutionService, account_id: str, paused: bool) -> Account:
    try:
        service.accounts.set_paused(account_id, paused)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Account {account_id} not found") from e
    logger.warning("Account %s %s", account_id, "PAUSED" if paused else "resumed")
    account = await service.accounts.get_account(account_id)
    if account is None:
        raise HTTPException(status_code=404, detail=f"Account {account_id} not found")
    return account


@router.post("/accounts/{account_id}/pause", response_model=Account)
async def pause_account(
    account_id: str,
    service: ExecutionService = Depends(get_service),
) -> Account:
    """Activate the account kill switch."""
    return await _set_paused(service, account_id, True)


@router.post("/accounts/{account_id}/resume", response_model=Account)
async def resume_account(
    account_id: str,
    service: ExecutionService = Depends(get_service),
) -> Account:
    """Reset the account kill switch."""
    return await _set_paused(service, account_id, False)


# =============================================================================
# Master Kill Switch
# =============================================================================


def _kill_switch_response(state: dict[str, Any]) -> KillSwitchResponse:
    return KillSwitchResponse(**state)


@router.get("/system/kill-switch", response_model=KillSwitchResponse)
async def get_kill_switch(service: ExecutionService = Depends(get_service)) -> KillSwitchResponse:
    """Get master kill switch state."""
    try:
        return _kill_switch_response(await service.kill_switch.get_state())
    except DataAccessError as e:
        raise _unavailable(e) from e


@router.post("/system/kill-switch/activate", response_model=KillSwitchResponse)
async def activate_kill_switch(
    request: KillSwitchRequest,
    service: ExecutionService = Depends(get_service),
) -> KillSwitchResponse:
    """
    Activate the master kill switch.

    Blocks every new order for every account until reset.
    """
    try:
        await service.kill_switch.activate(reason=request.reason, activated_by=request.actor)
        return _kill_switch_response(await service.kill_switch.get_state())
    except DataAccessError as e:
        raise _unavailable(e) from e


@router.post("/system/kill-switch/reset", response_model=KillSwitchResponse)
async def reset_kill_switch(
    actor: str = Query(default="admin"),
    service: ExecutionService = Depends(get_service),
) -> KillSwitchResponse:
    """Reset the master kill switch (re-enable trading)."""
    try:
        await service.kill_switch.reset(reset_by=actor)
        return _kill_switch_response(await service.kill_switch.get_state())
    except DataAccessError as e:
        raise _unavailable(e) from e


# =============================================================================
# Broker
# =============================================================================


@router.get("/broker/health", response_model=BrokerHealthResponse)
async def broker_health(
    settings: Settings = Depends(get_settings_dep),
    service: ExecutionService = Depends(get_service),
) -> BrokerHealthResponse:
    """
    Probe broker connectivity.

    Returns 500 when LIVE is requested without credentials in production.
    """
    try:
        blockers = validate_startup(settings, strict=settings.env == AppEnvironment.PRODUCTION)
    except ConfigurationError as e:
        raise HTTPException(
            status_code=500,
            detail={"error": str(e), "blockers": e.blockers},
        ) from e

    status = await service.broker.check_connectivity()
    return BrokerHealthResponse(
        **status.model_dump(),
        requested_mode=settings.mode.value,
        effective_mode=settings.effective_mode.value,
        blockers=blockers,
        metrics=service.broker.metrics,
    )


@router.get("/market/ltp/{symbol}", response_model=PriceQuote)
async def last_traded_price(
    symbol: str,
    exchange: Exchange | None = Query(default=None),
    security_id: str | None = Query(default=None),
    settings: Settings = Depends(get_settings_dep),
    service: ExecutionService = Depends(get_service),
) -> PriceQuote:
    """Last traded price for a symbol (0 when unavailable)."""
    exchange_code = exchange.value if exchange else settings.default_exchange
    return await service.broker.get_last_traded_price(exchange_code, symbol, security_id)
