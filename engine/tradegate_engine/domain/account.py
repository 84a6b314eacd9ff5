"""
Account domain model.

Account flags and risk limits are owned by the account-management
collaborator; the engine only reads them.
"""

from datetime import datetime

from pydantic import BaseModel, Field

# Limits applied when an account has not configured its own
DEFAULT_MAX_OPEN_POSITIONS = 10
DEFAULT_MAX_EXPOSURE = 1_000_000.0
DEFAULT_MAX_ORDERS_PER_MINUTE = 20


class RiskSettings(BaseModel):
    """Per-account risk limits. Unset limits fall back to the defaults."""

    max_open_positions: int | None = Field(default=None, ge=1)
    max_exposure: float | None = Field(default=None, gt=0)
    max_orders_per_minute: int | None = Field(default=None, ge=1)

    @property
    def effective_max_open_positions(self) -> int:
        return self.max_open_positions or DEFAULT_MAX_OPEN_POSITIONS

    @property
    def effective_max_exposure(self) -> float:
        return self.max_exposure or DEFAULT_MAX_EXPOSURE

    @property
    def effective_max_orders_per_minute(self) -> int:
        return self.max_orders_per_minute or DEFAULT_MAX_ORDERS_PER_MINUTE


class Account(BaseModel):
    """Trading account as seen by the risk gate."""

    account_id: str
    name: str | None = None
    is_active: bool = True
    is_paused: bool = False
    risk_settings: RiskSettings = Field(default_factory=RiskSettings)


class SystemSettings(BaseModel):
    """Platform-wide settings record holding the master kill switch."""

    master_kill_switch: bool = False
    reason: str | None = None
    updated_by: str | None = None
    updated_at: datetime | None = None
