"""
Risk Engine for pre-trade gating.

Every candidate order passes through RiskEngine.validate before anything is
persisted or sent to a broker. The engine only reads state.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from tradegate_engine.domain import Account, OrderRequest, utcnow
from tradegate_engine.execution.kill_switch import KillSwitch
from tradegate_engine.execution.models import RiskCheckResult
from tradegate_engine.interfaces.broker_adapter import BrokerAdapter
from tradegate_engine.interfaces.stores import OrderJournal, PositionLedger
from tradegate_engine.logging import get_logger

logger = get_logger(__name__)

RiskCheck = Callable[[Account, OrderRequest], Awaitable[RiskCheckResult]]


def _format_amount(value: float) -> str:
    return f"{value:.0f}" if value == int(value) else f"{value:.2f}"


class RiskEngine:
    """
    Hard gate for all candidate orders.

    Validates, in order, stopping at the first denial:
    - Kill switches (master, account paused, account inactive)
    - Order rate over a sliding window
    - Open position count (new symbols only)
    - Total exposure including the candidate notional
    """

    def __init__(
        self,
        kill_switch: KillSwitch,
        order_journal: OrderJournal,
        position_ledger: PositionLedger,
        price_source: BrokerAdapter | None = None,
        window_s: int = 60,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize risk engine.

        Args:
            kill_switch: Safety-flag gate
            order_journal: Order history for the rate limit
            position_ledger: Open positions for count and exposure limits
            price_source: Quote source for pricing market orders
            window_s: Rate limit window in seconds
            clock: Time source (injectable for tests)
        """
        self._kill_switch = kill_switch
        self._order_journal = order_journal
        self._position_ledger = position_ledger
        self._price_source = price_source
        self._window = timedelta(seconds=window_s)
        self._clock = clock

        self._checks: list[tuple[str, RiskCheck]] = [
            ("kill_switch", self._kill_switch.check),
            ("rate_limit", self._check_rate_limit),
            ("position_count", self._check_position_count),
            ("exposure", self._check_exposure),
        ]

    @property
    def check_names(self) -> list[str]:
        """Names of the checks in evaluation order."""
        return [name for name, _ in self._checks]

    async def validate(self, account: Account, request: OrderRequest) -> RiskCheckResult:
        """
        Run all checks against a candidate order.

        Args:
            account: Account placing the order
            request: Candidate order

        Returns:
            First denial, or an admission carrying the price used for exposure

        Raises:
            DataAccessError: a store could not answer (nothing is admitted)
        """
        result = RiskCheckResult.admit()
        for name, check in self._checks:
            result = await check(account, request)
            if not result.allowed:
                logger.info(
                    "Risk check '%s' denied %s %d %s for %s: %s",
                    name,
                    request.side.value,
                    request.quantity,
                    request.symbol,
                    account.account_id,
                    result.reason,
                )
                return result

        logger.debug(
            "Order %s %s admitted for %s",
            request.side.value,
            request.symbol,
            account.account_id,
        )
        return result

    async def _check_rate_limit(self, account: Account, request: OrderRequest) -> RiskCheckResult:
        limit = account.risk_settings.effective_max_orders_per_minute
        since = self._clock() - self._window
        recent = await self._order_journal.count_since(account.account_id, since)
        if recent >= limit:
            return RiskCheckResult.deny(
                "RATE_LIMIT",
                f"Order rate limit exceeded ({limit}/min)",
            )
        return RiskCheckResult.admit()

    async def _check_position_count(
        self, account: Account, request: OrderRequest
    ) -> RiskCheckResult:
        limit = account.risk_settings.effective_max_open_positions
        positions = await self._position_ledger.find_all(account.account_id)

        # Existing symbols are exempt regardless of side
        if any(p.symbol == request.symbol for p in positions):
            return RiskCheckResult.admit()

        if len(positions) >= limit:
            return RiskCheckResult.deny(
                "MAX_POSITIONS",
                f"Max open positions limit reached ({limit})",
            )
        return RiskCheckResult.admit()

    async def _reference_price(self, request: OrderRequest) -> float:
        if request.price:
            return request.price
        if self._price_source is None:
            return 0.0
        quote = await self._price_source.get_last_traded_price(
            request.exchange.value, request.symbol, request.security_id
        )
        return quote.price

    async def _check_exposure(self, account: Account, request: OrderRequest) -> RiskCheckResult:
        limit = account.risk_settings.effective_max_exposure
        positions = await self._position_ledger.find_all(account.account_id)
        current_exposure = sum(p.exposure for p in positions)

        price = await self._reference_price(request)
        if price <= 0:
            return RiskCheckResult.deny(
                "NO_PRICE",
                f"Unable to price {request.symbol} for exposure check",
            )

        candidate = price * request.quantity
        if current_exposure + candidate > limit:
            return RiskCheckResult.deny(
                "MAX_EXPOSURE",
                f"Max exposure limit exceeded (Limit: {_format_amount(limit)})",
            )
        return RiskCheckResult.admit(reference_price=price)
