"""
Async Dhan REST API client.

Handles header authentication, rate limiting and retries for idempotent
reads. Order placement is issued exactly once.
"""

import asyncio
import time
from logging import Logger
from typing import Any

import httpx
from pydantic import ValidationError

from tradegate_engine.broker.dhan.rate_limit import RateLimiter
from tradegate_engine.broker.dhan.redaction import redact_body, safe_log_request
from tradegate_engine.broker.dhan.types import (
    DhanFundLimits,
    DhanInstrument,
    DhanOrderRequest,
    DhanOrderResponse,
)
from tradegate_engine.config import Settings
from tradegate_engine.interfaces.broker_adapter import BrokerUnavailableError


LAST_PRICE_KEYS = ("last_price", "lastPrice", "LTP")


def _first_quote(node: Any) -> dict[str, Any]:
    """
    Find the first quote object in a market-feed payload.

    Dhan nests quotes as {segment: {security_id: quote}}; older payloads use
    a plain list of quotes.
    """
    for _ in range(5):
        if isinstance(node, list):
            node = node[0] if node else None
        elif isinstance(node, dict):
            if any(key in node for key in LAST_PRICE_KEYS):
                return node
            node = next(iter(node.values()), None)
        else:
            break
    raise KeyError("no quote in payload")


class DhanAPIError(BrokerUnavailableError):
    """Raised for non-success HTTP responses and malformed bodies."""

    def __init__(self, message: str, status_code: int | None = None, error_code: str | None = None):
        super().__init__(message, status_code=status_code)
        self.error_code = error_code


class DhanAuthError(DhanAPIError):
    """Raised when Dhan refuses the access token."""

    pass


class AsyncDhanClient:
    """
    Async client for the Dhan REST API.

    Handles:
    - access-token / client-id header authentication
    - Rate limiting with token bucket
    - Retry/backoff for transient errors on reads
    """

    def __init__(self, settings: Settings, logger: Logger) -> None:
        """
        Initialize Dhan client.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self._settings = settings
        self._logger = logger
        self._base_url = settings.dhan_base_url.rstrip("/")
        self._timeout = settings.broker_timeout_s
        self._max_retries = settings.broker_max_retries
        self._backoff_base_s = 0.5

        self._rate_limiter = RateLimiter(
            requests_per_second=settings.broker_rate_limit_rps,
            burst=settings.broker_rate_limit_burst,
        )

        self._client: httpx.AsyncClient | None = None

        # Latency tracking
        self._last_latency_ms: int = 0
        self._latency_history: list[int] = []
        self._max_history = 100

    @property
    def has_credentials(self) -> bool:
        """Check if client id and access token are configured."""
        return self._settings.has_broker_credentials

    @property
    def client_id(self) -> str:
        if self._settings.dhan_client_id is None:
            return ""
        return self._settings.dhan_client_id.get_secret_value()

    @property
    def metrics(self) -> dict[str, Any]:
        """Get broker connection metrics."""
        avg_latency = (
            sum(self._latency_history) / len(self._latency_history)
            if self._latency_history
            else 0
        )
        return {
            "last_request_latency_ms": self._last_latency_ms,
            "average_latency_ms": round(avg_latency, 1),
            "rate_limiter": self._rate_limiter.stats,
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _get_headers(self) -> dict[str, str]:
        """Get headers for every request."""
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "client-id": self.client_id,
        }
        if self._settings.dhan_access_token:
            headers["access-token"] = self._settings.dhan_access_token.get_secret_value()
        return headers

    def _record_latency(self, start_time: float) -> None:
        latency_ms = int((time.perf_counter() - start_time) * 1000)
        self._last_latency_ms = latency_ms
        self._latency_history.append(latency_ms)
        if len(self._latency_history) > self._max_history:
            self._latency_history.pop(0)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        max_retries: int | None = None,
    ) -> httpx.Response:
        """
        Make an HTTP request to the Dhan API with rate limiting and retries.

        Args:
            method: HTTP method
            path: API path (without base URL)
            json_body: JSON request body
            max_retries: Override retry count (0 for non-idempotent calls)

        Returns:
            HTTP response with a 2xx status

        Raises:
            DhanAuthError: 401/403
            DhanAPIError: other non-2xx statuses
            BrokerUnavailableError: transport failure after retries
        """
        url = f"{self._base_url}{path}"
        headers = self._get_headers()
        retries = self._max_retries if max_retries is None else max_retries

        self._logger.debug("Dhan request: %s", safe_log_request(method, url, headers, json_body))

        last_error: Exception | None = None
        for attempt in range(retries + 1):
            backoff = self._backoff_base_s * (2**attempt)
            try:
                wait_time = await self._rate_limiter.acquire()
                if wait_time > 0:
                    self._logger.debug("Rate limiter waited %.2fs", wait_time)

                client = await self._get_client()
                start_time = time.perf_counter()
                response = await client.request(method, url, headers=headers, json=json_body)
                self._record_latency(start_time)

                self._logger.debug("Dhan response: status=%d", response.status_code)

                if response.status_code in (401, 403):
                    raise DhanAuthError(
                        "Dhan rejected the access token",
                        status_code=response.status_code,
                    )

                if response.status_code == 429 or response.status_code >= 500:
                    last_error = DhanAPIError(
                        f"Dhan returned status {response.status_code}",
                        status_code=response.status_code,
                    )
                    if attempt < retries:
                        self._logger.warning(
                            "Dhan status %d, backing off %.1fs (attempt %d/%d)",
                            response.status_code,
                            backoff,
                            attempt + 1,
                            retries + 1,
                        )
                        await asyncio.sleep(backoff)
                    continue

                if response.status_code >= 400:
                    error_code = None
                    try:
                        payload = response.json()
                    except ValueError:
                        payload = None
                    if isinstance(payload, dict):
                        error_code = payload.get("errorCode")
                    raise DhanAPIError(
                        f"Dhan returned status {response.status_code}",
                        status_code=response.status_code,
                        error_code=error_code,
                    )

                return response

            except httpx.TimeoutException as e:
                last_error = e
                if attempt < retries:
                    self._logger.warning(
                        "Dhan request timeout, backing off %.1fs (attempt %d/%d)",
                        backoff,
                        attempt + 1,
                        retries + 1,
                    )
                    await asyncio.sleep(backoff)

            except httpx.RequestError as e:
                last_error = e
                if attempt < retries:
                    self._logger.warning(
                        "Dhan request error: %s, backing off %.1fs (attempt %d/%d)",
                        str(e),
                        backoff,
                        attempt + 1,
                        retries + 1,
                    )
                    await asyncio.sleep(backoff)

        if isinstance(last_error, DhanAPIError):
            raise last_error
        raise BrokerUnavailableError(
            f"Dhan request failed after {retries + 1} attempts: {last_error}"
        )

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise DhanAPIError(
                "Dhan returned a non-JSON body", status_code=response.status_code
            ) from e

    async def get_fund_limits(self) -> DhanFundLimits:
        """
        Get available and utilized margin.

        Returns:
            Fund limits for the configured client
        """
        response = await self._request("GET", "/fundlimit")
        data = self._json(response)
        if not isinstance(data, dict):
            raise DhanAPIError("Unexpected fund limit payload", status_code=response.status_code)
        try:
            return DhanFundLimits.model_validate(data)
        except ValidationError as e:
            raise DhanAPIError(
                f"Malformed fund limit payload: {redact_body(data)}",
                status_code=response.status_code,
            ) from e

    async def get_ltp(self, exchange_segment: str, security_id: str) -> float:
        """
        Get the last traded price of one instrument.

        Args:
            exchange_segment: Dhan exchange segment (e.g. "NSE_EQ")
            security_id: Dhan security id

        Returns:
            Last traded price

        Raises:
            DhanAPIError: response did not contain a price
        """
        instrument = DhanInstrument(exchange_segment=exchange_segment, security_id=security_id)
        body = {"instruments": [instrument.model_dump(by_alias=True)]}
        response = await self._request("POST", "/marketfeed/ltp", json_body=body)
        data = self._json(response)

        try:
            quote = _first_quote(data["data"])
            return float(next(quote[key] for key in LAST_PRICE_KEYS if key in quote))
        except (KeyError, TypeError, StopIteration, ValueError) as e:
            raise DhanAPIError(
                f"Quote response missing last price: {redact_body(data)}",
                status_code=response.status_code,
            ) from e

    async def place_order(self, request: DhanOrderRequest) -> DhanOrderResponse:
        """
        Place an order. Never retried.

        Args:
            request: Order in Dhan wire format

        Returns:
            Broker acknowledgment
        """
        body = request.model_dump(by_alias=True)

        self._logger.info(
            "Placing Dhan order: ref=%s %s %d security=%s",
            request.correlation_id,
            request.transaction_type,
            request.quantity,
            request.security_id,
        )

        response = await self._request("POST", "/orders", json_body=body, max_retries=0)
        data = self._json(response)
        if not isinstance(data, dict):
            raise DhanAPIError("Unexpected order payload", status_code=response.status_code)
        try:
            return DhanOrderResponse.model_validate(data)
        except ValidationError as e:
            raise DhanAPIError(
                f"Malformed order acknowledgment: {redact_body(data)}",
                status_code=response.status_code,
            ) from e
