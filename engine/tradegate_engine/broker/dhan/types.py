"""
Pydantic models for the Dhan REST wire format.

Field aliases carry the broker's camelCase names; models are dumped with
by_alias=True when building request bodies.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class DhanTransactionType:
    BUY = "BUY"
    SELL = "SELL"


class DhanOrderType:
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class DhanOrderRequest(BaseModel):
    """Body of POST /orders."""

    model_config = ConfigDict(populate_by_name=True)

    client_id: str = Field(..., alias="clientId")
    correlation_id: str = Field(..., alias="correlationId")
    transaction_type: str = Field(..., alias="transactionType")
    exchange_segment: str = Field(..., alias="exchangeSegment")
    product_type: str = Field(..., alias="productType")
    order_type: str = Field(..., alias="orderType")
    validity: str = "DAY"
    security_id: str = Field(..., alias="securityId")
    quantity: int
    price: float = 0.0


class DhanOrderResponse(BaseModel):
    """Acknowledgment returned by POST /orders."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    status: str | None = None
    order_id: str | None = Field(default=None, alias="orderId")
    order_status: str | None = Field(default=None, alias="orderStatus")
    remarks: Any = None
    error_message: str | None = Field(
        default=None,
        validation_alias=AliasChoices("errorMessage", "message"),
    )

    @property
    def is_success(self) -> bool:
        return (self.status or "").lower() == "success"


class DhanFundLimits(BaseModel):
    """Subset of GET /fundlimit used by the connectivity probe."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    # Dhan spells the field "availabelBalance"
    available_balance: float | None = Field(
        default=None,
        validation_alias=AliasChoices("availabelBalance", "availableBalance"),
    )
    utilized_amount: float | None = Field(
        default=None,
        validation_alias=AliasChoices("utilizedAmount", "utilisedAmount"),
    )


class DhanInstrument(BaseModel):
    """Instrument reference in a market-feed request."""

    model_config = ConfigDict(populate_by_name=True)

    exchange_segment: str = Field(..., alias="exchangeSegment")
    security_id: str = Field(..., alias="securityId")
