"""Pydantic schemas for the orders API and realtime events."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from trigger_router.config import settings
from trigger_router.models.order import OrderStatus
from trigger_router.services.order_calculator import (
    CalculatedOrder,
    CalculationRequest,
    OrderCalculationSet,
    OrderKind,
)

# Wire payloads use camelCase; snake_case is accepted too
CAMEL_CONFIG = {"alias_generator": to_camel, "populate_by_name": True}

MAX_EXPIRED_AT = 253_402_300_799


class CalculationRequestIn(BaseModel):
    current_price: Decimal
    buy_price: Decimal
    amount_to_sell: Decimal
    take_profit_price: Decimal | None = None
    stop_loss_price: Decimal | None = None
    input_decimals: int = Field(default_factory=lambda: settings.default_input_decimals)
    output_decimals: int = Field(default_factory=lambda: settings.default_output_decimals)

    model_config = CAMEL_CONFIG

    def to_request(self) -> CalculationRequest:
        return CalculationRequest(
            current_price=self.current_price,
            buy_price=self.buy_price,
            amount_to_sell=self.amount_to_sell,
            take_profit_price=self.take_profit_price,
            stop_loss_price=self.stop_loss_price,
            input_decimals=self.input_decimals,
            output_decimals=self.output_decimals,
        )


class TradeIntent(CalculationRequestIn):
    """A calculation request plus the token and wallet identities the legs carry."""

    input_mint: str = Field(min_length=1, max_length=44)
    output_mint: str = Field(min_length=1, max_length=44)
    maker: str = Field(min_length=1, max_length=44)
    payer: str | None = Field(default=None, max_length=44)
    # unix seconds, up to 9999-12-31T23:59:59Z
    expired_at: int | None = Field(default=None, ge=0, le=MAX_EXPIRED_AT)
    slippage_bps: int | None = Field(default=None, ge=0, le=10_000)

    @field_validator("input_mint", "output_mint", "maker")
    @classmethod
    def _trim_required_text(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must not be empty")
        return text

    @model_validator(mode="after")
    def _validate_route(self):
        if self.input_mint == self.output_mint:
            raise ValueError("input_mint and output_mint must differ")
        if not self.payer:
            self.payer = self.maker
        return self


# ---------------------------------------------------------------------------
# Calculation output
# ---------------------------------------------------------------------------

class CalculatedOrderRead(BaseModel):
    kind: OrderKind
    making_amount: str  # exact integer text
    taking_amount: str
    target_price: Decimal
    expected_output_amount: Decimal
    description: str

    model_config = CAMEL_CONFIG

    @classmethod
    def from_order(cls, order: CalculatedOrder) -> "CalculatedOrderRead":
        return cls(
            kind=order.kind,
            making_amount=str(order.making_amount),
            taking_amount=str(order.taking_amount),
            target_price=order.target_price,
            expected_output_amount=order.expected_output_amount,
            description=order.description,
        )


class OrderSummaryRead(BaseModel):
    total_orders: int
    total_input_amount: Decimal
    total_expected_output: Decimal
    risk_reward_ratio: Decimal | None = None

    model_config = {**CAMEL_CONFIG, "from_attributes": True}


class OrderCalculationRead(BaseModel):
    buy_order: CalculatedOrderRead
    take_profit_order: CalculatedOrderRead | None = None
    stop_loss_order: CalculatedOrderRead | None = None
    summary: OrderSummaryRead

    model_config = CAMEL_CONFIG

    @classmethod
    def from_calculation(cls, calc: OrderCalculationSet) -> "OrderCalculationRead":
        return cls(
            buy_order=CalculatedOrderRead.from_order(calc.buy_order),
            take_profit_order=(
                CalculatedOrderRead.from_order(calc.take_profit_order) if calc.take_profit_order else None
            ),
            stop_loss_order=(
                CalculatedOrderRead.from_order(calc.stop_loss_order) if calc.stop_loss_order else None
            ),
            summary=OrderSummaryRead.model_validate(calc.summary),
        )


# ---------------------------------------------------------------------------
# Persisted order metadata (schema-versioned)
# ---------------------------------------------------------------------------

class AdvisoryContext(BaseModel):
    confidence: float
    reasoning: str
    risk_level: str
    timeframe: str


class OrderMetadata(BaseModel):
    schema_version: Literal[1] = 1
    leg: OrderKind
    description: str
    target_price: Decimal
    expected_output_amount: Decimal
    source: Literal["manual", "advisory"] = "manual"
    advisory: AdvisoryContext | None = None


class OrderRead(BaseModel):
    id: str
    wallet_address: str
    order_account: str
    intent_id: str
    input_mint: str
    output_mint: str
    input_amount: Decimal
    output_amount: Decimal
    making_amount: str
    taking_amount: str
    entry_price: Decimal
    take_profit_price: Decimal | None
    stop_loss_price: Decimal | None
    order_type: OrderKind
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    expires_at: datetime | None
    jupiter_request_id: str | None
    transaction: str | None
    transaction_signature: str | None
    order_metadata: OrderMetadata | None

    model_config = {"from_attributes": True}


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    transaction_signature: str | None = None

    model_config = CAMEL_CONFIG


class ExecuteRequest(BaseModel):
    signed_transaction: str = Field(min_length=1)
    request_id: str = Field(min_length=1)

    model_config = CAMEL_CONFIG


# ---------------------------------------------------------------------------
# Gateway / placement output
# ---------------------------------------------------------------------------

class TriggerResultRead(BaseModel):
    success: bool
    order_handle: str | None = None
    transaction: str | None = None
    request_id: str | None = None
    signature: str | None = None
    status: str | None = None
    error: str | None = None

    model_config = {**CAMEL_CONFIG, "from_attributes": True}


class LegOutcomeRead(BaseModel):
    kind: OrderKind
    success: bool
    order_id: str | None = None
    order_account: str | None = None
    request_id: str | None = None
    transaction: str | None = None
    error: str | None = None

    model_config = {**CAMEL_CONFIG, "from_attributes": True}


class PlacementRead(BaseModel):
    success: bool
    intent_id: str
    calculation: OrderCalculationRead
    legs: list[LegOutcomeRead]

    model_config = CAMEL_CONFIG
