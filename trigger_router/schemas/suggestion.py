"""Pydantic schemas for advisory suggestions."""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from trigger_router.config import settings
from trigger_router.schemas.order import CAMEL_CONFIG, OrderCalculationRead
from trigger_router.utils.constants import VALID_RISK_LEVELS


class SuggestionRequest(BaseModel):
    token_mint: str = Field(min_length=1, max_length=44)
    timeframe: str = "4h"
    risk_level: str = "moderate"
    user_balance: Decimal | None = Field(default=None, ge=0)

    model_config = CAMEL_CONFIG

    @field_validator("risk_level")
    @classmethod
    def _validate_risk_level(cls, value: str) -> str:
        level = value.strip().lower()
        if level not in VALID_RISK_LEVELS:
            allowed = ", ".join(VALID_RISK_LEVELS)
            raise ValueError(f"must be one of: {allowed}")
        return level


class SuggestionCalculateRequest(SuggestionRequest):
    amount_to_sell: Decimal | None = None  # defaults to the suggested position size
    input_decimals: int = Field(default_factory=lambda: settings.default_input_decimals)
    output_decimals: int = Field(default_factory=lambda: settings.default_output_decimals)


class TradingSuggestionRead(BaseModel):
    action: str
    confidence: float
    entry_price: Decimal
    take_profit_price: Decimal
    stop_loss_price: Decimal
    position_size: Decimal
    risk_reward_ratio: Decimal | None
    reasoning: str
    timeframe: str
    risk_level: str
    source: str

    model_config = {**CAMEL_CONFIG, "from_attributes": True}


class MarketAnalysisRead(BaseModel):
    support: Decimal
    resistance: Decimal
    liquidity: str
    confidence_level: str
    spread_pct: Decimal | None

    model_config = {**CAMEL_CONFIG, "from_attributes": True}


class SuggestionSetRead(BaseModel):
    token_mint: str
    current_price: Decimal
    market_analysis: MarketAnalysisRead
    suggestions: list[TradingSuggestionRead]

    model_config = {**CAMEL_CONFIG, "from_attributes": True}


class SuggestedCalculationRead(BaseModel):
    suggestion: TradingSuggestionRead
    calculation: OrderCalculationRead

    model_config = CAMEL_CONFIG


class PriceRead(BaseModel):
    mint: str
    price: Decimal
    vs_token: str | None
    confidence_level: str | None
    quoted_buy_price: Decimal | None
    quoted_sell_price: Decimal | None
    liquidity: str

    model_config = {**CAMEL_CONFIG, "from_attributes": True}
