"""Advisory trade suggestions.

Produces an entry / take-profit / stop-loss / size tuple from current market
data, optionally asking an LLM through OpenRouter. A suggestion only becomes
orders by being turned into an ordinary ``CalculationRequest``.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

import requests

from trigger_router.services.order_calculator import CalculationRequest
from trigger_router.services.price_service import PriceLookupError, PriceQuote, PriceService

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a professional cryptocurrency trading advisor. Provide concise, actionable "
    "trading suggestions based on market data. Always include specific price targets and "
    "risk management advice."
)

_RISK_MULTIPLIERS = {
    "conservative": Decimal("0.5"),
    "moderate": Decimal("1.0"),
    "aggressive": Decimal("1.5"),
}

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class TradingSuggestion:
    action: str  # "BUY", "SELL", "HOLD"
    confidence: float
    entry_price: Decimal
    take_profit_price: Decimal
    stop_loss_price: Decimal
    position_size: Decimal
    risk_reward_ratio: Decimal | None
    reasoning: str
    timeframe: str
    risk_level: str
    source: str = "default"  # "model" or "default"


@dataclass(frozen=True)
class MarketAnalysis:
    support: Decimal
    resistance: Decimal
    liquidity: str
    confidence_level: str
    spread_pct: Decimal | None = None


@dataclass(frozen=True)
class SuggestionSet:
    token_mint: str
    current_price: Decimal
    market_analysis: MarketAnalysis
    suggestions: list[TradingSuggestion] = field(default_factory=list)


def risk_reward(entry: Decimal, take_profit: Decimal, stop_loss: Decimal) -> Decimal | None:
    potential_loss = entry - stop_loss
    if potential_loss <= 0:
        return None
    return (take_profit - entry) / potential_loss


def default_suggestion(current_price: Decimal, timeframe: str, risk_level: str) -> TradingSuggestion:
    """Deterministic suggestion scaled by risk level."""
    m = _RISK_MULTIPLIERS[risk_level]
    entry = current_price
    take_profit = current_price * (1 + Decimal("0.05") * m)
    stop_loss = current_price * (1 - Decimal("0.03") * m)
    return TradingSuggestion(
        action="HOLD",
        confidence=0.6,
        entry_price=entry,
        take_profit_price=take_profit,
        stop_loss_price=stop_loss,
        position_size=Decimal("0.1") * m,
        risk_reward_ratio=risk_reward(entry, take_profit, stop_loss),
        reasoning="Default suggestion - monitor market conditions",
        timeframe=timeframe,
        risk_level=risk_level,
    )


def _decimal(value, fallback: Decimal) -> Decimal:
    if value in (None, ""):
        return fallback
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        return fallback
    return parsed if parsed.is_finite() and parsed > 0 else fallback


def parse_model_suggestion(
    text: str,
    current_price: Decimal,
    timeframe: str,
    risk_level: str,
) -> TradingSuggestion | None:
    """Pull the JSON object out of a model reply. None if there is no usable object."""
    match = _JSON_OBJECT_RE.search(text or "")
    if not match:
        return None
    try:
        raw = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(raw, dict):
        return None

    entry = _decimal(raw.get("entryPrice"), current_price)
    take_profit = _decimal(raw.get("takeProfitPrice"), current_price * Decimal("1.05"))
    stop_loss = _decimal(raw.get("stopLossPrice"), current_price * Decimal("0.95"))
    action = str(raw.get("action") or "HOLD").upper()
    if action not in ("BUY", "SELL", "HOLD"):
        action = "HOLD"
    try:
        confidence = float(raw.get("confidence") or 0.7)
    except (TypeError, ValueError):
        confidence = 0.7

    return TradingSuggestion(
        action=action,
        confidence=confidence,
        entry_price=entry,
        take_profit_price=take_profit,
        stop_loss_price=stop_loss,
        position_size=_decimal(raw.get("positionSize"), Decimal("0.1")),
        risk_reward_ratio=risk_reward(entry, take_profit, stop_loss),
        reasoning=str(raw.get("reasoning") or "AI-generated suggestion based on current market conditions"),
        timeframe=str(raw.get("timeframe") or timeframe),
        risk_level=risk_level,
        source="model",
    )


def analyze_market(quote: PriceQuote) -> MarketAnalysis:
    return MarketAnalysis(
        support=quote.price * Decimal("0.95"),
        resistance=quote.price * Decimal("1.05"),
        liquidity=quote.liquidity,
        confidence_level=quote.confidence_level or "medium",
        spread_pct=quote.spread_pct,
    )


def suggestion_to_request(
    suggestion: TradingSuggestion,
    current_price: Decimal,
    amount_to_sell: Decimal | None = None,
    input_decimals: int = 9,
    output_decimals: int = 6,
) -> CalculationRequest:
    """Feed a suggestion into the calculator like any other trade intent."""
    return CalculationRequest(
        current_price=current_price,
        buy_price=suggestion.entry_price,
        take_profit_price=suggestion.take_profit_price,
        stop_loss_price=suggestion.stop_loss_price,
        amount_to_sell=amount_to_sell if amount_to_sell is not None else suggestion.position_size,
        input_decimals=input_decimals,
        output_decimals=output_decimals,
    )


class AdvisoryService:
    def __init__(
        self,
        price_service: PriceService,
        api_key: str = "",
        url: str = "https://openrouter.ai/api/v1/chat/completions",
        model: str = "mistralai/mistral-small-3.2-24b-instruct:free",
        timeout: float = 30.0,
    ):
        self.price_service = price_service
        self.api_key = api_key
        self.url = url
        self.model = model
        self.timeout = timeout

    @staticmethod
    def build_prompt(quote: PriceQuote, timeframe: str, risk_level: str, user_balance: Decimal | None) -> str:
        market_data = (
            f"Current Price: ${quote.price:.2f}\n"
            f"Confidence Level: {quote.confidence_level or 'medium'}\n"
            f"Liquidity: {quote.liquidity}\n"
            f"Time: {datetime.now(timezone.utc).isoformat()}"
        )
        if quote.quoted_buy_price is not None and quote.quoted_sell_price is not None:
            market_data += (
                f"\nBuy Price: ${quote.quoted_buy_price:.2f}"
                f"\nSell Price: ${quote.quoted_sell_price:.2f}"
                f"\nSpread: {quote.spread_pct:.3f}%"
            )

        return f"""Based on the following market data, provide a trading suggestion:

{market_data}

Risk Level: {risk_level}
Timeframe: {timeframe}
User Balance: {user_balance if user_balance is not None else 'Not specified'}

Please provide a JSON response with the following structure:
{{
  "action": "BUY/SELL/HOLD",
  "confidence": 0.85,
  "entryPrice": 100.50,
  "takeProfitPrice": 110.55,
  "stopLossPrice": 95.48,
  "positionSize": 0.5,
  "reasoning": "Brief explanation of the suggestion",
  "timeframe": "4h"
}}

Focus on {risk_level} risk level. Be realistic with price targets and provide clear reasoning."""

    def _complete(self, prompt: str) -> str:
        resp = requests.post(
            self.url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
                "X-Title": "Trigger Order Router",
            },
            json={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "max_tokens": 500,
                "temperature": 0.7,
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()["choices"][0]["message"]["content"]

    async def _ask_model(self, prompt: str) -> str | None:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._complete, prompt)
        except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning(f"Advisory model call failed, using default suggestion: {e}")
            return None

    async def generate_suggestions(
        self,
        token_mint: str,
        timeframe: str = "4h",
        risk_level: str = "moderate",
        user_balance: Decimal | None = None,
    ) -> SuggestionSet:
        if risk_level not in _RISK_MULTIPLIERS:
            raise ValueError(f"risk_level must be one of: {', '.join(_RISK_MULTIPLIERS)}")

        quote = await self.price_service.get_price(token_mint, extra_info=True)
        if quote is None:
            raise PriceLookupError(f"No price available for {token_mint}")
        logger.info(f"Generating suggestions for {token_mint} at {quote.price} ({risk_level}, {timeframe})")

        suggestion = None
        if self.api_key:
            reply = await self._ask_model(self.build_prompt(quote, timeframe, risk_level, user_balance))
            if reply is not None:
                suggestion = parse_model_suggestion(reply, quote.price, timeframe, risk_level)
                if suggestion is None:
                    logger.warning("Advisory model reply had no usable JSON, using default suggestion")
        if suggestion is None:
            suggestion = default_suggestion(quote.price, timeframe, risk_level)

        return SuggestionSet(
            token_mint=token_mint,
            current_price=quote.price,
            market_analysis=analyze_market(quote),
            suggestions=[suggestion],
        )
