"""Suggestions API: advisory trade setups and their order calculations."""

from fastapi import APIRouter, Depends

from trigger_router.api.deps import get_advisory, get_order_router
from trigger_router.schemas.order import OrderCalculationRead
from trigger_router.schemas.suggestion import (
    SuggestedCalculationRead,
    SuggestionCalculateRequest,
    SuggestionRequest,
    SuggestionSetRead,
    TradingSuggestionRead,
)
from trigger_router.services.advisory import AdvisoryService, suggestion_to_request
from trigger_router.services.order_router import OrderRouter

router = APIRouter(prefix="/api/suggestions", tags=["suggestions"])


@router.post("", response_model=SuggestionSetRead)
async def get_suggestions(data: SuggestionRequest, advisory: AdvisoryService = Depends(get_advisory)):
    result = await advisory.generate_suggestions(
        data.token_mint,
        timeframe=data.timeframe,
        risk_level=data.risk_level,
        user_balance=data.user_balance,
    )
    return SuggestionSetRead.model_validate(result)


@router.post("/calculate", response_model=SuggestedCalculationRead)
async def calculate_suggestion(
    data: SuggestionCalculateRequest,
    advisory: AdvisoryService = Depends(get_advisory),
    order_router: OrderRouter = Depends(get_order_router),
):
    """Turn the top suggestion into a buy/take-profit/stop-loss calculation."""
    result = await advisory.generate_suggestions(
        data.token_mint,
        timeframe=data.timeframe,
        risk_level=data.risk_level,
        user_balance=data.user_balance,
    )
    suggestion = result.suggestions[0]
    request = suggestion_to_request(
        suggestion,
        result.current_price,
        amount_to_sell=data.amount_to_sell,
        input_decimals=data.input_decimals,
        output_decimals=data.output_decimals,
    )
    calc = order_router.calculate(request)
    return SuggestedCalculationRead(
        suggestion=TradingSuggestionRead.model_validate(suggestion),
        calculation=OrderCalculationRead.from_calculation(calc),
    )
