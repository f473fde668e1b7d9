"""Realtime API: named-event request/response over a WebSocket.

Clients send ``{"event": name, "data": {...}}``. Every request gets exactly one
reply ``{"event": reply_name, "success": bool, "data": ..., "error": str | None}``.
"""

import json
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field, ValidationError

from trigger_router.api.deps import clamp_limit
from trigger_router.api.orders import placement_read
from trigger_router.models.order import OrderStatus
from trigger_router.schemas.order import (
    CAMEL_CONFIG,
    CalculationRequestIn,
    ExecuteRequest,
    OrderCalculationRead,
    OrderRead,
    TradeIntent,
    TriggerResultRead,
)
from trigger_router.schemas.suggestion import PriceRead, SuggestionRequest, SuggestionSetRead
from trigger_router.services.order_store import OrderNotFound
from trigger_router.services.price_service import PriceLookupError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


class OrderRef(BaseModel):
    order_id: str = Field(min_length=1)

    model_config = CAMEL_CONFIG


class OrdersFilter(BaseModel):
    wallet_address: str | None = None
    status: OrderStatus | None = None
    intent_id: str | None = None
    limit: int | None = None

    model_config = CAMEL_CONFIG


class StatusChange(OrderRef):
    status: OrderStatus
    transaction_signature: str | None = None


class PriceRequest(BaseModel):
    mint: str = Field(min_length=1)
    vs_token: str | None = None
    extra_info: bool = False

    model_config = CAMEL_CONFIG


@dataclass
class Reply:
    success: bool
    data: object = None
    error: str | None = None


def _dump(model: BaseModel) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def _order_ref(data) -> OrderRef:
    # getOrderStatus also accepts the bare id string
    if isinstance(data, str):
        return OrderRef(order_id=data)
    return OrderRef.model_validate(data or {})


def _error_message(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        parts = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err["loc"])
            parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
        return "; ".join(parts)
    return str(exc)


# ---------------------------------------------------------------------------
# Event handlers
# ---------------------------------------------------------------------------

async def _calculate_orders(state, data) -> Reply:
    request = CalculationRequestIn.model_validate(data or {})
    calc = state.order_router.calculate(request.to_request())
    return Reply(True, _dump(OrderCalculationRead.from_calculation(calc)))


async def _create_order(state, data) -> Reply:
    intent = TradeIntent.model_validate(data or {})
    placement = await state.order_router.place(intent)
    errors = [f"{leg.kind.value}: {leg.error}" for leg in placement.legs if not leg.success]
    return Reply(placement.success, _dump(placement_read(placement)), "; ".join(errors) or None)


async def _get_order_status(state, data) -> Reply:
    order = state.store.get(_order_ref(data).order_id)
    return Reply(True, {"orderId": order.id, "status": order.status, "orderAccount": order.order_account})


async def _get_order(state, data) -> Reply:
    order = state.store.get(_order_ref(data).order_id)
    return Reply(True, OrderRead.model_validate(order).model_dump(mode="json"))


async def _get_orders(state, data) -> Reply:
    query = OrdersFilter.model_validate(data or {})
    orders = state.store.list_orders(
        wallet_address=query.wallet_address,
        status=query.status,
        intent_id=query.intent_id,
        limit=clamp_limit(query.limit),
    )
    return Reply(True, [OrderRead.model_validate(o).model_dump(mode="json") for o in orders])


async def _update_order_status(state, data) -> Reply:
    change = StatusChange.model_validate(data or {})
    order = state.store.update_status(
        change.order_id, change.status, transaction_signature=change.transaction_signature
    )
    return Reply(True, OrderRead.model_validate(order).model_dump(mode="json"))


async def _cancel_order(state, data) -> Reply:
    result = await state.order_router.cancel(_order_ref(data).order_id)
    return Reply(result.success, _dump(TriggerResultRead.model_validate(result)), result.error)


async def _execute_order(state, data) -> Reply:
    request = ExecuteRequest.model_validate(data or {})
    result = await state.order_router.execute(request.signed_transaction, request.request_id)
    return Reply(result.success, _dump(TriggerResultRead.model_validate(result)), result.error)


async def _get_price(state, data) -> Reply:
    request = PriceRequest.model_validate(data or {})
    quote = await state.price_service.get_price(
        request.mint, vs_token=request.vs_token, extra_info=request.extra_info
    )
    if quote is None:
        return Reply(False, error=f"No price available for {request.mint}")
    return Reply(True, _dump(PriceRead.model_validate(quote)))


async def _get_trading_suggestions(state, data) -> Reply:
    request = SuggestionRequest.model_validate(data or {})
    result = await state.advisory.generate_suggestions(
        request.token_mint,
        timeframe=request.timeframe,
        risk_level=request.risk_level,
        user_balance=request.user_balance,
    )
    return Reply(True, _dump(SuggestionSetRead.model_validate(result)))


Handler = Callable[[object, object], Awaitable[Reply]]

# request event -> (reply event, handler)
EVENTS: dict[str, tuple[str, Handler]] = {
    "calculateOrders": ("ordersCalculated", _calculate_orders),
    "createOrder": ("orderCreated", _create_order),
    "getOrderStatus": ("orderStatus", _get_order_status),
    "getOrderById": ("orderDetails", _get_order),
    "getOrders": ("ordersList", _get_orders),
    "updateOrderStatus": ("orderStatusUpdated", _update_order_status),
    "cancelOrder": ("orderCancelled", _cancel_order),
    "executeOrder": ("orderExecuted", _execute_order),
    "getPrice": ("priceQuote", _get_price),
    "getTradingSuggestions": ("tradingSuggestions", _get_trading_suggestions),
}


def _error_envelope(message: str) -> dict:
    return {"event": "error", "success": False, "data": None, "error": message}


async def dispatch(state, message) -> dict:
    """Route one decoded message to its handler and build the reply envelope."""
    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        return _error_envelope("Message must be an object with an 'event' name")

    event = message["event"]
    if event not in EVENTS:
        return _error_envelope(f"Unknown event: {event}")

    reply_event, handler = EVENTS[event]
    try:
        reply = await handler(state, message.get("data"))
    except (ValueError, OrderNotFound, PriceLookupError) as e:
        # Engine rejections, validation errors and lookups that miss go back verbatim
        reply = Reply(False, error=_error_message(e))
    except Exception as e:
        logger.error(f"Realtime event {event} failed: {e}", exc_info=True)
        reply = Reply(False, error=f"Internal error handling {event}")
    return {"event": reply_event, "success": reply.success, "data": reply.data, "error": reply.error}


@router.websocket("/ws")
async def realtime(websocket: WebSocket):
    await websocket.accept()
    client = websocket.client
    logger.info(f"Realtime client connected: {client}")
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json(_error_envelope("Invalid JSON"))
                continue
            await websocket.send_json(await dispatch(websocket.app.state, message))
    except WebSocketDisconnect:
        logger.info(f"Realtime client disconnected: {client}")
