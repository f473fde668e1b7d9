"""Orders API: calculation, placement, listing, status and cancellation."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from trigger_router.api.deps import clamp_limit, get_order_router, get_store
from trigger_router.models.order import OrderStatus
from trigger_router.schemas.order import (
    CalculationRequestIn,
    ExecuteRequest,
    LegOutcomeRead,
    OrderCalculationRead,
    OrderRead,
    OrderStatusUpdate,
    PlacementRead,
    TradeIntent,
    TriggerResultRead,
)
from trigger_router.services.order_calculator import OrderKind, describe_order_kind
from trigger_router.services.order_router import OrderRouter, PlacementResult
from trigger_router.services.order_store import OrderStore

router = APIRouter(prefix="/api/orders", tags=["orders"])


def placement_read(placement: PlacementResult) -> PlacementRead:
    return PlacementRead(
        success=placement.success,
        intent_id=placement.intent_id,
        calculation=OrderCalculationRead.from_calculation(placement.calculation),
        legs=[LegOutcomeRead.model_validate(leg) for leg in placement.legs],
    )


def placement_status_code(placement: PlacementResult) -> int:
    if placement.success:
        return 201
    if placement.any_success:
        return 207
    return 502


@router.post("/calculate", response_model=OrderCalculationRead)
def calculate_orders(
    data: CalculationRequestIn,
    order_router: OrderRouter = Depends(get_order_router),
):
    """Preview the legs a trade intent would produce, without submitting anything."""
    calc = order_router.calculate(data.to_request())
    return OrderCalculationRead.from_calculation(calc)


@router.get("/types")
def order_types():
    return [{"kind": kind.value, "description": describe_order_kind(kind)} for kind in OrderKind]


@router.post("", response_model=PlacementRead, status_code=201)
async def create_orders(
    data: TradeIntent,
    order_router: OrderRouter = Depends(get_order_router),
):
    placement = await order_router.place(data)
    body = placement_read(placement)
    status_code = placement_status_code(placement)
    if status_code != 201:
        return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))
    return body


@router.get("", response_model=list[OrderRead])
def list_orders(
    wallet_address: str | None = None,
    status: OrderStatus | None = None,
    intent_id: str | None = None,
    limit: int | None = None,
    store: OrderStore = Depends(get_store),
):
    return store.list_orders(
        wallet_address=wallet_address,
        status=status,
        intent_id=intent_id,
        limit=clamp_limit(limit),
    )


@router.post("/execute", response_model=TriggerResultRead)
async def execute_transaction(
    data: ExecuteRequest,
    order_router: OrderRouter = Depends(get_order_router),
):
    """Submit a signed create/cancel transaction to Jupiter."""
    result = await order_router.execute(data.signed_transaction, data.request_id)
    body = TriggerResultRead.model_validate(result)
    if not result.success:
        return JSONResponse(status_code=502, content=body.model_dump(mode="json", by_alias=True))
    return body


@router.get("/{order_id}", response_model=OrderRead)
def get_order(order_id: str, store: OrderStore = Depends(get_store)):
    return store.get(order_id)


@router.put("/{order_id}/status", response_model=OrderRead)
def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    store: OrderStore = Depends(get_store),
):
    return store.update_status(order_id, data.status, transaction_signature=data.transaction_signature)


@router.post("/{order_id}/cancel", response_model=TriggerResultRead)
async def cancel_order(
    order_id: str,
    order_router: OrderRouter = Depends(get_order_router),
):
    """Return an unsigned cancel transaction for a pending order."""
    result = await order_router.cancel(order_id)
    body = TriggerResultRead.model_validate(result)
    if not result.success:
        return JSONResponse(status_code=502, content=body.model_dump(mode="json", by_alias=True))
    return body
