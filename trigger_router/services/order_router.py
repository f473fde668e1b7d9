"""Trade intent orchestration.

calculate → one gateway call per leg → persist the legs that were created.

Legs are submitted concurrently and fail independently. When some legs fail
the ones that succeeded are kept and reported; there is no rollback.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from trigger_router.models.order import Order, OrderStatus
from trigger_router.schemas.order import AdvisoryContext, OrderMetadata, TradeIntent
from trigger_router.services import order_calculator
from trigger_router.services.jupiter_client import JupiterTriggerClient, LegSubmission, TriggerOrderResult
from trigger_router.services.order_calculator import (
    CalculatedOrder,
    CalculationRequest,
    OrderCalculationSet,
    OrderKind,
)
from trigger_router.services.order_store import InvalidStatusTransition, OrderStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LegRoute:
    input_mint: str
    output_mint: str
    input_decimals: int
    output_decimals: int


@dataclass
class LegOutcome:
    kind: OrderKind
    success: bool
    order_id: str | None = None
    order_account: str | None = None
    request_id: str | None = None
    transaction: str | None = None
    error: str | None = None


@dataclass
class PlacementResult:
    intent_id: str
    calculation: OrderCalculationSet
    legs: list[LegOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(leg.success for leg in self.legs)

    @property
    def any_success(self) -> bool:
        return any(leg.success for leg in self.legs)


def leg_route(intent: TradeIntent, order: CalculatedOrder) -> LegRoute:
    """Entry legs trade input→output; exit legs trade the acquired token back."""
    if order.kind is OrderKind.BUY:
        return LegRoute(intent.input_mint, intent.output_mint, intent.input_decimals, intent.output_decimals)
    return LegRoute(intent.output_mint, intent.input_mint, intent.output_decimals, intent.input_decimals)


def build_submission(intent: TradeIntent, order: CalculatedOrder) -> LegSubmission:
    route = leg_route(intent, order)
    return LegSubmission(
        input_mint=route.input_mint,
        output_mint=route.output_mint,
        maker=intent.maker,
        payer=intent.payer or intent.maker,
        making_amount=str(order.making_amount),
        taking_amount=str(order.taking_amount),
        expired_at=intent.expired_at,
        slippage_bps=intent.slippage_bps,
    )


def build_record(
    intent: TradeIntent,
    intent_id: str,
    order: CalculatedOrder,
    result: TriggerOrderResult,
    source: str = "manual",
    advisory: AdvisoryContext | None = None,
) -> Order:
    route = leg_route(intent, order)
    metadata = OrderMetadata(
        leg=order.kind,
        description=order.description,
        target_price=order.target_price,
        expected_output_amount=order.expected_output_amount,
        source=source,
        advisory=advisory,
    )
    expires_at = (
        datetime.fromtimestamp(intent.expired_at, tz=timezone.utc) if intent.expired_at is not None else None
    )
    return Order(
        wallet_address=intent.maker,
        order_account=result.order_handle or "",
        intent_id=intent_id,
        input_mint=route.input_mint,
        output_mint=route.output_mint,
        input_amount=order_calculator.from_scaled_amount(order.making_amount, route.input_decimals),
        output_amount=order_calculator.from_scaled_amount(order.taking_amount, route.output_decimals),
        making_amount=str(order.making_amount),
        taking_amount=str(order.taking_amount),
        entry_price=intent.buy_price,
        take_profit_price=intent.take_profit_price,
        stop_loss_price=intent.stop_loss_price,
        order_type=order.kind.value,
        status=OrderStatus.PENDING.value,
        expires_at=expires_at,
        jupiter_request_id=result.request_id,
        transaction=result.transaction,
        order_metadata=metadata.model_dump(mode="json"),
    )


class OrderRouter:
    def __init__(self, gateway: JupiterTriggerClient, store: OrderStore):
        self.gateway = gateway
        self.store = store

    def calculate(self, request: CalculationRequest) -> OrderCalculationSet:
        return order_calculator.calculate(request)

    async def place(
        self,
        intent: TradeIntent,
        source: str = "manual",
        advisory: AdvisoryContext | None = None,
    ) -> PlacementResult:
        """Calculate and submit every leg of a trade intent.

        Invalid intents raise ``InvalidParameter`` before any gateway call.
        """
        calculation = self.calculate(intent.to_request())
        intent_id = str(uuid.uuid4())
        orders = list(calculation.orders())

        logger.info(
            f"[{intent_id}] Submitting {len(orders)} leg(s) for {intent.maker}: "
            f"{intent.amount_to_sell} {intent.input_mint} @ {intent.buy_price}"
        )
        results = await asyncio.gather(
            *(self.gateway.create_order(build_submission(intent, order)) for order in orders)
        )

        records = []
        outcomes = []
        for order, result in zip(orders, results):
            outcome = LegOutcome(
                kind=order.kind,
                success=result.success,
                order_account=result.order_handle,
                request_id=result.request_id,
                transaction=result.transaction,
                error=result.error,
            )
            outcomes.append(outcome)
            if result.success:
                record = build_record(intent, intent_id, order, result, source=source, advisory=advisory)
                records.append(record)
                outcome.order_id = record.id
            else:
                logger.warning(f"[{intent_id}] {order.kind.value} leg failed: {result.error}")

        if records:
            self.store.add_many(records)

        placement = PlacementResult(intent_id=intent_id, calculation=calculation, legs=outcomes)
        if not placement.success and placement.any_success:
            logger.warning(f"[{intent_id}] Partial placement; successful legs left standing")
        return placement

    async def cancel(self, order_id: str) -> TriggerOrderResult:
        """Ask the gateway for an unsigned cancel transaction for a stored order."""
        order = self.store.get(order_id)
        if order.status != OrderStatus.PENDING.value:
            raise InvalidStatusTransition(order_id, order.status, OrderStatus.CANCELLED.value)
        return await self.gateway.cancel_order(order.wallet_address, order.order_account)

    async def execute(self, signed_transaction: str, request_id: str) -> TriggerOrderResult:
        return await self.gateway.execute(signed_transaction, request_id)
