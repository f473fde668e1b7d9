"""Tests for trade-intent placement: leg routing, persistence and partial failure."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from trigger_router.models.order import OrderStatus
from trigger_router.schemas.order import AdvisoryContext, OrderMetadata, TradeIntent
from trigger_router.services.jupiter_client import JupiterTriggerClient, TriggerOrderResult
from trigger_router.services.order_calculator import InvalidStopLoss, OrderKind
from trigger_router.services.order_router import OrderRouter, leg_route
from trigger_router.services.order_store import InvalidStatusTransition

SOL = "So11111111111111111111111111111111111111112"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
MAKER = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


def _intent(**overrides) -> TradeIntent:
    fields = dict(
        current_price="100",
        buy_price="95",
        take_profit_price="110",
        stop_loss_price="85",
        amount_to_sell="1",
        input_decimals=9,
        output_decimals=6,
        input_mint=SOL,
        output_mint=USDC,
        maker=MAKER,
    )
    fields.update(overrides)
    return TradeIntent(**fields)


def _gateway(results: list[TriggerOrderResult]) -> MagicMock:
    gateway = MagicMock(spec=JupiterTriggerClient)
    gateway.create_order = AsyncMock(side_effect=results)
    return gateway


def _ok(handle: str) -> TriggerOrderResult:
    return TriggerOrderResult(success=True, order_handle=handle, transaction="dHg=", request_id=f"req-{handle}")


# ---------------------------------------------------------------------------
# 1. Routing
# ---------------------------------------------------------------------------

class TestLegRoute:
    def test_buy_keeps_direction(self):
        intent = _intent()
        calc = OrderRouter(MagicMock(), MagicMock()).calculate(intent.to_request())
        route = leg_route(intent, calc.buy_order)
        assert (route.input_mint, route.output_mint) == (SOL, USDC)
        assert (route.input_decimals, route.output_decimals) == (9, 6)

    def test_exit_legs_swap_tokens_and_decimals(self):
        intent = _intent()
        calc = OrderRouter(MagicMock(), MagicMock()).calculate(intent.to_request())
        for order in (calc.take_profit_order, calc.stop_loss_order):
            route = leg_route(intent, order)
            assert (route.input_mint, route.output_mint) == (USDC, SOL)
            assert (route.input_decimals, route.output_decimals) == (6, 9)


# ---------------------------------------------------------------------------
# 2. Placement
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_place_all_legs(store):
    gateway = _gateway([_ok("buy"), _ok("tp"), _ok("sl")])
    placement = await OrderRouter(gateway, store).place(_intent())

    assert placement.success
    assert [leg.kind for leg in placement.legs] == [OrderKind.BUY, OrderKind.TAKE_PROFIT, OrderKind.STOP_LOSS]
    assert gateway.create_order.await_count == 3

    submissions = [c.args[0] for c in gateway.create_order.await_args_list]
    assert (submissions[0].input_mint, submissions[0].making_amount, submissions[0].taking_amount) == (
        SOL, "1000000000", "95000000",
    )
    assert (submissions[1].input_mint, submissions[1].making_amount, submissions[1].taking_amount) == (
        USDC, "95000000", "10450000000000",
    )
    assert submissions[2].output_mint == SOL
    assert all(s.payer == MAKER for s in submissions)

    stored = store.list_orders(intent_id=placement.intent_id)
    assert len(stored) == 3
    assert {o.status for o in stored} == {OrderStatus.PENDING.value}
    by_kind = {o.order_type: o for o in stored}
    assert by_kind["BUY"].order_account == "buy"
    assert by_kind["BUY"].input_amount == Decimal("1")
    assert by_kind["TAKE_PROFIT"].input_mint == USDC
    assert by_kind["TAKE_PROFIT"].input_amount == Decimal("95")
    assert by_kind["TAKE_PROFIT"].output_amount == Decimal("10450")


@pytest.mark.asyncio
async def test_place_stores_versioned_metadata(store):
    gateway = _gateway([_ok("buy")])
    advisory = AdvisoryContext(confidence=0.7, reasoning="trend", risk_level="moderate", timeframe="4h")
    placement = await OrderRouter(gateway, store).place(
        _intent(take_profit_price=None, stop_loss_price=None), source="advisory", advisory=advisory,
    )

    order = store.get(placement.legs[0].order_id)
    metadata = OrderMetadata.model_validate(order.order_metadata)
    assert metadata.schema_version == 1
    assert metadata.leg is OrderKind.BUY
    assert metadata.source == "advisory"
    assert metadata.advisory.reasoning == "trend"
    assert metadata.target_price == Decimal("95")


@pytest.mark.asyncio
async def test_partial_failure_keeps_successful_legs(store):
    failed = TriggerOrderResult(success=False, error="Jupiter API error: slippage")
    gateway = _gateway([_ok("buy"), failed, _ok("sl")])
    placement = await OrderRouter(gateway, store).place(_intent())

    assert placement.success is False
    assert placement.any_success is True
    tp_leg = placement.legs[1]
    assert tp_leg.success is False
    assert tp_leg.order_id is None
    assert tp_leg.error == "Jupiter API error: slippage"

    stored = store.list_orders(intent_id=placement.intent_id)
    assert sorted(o.order_type for o in stored) == ["BUY", "STOP_LOSS"]


@pytest.mark.asyncio
async def test_all_legs_failed_persists_nothing(store):
    failed = TriggerOrderResult(success=False, error="down")
    placement = await OrderRouter(_gateway([failed]), store).place(
        _intent(take_profit_price=None, stop_loss_price=None)
    )
    assert placement.any_success is False
    assert store.list_orders() == []


@pytest.mark.asyncio
async def test_rejected_intent_never_reaches_gateway(store):
    gateway = _gateway([])
    with pytest.raises(InvalidStopLoss):
        await OrderRouter(gateway, store).place(_intent(stop_loss_price="96"))
    gateway.create_order.assert_not_awaited()


@pytest.mark.asyncio
async def test_expiry_carried_to_record(store):
    gateway = _gateway([_ok("buy")])
    placement = await OrderRouter(gateway, store).place(
        _intent(take_profit_price=None, stop_loss_price=None, expired_at=1_900_000_000)
    )
    assert gateway.create_order.await_args.args[0].expired_at == 1_900_000_000
    assert store.get(placement.legs[0].order_id).expires_at is not None


def test_expiry_in_milliseconds_rejected():
    with pytest.raises(ValidationError, match="less than or equal to"):
        _intent(expired_at=1_760_000_000_000)


# ---------------------------------------------------------------------------
# 3. Cancel / execute
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cancel_pending_order(store, make_order):
    order = store.add(make_order(order_account="acct-7"))
    gateway = MagicMock(spec=JupiterTriggerClient)
    gateway.cancel_order = AsyncMock(return_value=TriggerOrderResult(success=True, order_handle="acct-7"))

    result = await OrderRouter(gateway, store).cancel(order.id)
    assert result.success
    gateway.cancel_order.assert_awaited_once_with(order.wallet_address, "acct-7")


@pytest.mark.asyncio
async def test_cancel_terminal_order_rejected(store, make_order):
    order = store.add(make_order())
    store.update_status(order.id, OrderStatus.EXECUTED)
    gateway = MagicMock(spec=JupiterTriggerClient)
    gateway.cancel_order = AsyncMock()

    with pytest.raises(InvalidStatusTransition):
        await OrderRouter(gateway, store).cancel(order.id)
    gateway.cancel_order.assert_not_awaited()


@pytest.mark.asyncio
async def test_execute_delegates(store):
    gateway = MagicMock(spec=JupiterTriggerClient)
    gateway.execute = AsyncMock(return_value=TriggerOrderResult(success=True, signature="sig"))
    result = await OrderRouter(gateway, store).execute("signed", "req")
    assert result.signature == "sig"
    gateway.execute.assert_awaited_once_with("signed", "req")
