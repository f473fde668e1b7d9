"""Tests for the order calculation engine: validation, scaling and leg construction."""

from decimal import Decimal

import pytest

from trigger_router.services import order_calculator
from trigger_router.services.order_calculator import (
    CalculationRequest,
    InconsistentTargets,
    InvalidAmount,
    InvalidDecimals,
    InvalidParameter,
    InvalidStopLoss,
    InvalidTakeProfit,
    OrderKind,
    calculate,
    calculate_stop_loss_order,
    calculate_take_profit_order,
    from_scaled_amount,
    to_scaled_amount,
)


def _request(**overrides) -> CalculationRequest:
    params = dict(
        current_price="100",
        buy_price="95",
        take_profit_price="110",
        stop_loss_price="85",
        amount_to_sell="1",
        input_decimals=9,
        output_decimals=6,
    )
    params.update(overrides)
    return CalculationRequest(**params)


# ---------------------------------------------------------------------------
# 1. Worked scenario
# ---------------------------------------------------------------------------

class TestFullScenario:
    def test_buy_leg(self):
        calc = calculate(_request())
        buy = calc.buy_order
        assert buy.kind is OrderKind.BUY
        assert buy.making_amount == 1_000_000_000
        assert buy.taking_amount == 95_000_000
        assert buy.target_price == Decimal("95")
        assert buy.expected_output_amount == Decimal("95")
        assert buy.description == "Buy 1 tokens at 95 price"

    def test_take_profit_leg(self):
        tp = calculate(_request()).take_profit_order
        assert tp.kind is OrderKind.TAKE_PROFIT
        assert tp.making_amount == 95_000_000
        assert tp.taking_amount == 10_450 * 10**9
        assert tp.expected_output_amount == Decimal("10450")
        assert tp.description == "Sell 95.000000 tokens at 110 price (take profit)"

    def test_stop_loss_leg(self):
        sl = calculate(_request()).stop_loss_order
        assert sl.kind is OrderKind.STOP_LOSS
        assert sl.making_amount == 95_000_000
        assert sl.taking_amount == 8_075 * 10**9
        assert sl.expected_output_amount == Decimal("8075")
        assert "(stop loss)" in sl.description

    def test_summary(self):
        summary = calculate(_request()).summary
        assert summary.total_orders == 3
        assert summary.total_input_amount == Decimal("1")
        assert summary.total_expected_output == Decimal("95")
        assert summary.risk_reward_ratio == Decimal("1.5")

    def test_orders_entry_first(self):
        kinds = [o.kind for o in calculate(_request()).orders()]
        assert kinds == [OrderKind.BUY, OrderKind.TAKE_PROFIT, OrderKind.STOP_LOSS]


class TestOptionalLegs:
    def test_buy_only(self):
        calc = calculate(_request(take_profit_price=None, stop_loss_price=None))
        assert calc.take_profit_order is None
        assert calc.stop_loss_order is None
        assert calc.summary.total_orders == 1
        assert calc.summary.risk_reward_ratio is None

    def test_take_profit_without_stop_loss_has_no_ratio(self):
        calc = calculate(_request(stop_loss_price=None))
        assert calc.summary.total_orders == 2
        assert calc.summary.risk_reward_ratio is None

    def test_exit_leg_helpers_require_price(self):
        with pytest.raises(ValueError, match="Take profit price is required"):
            calculate_take_profit_order(_request(take_profit_price=None))
        with pytest.raises(ValueError, match="Stop loss price is required"):
            calculate_stop_loss_order(_request(stop_loss_price=None))

    def test_summary_uses_request_input_decimals(self):
        calc = calculate(_request(amount_to_sell="2.5", input_decimals=6, output_decimals=6))
        assert calc.buy_order.making_amount == 2_500_000
        assert calc.summary.total_input_amount == Decimal("2.5")


# ---------------------------------------------------------------------------
# 2. Validation
# ---------------------------------------------------------------------------

class TestValidation:
    def test_stop_loss_above_buy_rejected(self):
        with pytest.raises(InvalidStopLoss) as exc:
            calculate(_request(stop_loss_price="96"))
        assert str(exc.value) == "Stop loss price must be less than buy price"
        assert exc.value.field == "stop_loss_price"

    def test_take_profit_at_buy_rejected(self):
        with pytest.raises(InvalidTakeProfit, match="Take profit price must be greater than buy price"):
            calculate(_request(take_profit_price="95"))

    @pytest.mark.parametrize("field,message", [
        ("amount_to_sell", "Amount to sell must be greater than 0"),
        ("buy_price", "Buy price must be greater than 0"),
        ("current_price", "Current price must be greater than 0"),
    ])
    def test_non_positive_amounts(self, field, message):
        with pytest.raises(InvalidAmount) as exc:
            calculate(_request(**{field: "0"}))
        assert str(exc.value) == message
        assert exc.value.rule == "positive"

    def test_amount_checked_before_take_profit(self):
        with pytest.raises(InvalidAmount, match="Amount to sell"):
            calculate(_request(amount_to_sell="0", take_profit_price="90"))

    def test_buy_price_checked_before_current_price(self):
        with pytest.raises(InvalidAmount, match="Buy price"):
            calculate(_request(buy_price="-1", current_price="0"))

    def test_take_profit_checked_before_stop_loss(self):
        with pytest.raises(InvalidTakeProfit):
            calculate(_request(take_profit_price="90", stop_loss_price="99"))

    def test_inconsistent_targets_error_type_exists(self):
        # TP > buy > SL makes TP <= SL unreachable through calculate; the type is still part of the taxonomy
        assert issubclass(InconsistentTargets, InvalidParameter)
        assert issubclass(InvalidParameter, ValueError)

    def test_non_finite_rejected(self):
        with pytest.raises(InvalidAmount):
            calculate(_request(amount_to_sell="Infinity"))
        with pytest.raises(InvalidAmount):
            calculate(_request(buy_price="NaN"))

    def test_unparseable_number_rejected(self):
        with pytest.raises(InvalidParameter) as exc:
            _request(buy_price="ninety")
        assert exc.value.rule == "decimal"

    @pytest.mark.parametrize("decimals", [-1, 19, 2.5, True])
    def test_bad_decimals_rejected(self, decimals):
        with pytest.raises(InvalidDecimals):
            calculate(_request(input_decimals=decimals))

    def test_zero_decimals_allowed(self):
        calc = calculate(_request(amount_to_sell="3", input_decimals=0, output_decimals=0))
        assert calc.buy_order.making_amount == 3
        assert calc.buy_order.taking_amount == 285


# ---------------------------------------------------------------------------
# 3. Fixed-point scaling
# ---------------------------------------------------------------------------

class TestScaling:
    def test_truncates_dust(self):
        assert to_scaled_amount(Decimal("1.2345678919"), 9) == 1_234_567_891
        assert to_scaled_amount(Decimal("0.0000009"), 6) == 0

    def test_float_input_uses_shortest_repr(self):
        assert to_scaled_amount(0.1, 9) == 100_000_000

    def test_negative_rejected(self):
        with pytest.raises(InvalidAmount):
            to_scaled_amount(Decimal("-1"), 6)

    def test_round_trip_never_exceeds_input(self):
        for text in ("0.1", "1.999999999999", "123456.7890123", "0.000000001"):
            value = Decimal(text)
            for decimals in (0, 6, 9, 18):
                back = from_scaled_amount(to_scaled_amount(value, decimals), decimals)
                assert back <= value
                assert value - back < Decimal(1).scaleb(-decimals)

    def test_from_scaled_accepts_integer_text(self):
        assert from_scaled_amount("95000000", 6) == Decimal("95")

    @pytest.mark.parametrize("scaled", ["-5", "1.5", "", "１２"])
    def test_from_scaled_rejects_non_integer_text(self, scaled):
        with pytest.raises(InvalidParameter):
            from_scaled_amount(scaled, 6)

    def test_large_amounts_exact(self):
        calc = calculate(_request(amount_to_sell="123456789.123456789", buy_price="0.000001", current_price="1",
                                  take_profit_price=None, stop_loss_price=None, input_decimals=18))
        assert calc.buy_order.making_amount == 123456789123456789000000000


# ---------------------------------------------------------------------------
# 4. Properties
# ---------------------------------------------------------------------------

def test_exit_legs_flip_decimals():
    calc = calculate(_request(input_decimals=9, output_decimals=6))
    # buy takes output-token units, exit legs make them
    assert calc.buy_order.taking_amount == calc.take_profit_order.making_amount
    assert calc.stop_loss_order.making_amount == to_scaled_amount(Decimal("95"), 6)
    assert calc.take_profit_order.taking_amount == to_scaled_amount(Decimal("10450"), 9)


def test_risk_reward_positive_when_valid():
    for tp, sl in (("96", "94"), ("200", "1"), ("95.0001", "94.9999")):
        ratio = calculate(_request(take_profit_price=tp, stop_loss_price=sl)).summary.risk_reward_ratio
        assert ratio > 0


def test_calculate_is_idempotent():
    request = _request(amount_to_sell="0.333333333333", buy_price="17.17")
    assert calculate(request) == calculate(request)


def test_describe_order_kind_accepts_value():
    assert order_calculator.describe_order_kind("TAKE_PROFIT").startswith("Take profit order")
