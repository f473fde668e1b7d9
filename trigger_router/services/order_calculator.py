"""Order calculation engine.

Turns a trade intent into the buy / take-profit / stop-loss limit orders sent
to the trigger-order API. All functions are pure computation: no I/O, no
database access, no clock or randomness.

Amounts are handled as ``Decimal`` throughout and scaled to on-chain integer
units by truncation, so an order never asks for more of a token than the user
intended.
"""

from dataclasses import dataclass
from decimal import Context, Decimal, InvalidOperation, ROUND_FLOOR, localcontext
from enum import Enum
from typing import Iterator

from trigger_router.utils.constants import MAX_TOKEN_DECIMALS

DEFAULT_INPUT_DECIMALS = 9   # SOL
DEFAULT_OUTPUT_DECIMALS = 6  # USDC

# Wide enough that products of 18-decimal operands never round
_EXACT = Context(prec=78, rounding=ROUND_FLOOR)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class InvalidParameter(ValueError):
    """A calculation request that cannot produce sensible orders."""

    def __init__(self, field: str, rule: str, message: str):
        self.field = field
        self.rule = rule
        self.message = message
        super().__init__(message)


class InvalidAmount(InvalidParameter):
    pass


class InvalidTakeProfit(InvalidParameter):
    pass


class InvalidStopLoss(InvalidParameter):
    pass


class InconsistentTargets(InvalidParameter):
    pass


class InvalidDecimals(InvalidParameter):
    pass


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------

class OrderKind(str, Enum):
    BUY = "BUY"
    TAKE_PROFIT = "TAKE_PROFIT"
    STOP_LOSS = "STOP_LOSS"


def _to_decimal(value, field: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so floats keep their shortest repr instead of binary noise
        return Decimal(str(value))
    except InvalidOperation:
        raise InvalidParameter(field, "decimal", f"{field} must be a decimal number, got {value!r}")


@dataclass(frozen=True)
class CalculationRequest:
    current_price: Decimal
    buy_price: Decimal
    amount_to_sell: Decimal
    take_profit_price: Decimal | None = None
    stop_loss_price: Decimal | None = None
    input_decimals: int = DEFAULT_INPUT_DECIMALS
    output_decimals: int = DEFAULT_OUTPUT_DECIMALS

    def __post_init__(self):
        for name in ("current_price", "buy_price", "amount_to_sell"):
            object.__setattr__(self, name, _to_decimal(getattr(self, name), name))
        for name in ("take_profit_price", "stop_loss_price"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, _to_decimal(value, name))


@dataclass(frozen=True)
class CalculatedOrder:
    kind: OrderKind
    making_amount: int  # leg input, fixed-point units
    taking_amount: int  # leg output, fixed-point units
    target_price: Decimal
    expected_output_amount: Decimal
    description: str


@dataclass(frozen=True)
class OrderSummary:
    total_orders: int
    total_input_amount: Decimal
    total_expected_output: Decimal
    risk_reward_ratio: Decimal | None = None


@dataclass(frozen=True)
class OrderCalculationSet:
    buy_order: CalculatedOrder
    summary: OrderSummary
    take_profit_order: CalculatedOrder | None = None
    stop_loss_order: CalculatedOrder | None = None

    def orders(self) -> Iterator[CalculatedOrder]:
        """Present legs, entry first."""
        for order in (self.buy_order, self.take_profit_order, self.stop_loss_order):
            if order is not None:
                yield order


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _is_positive(value: Decimal) -> bool:
    return value.is_finite() and value > 0


def _check_decimals(decimals, field: str = "decimals"):
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise InvalidDecimals(field, "integer", f"{field} must be an integer, got {decimals!r}")
    if not 0 <= decimals <= MAX_TOKEN_DECIMALS:
        raise InvalidDecimals(
            field, "range", f"{field} must be between 0 and {MAX_TOKEN_DECIMALS}, got {decimals}"
        )


def validate(request: CalculationRequest) -> None:
    """Raise the first violated rule; checks run in a fixed order."""
    if not _is_positive(request.amount_to_sell):
        raise InvalidAmount("amount_to_sell", "positive", "Amount to sell must be greater than 0")

    if not _is_positive(request.buy_price):
        raise InvalidAmount("buy_price", "positive", "Buy price must be greater than 0")

    if not _is_positive(request.current_price):
        raise InvalidAmount("current_price", "positive", "Current price must be greater than 0")

    tp = request.take_profit_price
    sl = request.stop_loss_price

    if tp is not None and not (tp.is_finite() and tp > request.buy_price):
        raise InvalidTakeProfit(
            "take_profit_price", "above_buy_price", "Take profit price must be greater than buy price"
        )

    if sl is not None and not (sl.is_finite() and sl < request.buy_price):
        raise InvalidStopLoss(
            "stop_loss_price", "below_buy_price", "Stop loss price must be less than buy price"
        )

    if tp is not None and sl is not None and tp <= sl:
        raise InconsistentTargets(
            "take_profit_price",
            "above_stop_loss_price",
            "Take profit price must be greater than stop loss price",
        )

    _check_decimals(request.input_decimals, "input_decimals")
    _check_decimals(request.output_decimals, "output_decimals")


# ---------------------------------------------------------------------------
# Fixed-point scaling
# ---------------------------------------------------------------------------

def to_scaled_amount(amount, decimals: int) -> int:
    """floor(amount * 10^decimals), truncating sub-unit dust."""
    _check_decimals(decimals)
    value = _to_decimal(amount, "amount")
    if not value.is_finite() or value < 0:
        raise InvalidAmount("amount", "non_negative", f"amount must be a finite non-negative number, got {amount!r}")
    with localcontext(_EXACT):
        return int(value.scaleb(decimals).to_integral_value(rounding=ROUND_FLOOR))


def from_scaled_amount(scaled: int | str, decimals: int) -> Decimal:
    """Inverse of to_scaled_amount for display and aggregation."""
    _check_decimals(decimals)
    if isinstance(scaled, str):
        text = scaled.strip()
        if not (text.isascii() and text.isdigit()):
            raise InvalidParameter(
                "scaled_amount", "integer", f"scaled amount must be integer text, got {scaled!r}"
            )
        scaled = int(text)
    if isinstance(scaled, bool) or not isinstance(scaled, int) or scaled < 0:
        raise InvalidParameter(
            "scaled_amount", "non_negative", f"scaled amount must be a non-negative integer, got {scaled!r}"
        )
    with localcontext(_EXACT):
        return Decimal(scaled).scaleb(-decimals)


# ---------------------------------------------------------------------------
# Legs
# ---------------------------------------------------------------------------

def _multiply(a: Decimal, b: Decimal) -> Decimal:
    with localcontext(_EXACT):
        return a * b


def calculate_buy_order(request: CalculationRequest) -> CalculatedOrder:
    """Entry leg: sell amount_to_sell of the input token at buy_price."""
    expected_output = _multiply(request.amount_to_sell, request.buy_price)
    return CalculatedOrder(
        kind=OrderKind.BUY,
        making_amount=to_scaled_amount(request.amount_to_sell, request.input_decimals),
        taking_amount=to_scaled_amount(expected_output, request.output_decimals),
        target_price=request.buy_price,
        expected_output_amount=expected_output,
        description=f"Buy {request.amount_to_sell} tokens at {request.buy_price} price",
    )


def _calculate_exit_order(
    request: CalculationRequest,
    kind: OrderKind,
    target_price: Decimal,
    label: str,
) -> CalculatedOrder:
    # Exit legs sell what the entry leg acquires, so token and decimals flip.
    disposal_amount = _multiply(request.amount_to_sell, request.buy_price)
    expected_output = _multiply(disposal_amount, target_price)
    return CalculatedOrder(
        kind=kind,
        making_amount=to_scaled_amount(disposal_amount, request.output_decimals),
        taking_amount=to_scaled_amount(expected_output, request.input_decimals),
        target_price=target_price,
        expected_output_amount=expected_output,
        description=f"Sell {disposal_amount:.6f} tokens at {target_price} price ({label})",
    )


def calculate_take_profit_order(request: CalculationRequest) -> CalculatedOrder:
    if request.take_profit_price is None:
        raise ValueError("Take profit price is required for take profit order calculation")
    return _calculate_exit_order(request, OrderKind.TAKE_PROFIT, request.take_profit_price, "take profit")


def calculate_stop_loss_order(request: CalculationRequest) -> CalculatedOrder:
    if request.stop_loss_price is None:
        raise ValueError("Stop loss price is required for stop loss order calculation")
    return _calculate_exit_order(request, OrderKind.STOP_LOSS, request.stop_loss_price, "stop loss")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _summarize(
    request: CalculationRequest,
    buy_order: CalculatedOrder,
    take_profit_order: CalculatedOrder | None,
    stop_loss_order: CalculatedOrder | None,
) -> OrderSummary:
    legs = [o for o in (buy_order, take_profit_order, stop_loss_order) if o is not None]

    # Only the entry leg spends the original input token and yields the original output token
    total_input = Decimal(0)
    total_output = Decimal(0)
    with localcontext(_EXACT):
        for leg in legs:
            if leg.kind is OrderKind.BUY:
                total_input += from_scaled_amount(leg.making_amount, request.input_decimals)
                total_output += leg.expected_output_amount

        risk_reward = None
        if take_profit_order is not None and stop_loss_order is not None:
            potential_profit = take_profit_order.target_price - buy_order.target_price
            potential_loss = buy_order.target_price - stop_loss_order.target_price
            risk_reward = potential_profit / potential_loss

    return OrderSummary(
        total_orders=len(legs),
        total_input_amount=total_input,
        total_expected_output=total_output,
        risk_reward_ratio=risk_reward,
    )


def calculate(request: CalculationRequest) -> OrderCalculationSet:
    """Validate a request and compute every leg it asks for."""
    validate(request)

    buy_order = calculate_buy_order(request)
    take_profit_order = (
        calculate_take_profit_order(request) if request.take_profit_price is not None else None
    )
    stop_loss_order = (
        calculate_stop_loss_order(request) if request.stop_loss_price is not None else None
    )

    return OrderCalculationSet(
        buy_order=buy_order,
        take_profit_order=take_profit_order,
        stop_loss_order=stop_loss_order,
        summary=_summarize(request, buy_order, take_profit_order, stop_loss_order),
    )


_KIND_DESCRIPTIONS = {
    OrderKind.BUY: "Limit buy order - executes when price reaches or goes below target",
    OrderKind.TAKE_PROFIT: "Take profit order - sells tokens when price reaches target profit level",
    OrderKind.STOP_LOSS: "Stop loss order - sells tokens when price reaches target loss level",
}


def describe_order_kind(kind: OrderKind) -> str:
    return _KIND_DESCRIPTIONS[OrderKind(kind)]
