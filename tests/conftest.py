"""Shared fixtures: in-memory order store and order factory."""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from trigger_router.database import create_db_engine
from trigger_router.models.order import Order
from trigger_router.services.order_store import OrderStore

WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
SOL = "So11111111111111111111111111111111111111112"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


@pytest.fixture
def store() -> OrderStore:
    store = OrderStore(create_db_engine("sqlite://"))
    store.create_tables()
    return store


@pytest.fixture
def make_order():
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(**overrides) -> Order:
        counter["n"] += 1
        fields = dict(
            wallet_address=WALLET,
            order_account=f"acct-{uuid.uuid4().hex[:12]}",
            intent_id=str(uuid.uuid4()),
            input_mint=SOL,
            output_mint=USDC,
            input_amount=Decimal("1"),
            output_amount=Decimal("95"),
            making_amount="1000000000",
            taking_amount="95000000",
            entry_price=Decimal("95"),
            order_type="BUY",
            created_at=base + timedelta(minutes=counter["n"]),
        )
        fields.update(overrides)
        return Order(**fields)

    return _make
