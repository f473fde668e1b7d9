"""Order model: one row per trigger order leg submitted to Jupiter."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON, Text


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    EXECUTED = "EXECUTED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


TERMINAL_STATUSES = frozenset({OrderStatus.EXECUTED, OrderStatus.CANCELLED, OrderStatus.EXPIRED})


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    wallet_address: str = Field(index=True, max_length=44)
    order_account: str = Field(index=True, max_length=44)  # Jupiter order handle
    intent_id: str = Field(index=True)  # shared by the legs of one trade intent
    input_mint: str = Field(max_length=44)
    output_mint: str = Field(max_length=44)

    # Human-scale amounts (from_scaled_amount of the submitted integers)
    input_amount: Decimal = Field(max_digits=40, decimal_places=18)
    output_amount: Decimal = Field(max_digits=40, decimal_places=18)
    # Exact on-chain integers as submitted
    making_amount: str
    taking_amount: str

    entry_price: Decimal = Field(max_digits=40, decimal_places=18)
    take_profit_price: Decimal | None = Field(default=None, max_digits=40, decimal_places=18)
    stop_loss_price: Decimal | None = Field(default=None, max_digits=40, decimal_places=18)

    order_type: str  # "BUY", "TAKE_PROFIT", "STOP_LOSS"
    status: str = Field(default=OrderStatus.PENDING.value, index=True)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime | None = None

    jupiter_request_id: str | None = Field(default=None, max_length=64)
    transaction: str | None = Field(default=None, sa_column=Column(Text))  # unsigned, base64
    transaction_signature: str | None = Field(default=None, sa_column=Column(Text))
    order_metadata: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
