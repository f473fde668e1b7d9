"""Persistence for submitted trigger orders."""

import logging
from datetime import datetime, timezone

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from trigger_router.database import create_db_and_tables
from trigger_router.models.order import Order, OrderStatus, TERMINAL_STATUSES

logger = logging.getLogger(__name__)


class OrderNotFound(LookupError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class InvalidStatusTransition(ValueError):
    def __init__(self, order_id: str, current: str, requested: str):
        self.order_id = order_id
        self.current = current
        self.requested = requested
        super().__init__(f"Order {order_id} is {current}; cannot move to {requested}")


class OrderStore:
    """Order records keyed by id, backed by an explicitly supplied engine."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def create_tables(self):
        create_db_and_tables(self.engine)

    def add_many(self, orders: list[Order]) -> list[Order]:
        with Session(self.engine) as session:
            for order in orders:
                session.add(order)
            session.commit()
            for order in orders:
                session.refresh(order)
        logger.info(f"Stored {len(orders)} order(s)")
        return orders

    def add(self, order: Order) -> Order:
        return self.add_many([order])[0]

    def get(self, order_id: str) -> Order:
        with Session(self.engine) as session:
            order = session.get(Order, order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def list_orders(
        self,
        wallet_address: str | None = None,
        status: OrderStatus | str | None = None,
        intent_id: str | None = None,
        limit: int = 50,
    ) -> list[Order]:
        """Most recent first, at most ``limit`` rows."""
        stmt = select(Order).order_by(Order.created_at.desc())
        if wallet_address is not None:
            stmt = stmt.where(Order.wallet_address == wallet_address)
        if status is not None:
            stmt = stmt.where(Order.status == OrderStatus(status).value)
        if intent_id is not None:
            stmt = stmt.where(Order.intent_id == intent_id)
        stmt = stmt.limit(limit)
        with Session(self.engine) as session:
            return list(session.exec(stmt).all())

    def update_status(
        self,
        order_id: str,
        status: OrderStatus | str,
        transaction_signature: str | None = None,
    ) -> Order:
        """Move a PENDING order to a terminal status."""
        new_status = OrderStatus(status)
        with Session(self.engine) as session:
            order = session.get(Order, order_id)
            if order is None:
                raise OrderNotFound(order_id)

            current = OrderStatus(order.status)
            if current == new_status and transaction_signature is None:
                return order
            if current in TERMINAL_STATUSES and current != new_status:
                raise InvalidStatusTransition(order_id, current.value, new_status.value)

            order.status = new_status.value
            if transaction_signature is not None:
                order.transaction_signature = transaction_signature
            order.updated_at = datetime.now(timezone.utc)
            session.add(order)
            session.commit()
            session.refresh(order)

        logger.info(f"Order {order_id}: {current.value} -> {new_status.value}")
        return order

    def expire_stale(self, now: datetime | None = None) -> int:
        """Mark PENDING orders past their expiry as EXPIRED. Returns the count."""
        now = now or datetime.now(timezone.utc)
        with Session(self.engine) as session:
            stale = session.exec(
                select(Order).where(
                    Order.status == OrderStatus.PENDING.value,
                    Order.expires_at.is_not(None),  # type: ignore[union-attr]
                    Order.expires_at <= now,
                )
            ).all()
            for order in stale:
                order.status = OrderStatus.EXPIRED.value
                order.updated_at = now
                session.add(order)
            session.commit()

        if stale:
            logger.info(f"Expired {len(stale)} stale order(s)")
        return len(stale)
