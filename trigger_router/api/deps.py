"""Shared API dependencies.

Collaborators are built once by ``create_app`` and live on ``app.state``.
"""

from fastapi import Request

from trigger_router.services.advisory import AdvisoryService
from trigger_router.services.order_router import OrderRouter
from trigger_router.services.order_store import OrderStore
from trigger_router.services.price_service import PriceService


def get_store(request: Request) -> OrderStore:
    return request.app.state.store


def get_order_router(request: Request) -> OrderRouter:
    return request.app.state.order_router


def get_price_service(request: Request) -> PriceService:
    return request.app.state.price_service


def get_advisory(request: Request) -> AdvisoryService:
    return request.app.state.advisory


def clamp_limit(limit: int | None) -> int:
    from trigger_router.config import settings

    if limit is None:
        return settings.order_list_default_limit
    return max(1, min(limit, settings.order_list_max_limit))
