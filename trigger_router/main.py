"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trigger_router.api import orders, prices, realtime, suggestions, system
from trigger_router.config import Settings, settings as default_settings
from trigger_router.database import create_db_engine
from trigger_router.engine.scheduler import build_scheduler, stop_scheduler
from trigger_router.services.advisory import AdvisoryService
from trigger_router.services.jupiter_client import JupiterTriggerClient
from trigger_router.services.order_calculator import InvalidParameter
from trigger_router.services.order_router import OrderRouter
from trigger_router.services.order_store import InvalidStatusTransition, OrderNotFound, OrderStore
from trigger_router.services.price_service import PriceLookupError, PriceService
from trigger_router.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    config: Settings = app.state.settings
    setup_logging(config.log_level)
    app.state.store.create_tables()

    if config.expiry_sweep_enabled:
        app.state.scheduler = build_scheduler(app.state.store, config.expiry_sweep_interval)
        app.state.scheduler.start()
        logger.info("Expiry sweep scheduler started")

    yield

    if app.state.scheduler is not None:
        stop_scheduler(app.state.scheduler)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

async def invalid_parameter_handler(request: Request, exc: InvalidParameter):
    return JSONResponse(status_code=422, content={"detail": str(exc), "field": exc.field, "rule": exc.rule})


async def order_not_found_handler(request: Request, exc: OrderNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def invalid_transition_handler(request: Request, exc: InvalidStatusTransition):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "current": exc.current, "requested": exc.requested},
    )


async def price_lookup_handler(request: Request, exc: PriceLookupError):
    logger.warning(f"Price lookup failed for {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": str(exc)})


async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def create_app(
    settings: Settings | None = None,
    *,
    store: OrderStore | None = None,
    gateway: JupiterTriggerClient | None = None,
    price_service: PriceService | None = None,
    advisory: AdvisoryService | None = None,
) -> FastAPI:
    """Build the application and its collaborators.

    Anything not supplied is constructed from ``settings``. The database engine
    is created here but no connection is opened until startup.
    """
    config = settings or default_settings
    store = store or OrderStore(create_db_engine(config.database_url))
    gateway = gateway or JupiterTriggerClient(
        config.jupiter_api_base_url,
        compute_unit_price=config.compute_unit_price,
        timeout=config.http_timeout_seconds,
        mock_mode=config.jupiter_mock_mode,
    )
    price_service = price_service or PriceService(config.price_api_url, timeout=config.http_timeout_seconds)
    advisory = advisory or AdvisoryService(
        price_service,
        api_key=config.openrouter_api_key,
        url=config.openrouter_url,
        model=config.openrouter_model,
    )

    app = FastAPI(
        title="Trigger Order Router",
        description="Entry, take-profit and stop-loss order calculation in front of the Jupiter Trigger API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.store = store
    app.state.gateway = gateway
    app.state.order_router = OrderRouter(gateway, store)
    app.state.price_service = price_service
    app.state.advisory = advisory
    app.state.scheduler = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InvalidParameter, invalid_parameter_handler)
    app.add_exception_handler(InvalidStatusTransition, invalid_transition_handler)
    app.add_exception_handler(OrderNotFound, order_not_found_handler)
    app.add_exception_handler(PriceLookupError, price_lookup_handler)
    app.add_exception_handler(ValueError, value_error_handler)

    # Mount routers
    app.include_router(orders.router)
    app.include_router(prices.router)
    app.include_router(suggestions.router)
    app.include_router(system.router)
    app.include_router(realtime.router)
    return app


app = create_app()
