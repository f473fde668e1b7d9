"""System API: health check and expiry-sweep scheduler status."""

from fastapi import APIRouter, Request

from trigger_router.engine.scheduler import get_scheduler_status

router = APIRouter(prefix="/api/system", tags=["system"])


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.get("/scheduler")
def scheduler_status(request: Request):
    """Current scheduler state with job details."""
    return get_scheduler_status(getattr(request.app.state, "scheduler", None))
