from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from api.dependencies.rate_limits import get_limiter
from infrastructure.logging import get_module_logger
from infrastructure.services import DeliveryEngineDep

logger = get_module_logger()
router = APIRouter(prefix="/admin", tags=["Admin"])
limiter = get_limiter()


@router.get("/breakers")
def get_breakers(engine: DeliveryEngineDep):
    """Get the state and counters of every provider circuit breaker."""
    return {
        "breakers": engine.breakers.get_status(),
        "open": engine.breakers.get_open_breakers(),
    }


@router.post("/breakers/{name}/reset")
@limiter.limit("10/minute")
def reset_breaker(
    request: Request,  # pylint: disable=unused-argument
    name: str,
    engine: DeliveryEngineDep,
):
    """Force a provider circuit breaker closed."""
    try:
        engine.breakers.reset_breaker(name)
    except KeyError as e:
        raise HTTPException(
            status_code=404, detail=f"Circuit breaker '{name}' not found"
        ) from e

    logger.warning("circuit_breaker_reset_requested", name=name)
    return engine.breakers.get_breaker(name).get_stats()


@router.get("/rate-limits")
def get_rate_limits(engine: DeliveryEngineDep):
    return engine.rate_limiter.get_stats()


@router.get("/stats")
def get_stats(
    engine: DeliveryEngineDep,
    tenant_id: Optional[str] = Query(None, min_length=1),
):
    """Notification counts per status with breaker and limiter snapshots.

    Args:
        tenant_id: Restrict notification counts to one tenant.
    """
    return engine.get_stats(tenant_id)


@router.post("/sweeps/pending")
@limiter.limit("10/minute")
def run_pending_sweep(
    request: Request,  # pylint: disable=unused-argument
    engine: DeliveryEngineDep,
    limit: Optional[int] = Query(None, ge=1, le=1000),
):
    """Run the pending sweep now instead of waiting for the scheduler."""
    return engine.run_pending_sweep(limit)


@router.post("/sweeps/retry")
@limiter.limit("10/minute")
def run_retry_sweep(
    request: Request,  # pylint: disable=unused-argument
    engine: DeliveryEngineDep,
    limit: Optional[int] = Query(None, ge=1, le=1000),
):
    return engine.run_retry_sweep(limit)


@router.get("/providers/health")
def get_provider_health(engine: DeliveryEngineDep):
    return engine.provider_health()
