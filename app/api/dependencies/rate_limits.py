from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

TENANT_HEADER = "X-Tenant-Id"


def tenant_or_remote_address(request: Request) -> str:
    """Throttle API callers per tenant when they identify one, else per client address."""
    tenant_id = request.headers.get(TENANT_HEADER)
    if tenant_id:
        return f"tenant:{tenant_id}"
    return get_remote_address(request)


limiter = Limiter(key_func=tenant_or_remote_address)


async def rate_limit_handler(_request: Request, exc: Exception):
    """Return a 429 with a short message when an API route limit is hit."""
    if isinstance(exc, RateLimitExceeded):
        return JSONResponse(
            status_code=429,
            content={"message": "Rate limit exceeded", "limit": str(exc.detail)},
        )
    raise exc


def setup_rate_limiter(app: FastAPI):
    """
    Attach the API limiter to the application and register its 429 handler.

    This throttles HTTP callers of the API. Delivery throughput per tenant and
    channel is governed separately by the delivery engine's token buckets.
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)


def get_limiter():
    """
    Returns the limiter instance.
    """
    return limiter
