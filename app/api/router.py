from fastapi import APIRouter, Depends, Request

from api.routes.system import router as system_router
from api.v1.router import router as v1_router
from infrastructure.logging import get_module_logger

logger = get_module_logger()
api_router = APIRouter()


def log_api_call(request: Request):
    """
    Log each versioned API call with the caller's identifying headers.
    Added as a router dependency so it runs before the route handler.
    """
    logger.debug(
        "api_endpoint_accessed",
        path=request.url.path,
        method=request.method,
        ip_address=request.client.host if request.client else "unknown",
        tenant_id=request.headers.get("x-tenant-id"),
        user_agent=request.headers.get("user-agent"),
        x_forwarded_for=request.headers.get("x-forwarded-for"),
    )


api_router.include_router(system_router)
api_router.include_router(
    v1_router, prefix="/api/v1", dependencies=[Depends(log_api_call)]
)
