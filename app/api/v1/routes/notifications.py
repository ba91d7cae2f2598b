from typing import List

from fastapi import APIRouter, HTTPException, Query, Request, status

from api.dependencies.rate_limits import get_limiter
from infrastructure.logging import bind_request_context, get_module_logger
from infrastructure.notifications import (
    BulkReadRequest,
    BulkReadResult,
    BulkSubmitRequest,
    BulkSubmitResult,
    InvalidStateTransitionError,
    Notification,
    NotificationNotFoundError,
    NotificationRequest,
    NotificationValidationError,
    PersistenceError,
)
from infrastructure.services import DeliveryEngineDep

logger = get_module_logger()
router = APIRouter(prefix="/notifications", tags=["Notifications"])
limiter = get_limiter()


@router.post("", status_code=status.HTTP_202_ACCEPTED, response_model=Notification)
@limiter.limit("600/minute")
def submit_notification(
    request: Request,
    payload: NotificationRequest,
    engine: DeliveryEngineDep,
):
    """Accept a notification for delivery.

    Due notifications are dispatched immediately; scheduled ones wait for the
    pending sweep. The response reflects the stored record at acceptance time.
    """
    with bind_request_context(
        tenant_id=payload.tenant_id,
        request_path=request.url.path,
        request_method=request.method,
    ):
        try:
            return engine.submit(payload)
        except NotificationValidationError as e:
            logger.warning("notification_rejected", field=e.field, error=str(e))
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"message": str(e), "field": e.field},
            ) from e
        except PersistenceError as e:
            logger.error("notification_persist_failed", error=str(e))
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Notification could not be stored",
            ) from e


@router.post(
    "/bulk", status_code=status.HTTP_202_ACCEPTED, response_model=BulkSubmitResult
)
@limiter.limit("60/minute")
def submit_bulk_notifications(
    request: Request,
    payload: BulkSubmitRequest,
    engine: DeliveryEngineDep,
):
    """Accept a batch of notifications.

    Each item is validated and stored on its own; rejected items are reported
    in ``results`` by position and do not fail the batch.
    """
    with bind_request_context(
        request_path=request.url.path, request_method=request.method
    ):
        return engine.submit_bulk(payload.notifications)


@router.get("", response_model=List[Notification])
@limiter.limit("120/minute")
def list_notifications(
    request: Request,  # pylint: disable=unused-argument
    engine: DeliveryEngineDep,
    tenant_id: str = Query(..., min_length=1),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """List a tenant's notifications, newest first."""
    return engine.list_notifications(tenant_id, limit=limit, offset=offset)


@router.get("/users/{user_id}", response_model=List[Notification])
@limiter.limit("120/minute")
def list_user_notifications(
    request: Request,  # pylint: disable=unused-argument
    user_id: str,
    engine: DeliveryEngineDep,
    tenant_id: str = Query(..., min_length=1),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """List one user's notifications within a tenant, newest first."""
    return engine.list_user_notifications(
        tenant_id, user_id, limit=limit, offset=offset
    )


@router.post("/read", response_model=BulkReadResult)
def mark_many_read(payload: BulkReadRequest, engine: DeliveryEngineDep):
    """Mark several notifications read, listing the ids that could not be."""
    return engine.mark_read_many(payload.notification_ids)


@router.get("/{notification_id}", response_model=Notification)
def get_notification(notification_id: str, engine: DeliveryEngineDep):
    try:
        return engine.get_notification(notification_id)
    except NotificationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post("/{notification_id}/delivered", response_model=Notification)
def mark_delivered(notification_id: str, engine: DeliveryEngineDep):
    """Record a delivery receipt reported by the provider."""
    return _transition(engine.mark_delivered, notification_id)


@router.post("/{notification_id}/read", response_model=Notification)
def mark_read(notification_id: str, engine: DeliveryEngineDep):
    """Record that the recipient opened the notification."""
    return _transition(engine.mark_read, notification_id)


def _transition(action, notification_id: str) -> Notification:
    with bind_request_context(notification_id=notification_id):
        try:
            return action(notification_id)
        except NotificationNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except InvalidStateTransitionError as e:
            logger.info(
                "notification_transition_rejected",
                current=e.current,
                target=e.target,
            )
            raise HTTPException(status_code=409, detail=str(e)) from e
