"""Operation result dataclass.

Uniform result type returned by notification providers so the delivery
engine can tell successes, retryable failures and permanent failures apart
without knowing any transport details.
"""

from dataclasses import dataclass
from typing import Any, Optional

from infrastructure.operations.status import OperationStatus


@dataclass
class OperationResult:
    """Uniform result returned from operations.

    Attributes:
        status: High-level outcome
        message: Human-friendly message for logs and the notification error field
        data: Optional payload (provider message id, HTTP status, ...)
        error_code: Optional machine error code
        retry_after: Optional seconds until retry when throttled
    """

    status: OperationStatus
    message: str
    data: Optional[Any] = None
    error_code: Optional[str] = None
    retry_after: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    @property
    def is_permanent(self) -> bool:
        """True when retrying the same operation cannot succeed."""
        return self.status == OperationStatus.PERMANENT_ERROR

    @classmethod
    def success(
        cls, data: Optional[Any] = None, message: str = "ok"
    ) -> "OperationResult":
        return cls(status=OperationStatus.SUCCESS, message=message, data=data)

    @classmethod
    def transient_error(
        cls,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
        data: Optional[Any] = None,
    ) -> "OperationResult":
        """Create a retryable error result.

        Use for timeouts, connection failures, throttling and upstream 5xx.
        """
        return cls(
            status=OperationStatus.TRANSIENT_ERROR,
            message=message,
            error_code=error_code,
            retry_after=retry_after,
            data=data,
        )

    @classmethod
    def permanent_error(
        cls,
        message: str,
        error_code: Optional[str] = None,
        data: Optional[Any] = None,
    ) -> "OperationResult":
        """Create a non-retryable error result.

        Use for rejected recipients, invalid credentials, missing provider
        configuration and other client errors.
        """
        return cls(
            status=OperationStatus.PERMANENT_ERROR,
            message=message,
            error_code=error_code,
            data=data,
        )
