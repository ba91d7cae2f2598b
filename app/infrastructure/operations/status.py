"""Operation status enumeration."""

from enum import Enum


class OperationStatus(Enum):
    """Outcome classes for provider and infrastructure operations.

    The delivery engine only distinguishes success from failure, and among
    failures whether a retry could help.

    Attributes:
        SUCCESS: Operation completed
        TRANSIENT_ERROR: Retry may succeed (network, timeout, throttling, 5xx)
        PERMANENT_ERROR: Retry will not succeed (rejected recipient, bad credentials, 4xx)
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
