"""Delivery engine infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class DeliverySettings(InfrastructureSettings):
    """Delivery engine configuration for notification dispatch and sweeps.

    Environment Variables:
        DELIVERY_MAX_RETRIES: Attempts before a failed notification is terminal (default: 3)
        DELIVERY_PENDING_BATCH_SIZE: Records selected per pending sweep (default: 100)
        DELIVERY_RETRY_BATCH_SIZE: Records selected per retry sweep (default: 50)
        DELIVERY_MAX_WORKERS: Size of the bounded dispatch worker pool (default: 10)
        DELIVERY_PENDING_SWEEP_INTERVAL_SECONDS: Pending sweep period (default: 30s)
        DELIVERY_RETRY_SWEEP_INTERVAL_SECONDS: Retry sweep period (default: 300s)
        DELIVERY_LIMITER_CLEANUP_INTERVAL_SECONDS: Idle bucket eviction period (default: 300s)
        DELIVERY_RETRY_BASE_DELAY_SECONDS: Base retry backoff, 0 disables it (default: 0)
        DELIVERY_RETRY_MAX_DELAY_SECONDS: Maximum retry backoff (default: 3600s)
        DELIVERY_SWEEPS_ENABLED: Run the periodic sweeps in the background (default: True)

    Exponential Backoff:
        When a base delay is configured, a failed notification becomes
        eligible for the retry sweep once
        min(base_delay * 2 ^ (retry_count - 1), max_delay) has elapsed
        since its last failure.

        Example with base=60s:
            After failure 1: 60s
            After failure 2: 120s

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        max_retries = settings.delivery.max_retries
        batch = settings.delivery.retry_batch_size
        ```
    """

    max_retries: int = Field(
        default=3,
        alias="DELIVERY_MAX_RETRIES",
        description="Maximum delivery attempts before a failure is terminal",
    )
    pending_batch_size: int = Field(
        default=100,
        alias="DELIVERY_PENDING_BATCH_SIZE",
        description="Number of pending notifications selected per sweep",
    )
    retry_batch_size: int = Field(
        default=50,
        alias="DELIVERY_RETRY_BATCH_SIZE",
        description="Number of failed notifications selected per retry sweep",
    )
    max_workers: int = Field(
        default=10,
        alias="DELIVERY_MAX_WORKERS",
        description="Maximum concurrent delivery attempts",
    )
    pending_sweep_interval_seconds: int = Field(
        default=30,
        alias="DELIVERY_PENDING_SWEEP_INTERVAL_SECONDS",
        description="Seconds between pending/scheduled sweeps",
    )
    retry_sweep_interval_seconds: int = Field(
        default=300,
        alias="DELIVERY_RETRY_SWEEP_INTERVAL_SECONDS",
        description="Seconds between retry sweeps",
    )
    limiter_cleanup_interval_seconds: int = Field(
        default=300,
        alias="DELIVERY_LIMITER_CLEANUP_INTERVAL_SECONDS",
        description="Seconds between idle rate limiter bucket evictions",
    )
    retry_base_delay_seconds: int = Field(
        default=0,
        alias="DELIVERY_RETRY_BASE_DELAY_SECONDS",
        description="Base delay for retry backoff (seconds, 0 disables backoff)",
    )
    retry_max_delay_seconds: int = Field(
        default=3600,
        alias="DELIVERY_RETRY_MAX_DELAY_SECONDS",
        description="Maximum delay for retry backoff (seconds, 1 hour)",
    )
    sweeps_enabled: bool = Field(
        default=True,
        alias="DELIVERY_SWEEPS_ENABLED",
        description="Run pending and retry sweeps on a background scheduler",
    )
