import threading
import time
from typing import TYPE_CHECKING

import schedule

from infrastructure.logging import get_module_logger

if TYPE_CHECKING:
    from infrastructure.configuration.infrastructure import DeliverySettings
    from infrastructure.notifications import DeliveryEngine

logger = get_module_logger()


def safe_run(job):
    def wrapper(*args, **kwargs):
        try:
            return job(*args, **kwargs)
        except Exception as e:
            logger.error(
                "scheduled_job_failed",
                job=getattr(job, "__name__", repr(job)),
                error=str(e),
            )
            return None

    return wrapper


def init(engine: "DeliveryEngine", settings: "DeliverySettings"):
    logger.info(
        "scheduled_tasks_initialized",
        pending_interval=settings.pending_sweep_interval_seconds,
        retry_interval=settings.retry_sweep_interval_seconds,
        cleanup_interval=settings.limiter_cleanup_interval_seconds,
    )

    schedule.every(settings.pending_sweep_interval_seconds).seconds.do(
        safe_run(engine.run_pending_sweep)
    )
    schedule.every(settings.retry_sweep_interval_seconds).seconds.do(
        safe_run(engine.run_retry_sweep)
    )
    schedule.every(settings.limiter_cleanup_interval_seconds).seconds.do(
        safe_run(engine.rate_limiter.cleanup_idle)
    )
    schedule.every(5).minutes.do(safe_run(scheduler_heartbeat), engine=engine)


def scheduler_heartbeat(engine: "DeliveryEngine"):
    logger.info("scheduler_heartbeat", at=time.ctime(), in_flight=engine.in_flight())


def clear():
    schedule.clear()


def run_continuously(interval=1):
    """Continuously run, while executing pending jobs at each
    elapsed time interval.
    @return cease_continuous_run: threading. Event which can
    be set to cease continuous run. Note that run_continuously()
    does not run missed jobs: a sweep registered every 30 seconds
    with a one minute interval runs once per interval, not twice.
    """
    cease_continuous_run = threading.Event()

    class ScheduleThread(threading.Thread):
        @classmethod
        def run(cls):
            while not cease_continuous_run.is_set():
                schedule.run_pending()
                cease_continuous_run.wait(interval)

    continuous_thread = ScheduleThread(daemon=True, name="delivery-sweeps")
    continuous_thread.start()
    return cease_continuous_run
