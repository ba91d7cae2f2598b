import threading
from unittest.mock import MagicMock, call, patch

import pytest

from infrastructure.configuration import DeliverySettings
from jobs import scheduled_tasks


@pytest.mark.unit
@patch("jobs.scheduled_tasks.schedule")
def test_init(schedule_mock):
    """init schedules both sweeps, limiter cleanup and the heartbeat."""
    engine = MagicMock()
    settings = DeliverySettings(
        pending_sweep_interval_seconds=15,
        retry_sweep_interval_seconds=120,
        limiter_cleanup_interval_seconds=600,
    )

    scheduled_tasks.init(engine, settings)

    schedule_mock.every.assert_has_calls(
        calls=[call(15), call(120), call(600), call(5)],
        any_order=True,
    )
    do_calls = [c for c in schedule_mock.mock_calls if ".do(" in str(c)]
    assert len(do_calls) == 4

    seconds_do_calls = [
        c for c in schedule_mock.mock_calls if ".seconds.do(" in str(c)
    ]
    assert len(seconds_do_calls) == 3


@pytest.mark.unit
@patch("jobs.scheduled_tasks.schedule")
def test_init_wraps_engine_sweeps(schedule_mock):
    engine = MagicMock()
    engine.run_pending_sweep.side_effect = RuntimeError("store down")

    scheduled_tasks.init(engine, DeliverySettings())

    jobs = [
        c.args[0] for c in schedule_mock.every.return_value.seconds.do.call_args_list
    ]
    # A failing sweep must not escape into the scheduler thread.
    for job in jobs:
        job()
    engine.run_pending_sweep.assert_called_once()
    engine.run_retry_sweep.assert_called_once()
    engine.rate_limiter.cleanup_idle.assert_called_once()


@pytest.mark.unit
@patch("jobs.scheduled_tasks.logger")
def test_safe_run(mock_logger):
    """safe_run logs the failure and returns None."""

    def failing_job():
        raise ValueError("Test error")

    assert scheduled_tasks.safe_run(failing_job)() is None
    mock_logger.error.assert_called_once_with(
        "scheduled_job_failed", job="failing_job", error="Test error"
    )


@pytest.mark.unit
def test_safe_run_returns_result():
    assert scheduled_tasks.safe_run(lambda: 3)() == 3


@pytest.mark.unit
@patch("jobs.scheduled_tasks.logger")
def test_scheduler_heartbeat(mock_logger):
    engine = MagicMock()
    engine.in_flight.return_value = 2

    scheduled_tasks.scheduler_heartbeat(engine)

    assert mock_logger.info.call_args.kwargs["in_flight"] == 2


@pytest.mark.unit
@patch("jobs.scheduled_tasks.schedule")
def test_run_continuously(schedule_mock):
    """The scheduler thread runs pending jobs until the event is set."""
    ran = threading.Event()
    schedule_mock.run_pending.side_effect = ran.set

    cease = scheduled_tasks.run_continuously(interval=0.01)
    try:
        assert ran.wait(2)
    finally:
        cease.set()


@pytest.mark.unit
@patch("jobs.scheduled_tasks.schedule")
def test_clear(schedule_mock):
    scheduled_tasks.clear()
    schedule_mock.clear.assert_called_once()
