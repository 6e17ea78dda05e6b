import asyncio
import threading
import time
from concurrent.futures import Future
from typing import Awaitable, Callable

import schedule

from infrastructure.logging import clear_request_context, get_module_logger

logger = get_module_logger()

AsyncJob = Callable[[], Awaitable[object]]


def safe_run(job):
    def wrapper(*args, **kwargs):
        try:
            job(*args, **kwargs)
        except Exception as e:
            logger.error(
                "safe_run_error",
                function=job.__name__,
                module=job.__module__,
                error=str(e),
                exc_info=True,
            )

    return wrapper


def init(engine, loop: asyncio.AbstractEventLoop):
    """Register the engine's periodic jobs.

    Jobs run on the scheduler thread and hand their coroutine to ``loop``,
    the event loop the engine was built on.
    """
    logger.info("scheduled_tasks_initialized")

    notifications = engine.settings.notifications

    schedule.every(5).minutes.do(safe_run(scheduler_heartbeat))
    schedule.every(5).minutes.do(safe_run(integration_healthchecks), engine=engine)
    schedule.every(notifications.batch_flush_interval_minutes).minutes.do(
        safe_run(submit), loop=loop, job=engine.enqueue_batch_flush
    )
    schedule.every(notifications.quiet_hours_flush_interval_minutes).minutes.do(
        safe_run(submit), loop=loop, job=engine.flush_quiet_hours
    )
    schedule.every(engine.settings.queue.poll_interval_seconds).seconds.do(
        safe_run(submit), loop=loop, job=engine.process_jobs
    )


def submit(loop: asyncio.AbstractEventLoop, job: AsyncJob) -> Future:
    """Run ``job`` on ``loop`` from the scheduler thread.

    Failures inside the coroutine are logged when it finishes.
    """
    name = getattr(job, "__name__", repr(job))

    async def run():
        clear_request_context()
        return await job()

    future = asyncio.run_coroutine_threadsafe(run(), loop)

    def log_failure(done: Future) -> None:
        if done.cancelled():
            logger.warning("scheduled_job_cancelled", job=name)
            return
        error = done.exception()
        if error is not None:
            logger.error("scheduled_job_failed", job=name, error=str(error))

    future.add_done_callback(log_failure)
    return future


def scheduler_heartbeat():
    logger.info("scheduler_heartbeat", time=time.ctime())


def integration_healthchecks(engine):
    logger.info("integration_healthchecks_started")
    for name, available in engine.dispatcher.get_channel_health().items():
        if not available:
            logger.warning("integration_unavailable", channel=name)
        else:
            logger.info("integration_available", channel=name)


def run_continuously(interval=1):
    """Continuously run, while executing pending jobs at each
    elapsed time interval.
    @return cease_continuous_run: threading. Event which can
    be set to cease continuous run. Missed runs are not caught up:
    a job due several times during one interval runs once.
    """
    cease_continuous_run = threading.Event()

    class ScheduleThread(threading.Thread):
        @classmethod
        def run(cls):
            while not cease_continuous_run.is_set():
                schedule.run_pending()
                time.sleep(interval)

    continuous_thread = ScheduleThread(daemon=True)
    continuous_thread.start()
    return cease_continuous_run
