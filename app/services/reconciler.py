import asyncio
import logging
from typing import Callable

from starlette.concurrency import run_in_threadpool

from app.services.registration_service import RegistrationService

logger = logging.getLogger(__name__)


async def run_reconciler(service_factory: Callable[[], RegistrationService], interval: float):
    """Periodically push pending local registrations into the database.

    Runs until cancelled. Errors are logged and the loop carries on with the
    next tick.
    """
    logger.info("Registration reconciler started (every %ss)", interval)
    while True:
        await asyncio.sleep(interval)
        try:
            report = await run_in_threadpool(service_factory().reconcile)
        except Exception:
            logger.exception("Registration reconcile run failed")
            continue
        if report.remaining:
            logger.warning("%d registration(s) still pending after reconcile", report.remaining)


def start_reconciler(service_factory: Callable[[], RegistrationService], interval: float):
    if interval <= 0:
        logger.info("Registration reconciler disabled")
        return None
    return asyncio.create_task(run_reconciler(service_factory, interval))


async def stop_reconciler(task):
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
