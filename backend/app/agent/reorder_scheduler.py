"""
Restocking sweep scheduler.

Runs the reorder sweep on a fixed interval inside the FastAPI process.
The sweep only raises PENDING requests; a pharmacist or admin approves,
orders and receives them through the API.
"""
import asyncio
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.db.session import SessionLocal
from app.services import reorder_service

logger = logging.getLogger(__name__)

STARTUP_DELAY_SECONDS = 10


def run_reorder_sweep() -> bool:
    """One sweep with its own session. Returns False when it failed."""
    db = SessionLocal()
    try:
        reorder_service.sweep(db)
        return True
    except SQLAlchemyError as e:
        logger.error(f"[ReorderScheduler] Sweep error: {e}")
        return False
    finally:
        db.close()


_scheduler_running = False
_scheduler_task: Optional[asyncio.Task] = None


async def _reorder_scheduler_loop(interval_seconds: float):
    global _scheduler_running
    _scheduler_running = True

    logger.info(f"[ReorderScheduler] Started. Interval: {interval_seconds:.0f}s")

    # Let the server finish starting
    await asyncio.sleep(STARTUP_DELAY_SECONDS)

    while _scheduler_running:
        try:
            # Sweep is blocking DB work; keep it off the event loop
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, run_reorder_sweep)
        except Exception as e:
            logger.error(f"[ReorderScheduler] Scheduler error: {e}")

        await asyncio.sleep(interval_seconds)


def start_reorder_scheduler():
    """Start the background sweep. Called from the FastAPI lifespan."""
    global _scheduler_task
    interval = settings.REORDER_SWEEP_INTERVAL_HOURS * 3600
    _scheduler_task = asyncio.create_task(_reorder_scheduler_loop(interval))
    logger.info("[ReorderScheduler] Reorder sweep scheduler initialized")


def stop_reorder_scheduler():
    """Stop the scheduler. Called from the FastAPI lifespan on shutdown."""
    global _scheduler_running, _scheduler_task
    _scheduler_running = False
    if _scheduler_task is not None:
        _scheduler_task.cancel()
        _scheduler_task = None
    logger.info("[ReorderScheduler] Stopped")
