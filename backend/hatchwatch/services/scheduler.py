"""
Polling scheduler for Hatchwatch

Uses APScheduler to run the periodic refresh jobs of each open view. Every
view owns its jobs; closing the view cancels all of them.
"""
import logging
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Tuple

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from hatchwatch.config import settings
from hatchwatch.database import SessionLocal
from hatchwatch.services.alerting_service import sweep_device_states

logger = logging.getLogger(__name__)

DASHBOARD_VIEW = "dashboard"

# (job name, callable, interval seconds)
JobSpec = Tuple[str, Callable, int]


class ViewScheduler:
    """Single owner of every polling timer, grouped by view."""

    def __init__(self, scheduler: AsyncIOScheduler = None):
        self.scheduler = scheduler or AsyncIOScheduler()
        self._views: Dict[str, List[str]] = defaultdict(list)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def open_view(self, view_key: str, jobs: Iterable[JobSpec]) -> List[str]:
        """Register the jobs of a view, replacing any it already had."""
        self.close_view(view_key)
        for name, func, seconds in jobs:
            job_id = f"{view_key}:{name}"
            self.scheduler.add_job(
                func,
                trigger=IntervalTrigger(seconds=seconds),
                id=job_id,
                name=job_id,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            self._views[view_key].append(job_id)
        logger.debug(f"Opened view {view_key} with jobs {self._views[view_key]}")
        return list(self._views[view_key])

    def close_view(self, view_key: str) -> None:
        for job_id in self._views.pop(view_key, []):
            try:
                self.scheduler.remove_job(job_id)
            except JobLookupError:
                pass
        logger.debug(f"Closed view {view_key}")

    def view_jobs(self, view_key: str) -> List[str]:
        return list(self._views.get(view_key, []))

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")

    def shutdown(self) -> None:
        for view_key in list(self._views):
            self.close_view(view_key)
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")


view_scheduler = ViewScheduler()


def run_alert_sweep():
    """Evaluate alert rules for every device state."""
    db = SessionLocal()
    try:
        created = sweep_device_states(db)
        if created:
            logger.info(f"Alert sweep complete. Logged {created} new alerts.")
    except Exception as e:
        logger.error(f"Alert sweep failed: {e}")
    finally:
        db.close()


def start_scheduler():
    """Start the scheduler with the dashboard view jobs."""
    view_scheduler.open_view(
        DASHBOARD_VIEW,
        [("alert_sweep", run_alert_sweep, settings.dashboard_poll_seconds)],
    )
    view_scheduler.start()
    logger.info(f"Dashboard view opened (alert sweep interval: {settings.dashboard_poll_seconds}s)")


def stop_scheduler():
    view_scheduler.shutdown()
