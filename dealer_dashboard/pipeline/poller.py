from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import structlog
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..utils import now_utc

log = structlog.get_logger()

DEFAULT_MAX_OVERLAP = 3


@dataclass(frozen=True)
class PollHandle:
    job_id: str
    interval_seconds: float


class Poller:
    """Fixed-interval re-invocation on a scheduler owned by the caller.

    Ticks follow the wall clock, not the previous cycle's completion, so a slow
    cycle can overlap the next one (up to ``max_overlap`` in flight).
    """

    def __init__(self, scheduler: BaseScheduler, max_overlap: int = DEFAULT_MAX_OVERLAP):
        self.scheduler = scheduler
        self.max_overlap = max_overlap

    def start(self, callback, interval_seconds: float, name: str = "live_poll", run_now: bool = False, args=None) -> PollHandle:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        first_run = now_utc() if run_now else now_utc() + timedelta(seconds=interval_seconds)
        job = self.scheduler.add_job(
            callback,
            IntervalTrigger(seconds=interval_seconds),
            args=args or [],
            id=name,
            replace_existing=True,
            max_instances=self.max_overlap,
            coalesce=True,
            next_run_time=first_run,
        )
        log.info("poller_started", job_id=job.id, interval_seconds=interval_seconds)
        return PollHandle(job_id=job.id, interval_seconds=interval_seconds)

    def stop(self, handle: PollHandle) -> bool:
        """Remove the job; a cycle already in flight finishes on its own."""
        if self.scheduler.get_job(handle.job_id) is None:
            return False
        self.scheduler.remove_job(handle.job_id)
        log.info("poller_stopped", job_id=handle.job_id)
        return True

    def is_running(self, handle: PollHandle | None) -> bool:
        return handle is not None and self.scheduler.get_job(handle.job_id) is not None
