from __future__ import annotations

from zoneinfo import ZoneInfo

import structlog
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger

from ..config import settings
from ..providers.sheets import SheetFetchError, SheetSource
from .live import fetch_live
from .snapshots import SnapshotStore
from .tabular import UnsupportedInputError

log = structlog.get_logger()

AUTO_SNAPSHOT_JOB_ID = "auto_snapshot"


async def run_auto_snapshot(store: SnapshotStore, source: SheetSource | None = None, prefer_live: bool = True) -> dict:
    """Store an ``auto`` snapshot.

    Fresh sheet data is used when reachable. Otherwise the newest manual
    snapshot's records are copied forward with ``provenance="reused"`` and a
    pointer to the snapshot they came from, so the copy is never mistaken for
    a new observation.
    """
    if prefer_live and source is not None:
        try:
            result = await fetch_live(source)
        except (SheetFetchError, UnsupportedInputError) as e:
            log.warning("auto_snapshot_live_unavailable", err=str(e))
        else:
            snap = store.insert("auto", result.active, result.expired, provenance="live")
            return _outcome(snap)

    base = store.latest(kind="manual")
    active = base.active_records if base else []
    expired = base.expired_records if base else []
    source_id = base.id if base else None
    log.warning(
        "auto_snapshot_fallback",
        source_snapshot_id=source_id,
        source_has_data_issues=base.has_data_issues if base else None,
    )
    snap = store.insert("auto", active, expired, provenance="reused", source_snapshot_id=source_id)
    return _outcome(snap)


def _outcome(snap) -> dict:
    return {
        "success": True,
        "snapshot_id": snap.id,
        "provenance": snap.provenance,
        "source_snapshot_id": snap.source_snapshot_id,
        "totals": {
            "total_active": snap.total_active,
            "total_expired": snap.total_expired,
            "total_dealers": snap.total_dealer_count,
        },
    }


async def auto_snapshot_job():
    store = SnapshotStore.open(settings.db_path)
    source = SheetSource(settings.sheet_csv_url, timeout=settings.http_timeout_seconds)
    try:
        outcome = await run_auto_snapshot(store, source, prefer_live=settings.auto_snapshot_prefer_live)
    finally:
        store.conn.close()
    log.info("auto_snapshot_done", **outcome)
    return outcome


def schedule_auto_snapshot(sched: BaseScheduler):
    tz = ZoneInfo(settings.local_tz)
    sched.add_job(
        auto_snapshot_job,
        CronTrigger(hour=settings.auto_snapshot_hour, minute=settings.auto_snapshot_minute, timezone=tz),
        id=AUTO_SNAPSHOT_JOB_ID,
        replace_existing=True,
    )
    log.info(
        "auto_snapshot_scheduled",
        hour=settings.auto_snapshot_hour,
        minute=settings.auto_snapshot_minute,
        tz=settings.local_tz,
    )
