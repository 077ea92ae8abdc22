from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from .logging import setup_logging
from .api.routes import router as api_router
from .config import settings
from .pipeline.auto_snapshot import schedule_auto_snapshot
from .pipeline.live import LiveState, poll_cycle
from .pipeline.poller import Poller
from .providers.sheets import SheetSource

setup_logging()
log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = AsyncIOScheduler(timezone=ZoneInfo(settings.local_tz))
    poller = Poller(scheduler)
    app.state.poller = poller
    if settings.poll_enable:
        source = SheetSource(settings.sheet_csv_url, timeout=settings.http_timeout_seconds)
        app.state.poll_handle = poller.start(
            poll_cycle,
            settings.poll_interval_seconds,
            args=[source, app.state.live],
            run_now=True,
        )
    if settings.auto_snapshot_enable:
        schedule_auto_snapshot(scheduler)
    scheduler.start()
    log.info("dashboard_started", poll=bool(settings.poll_enable), auto_snapshot=bool(settings.auto_snapshot_enable))
    try:
        yield
    finally:
        if app.state.poll_handle is not None:
            poller.stop(app.state.poll_handle)
            app.state.poll_handle = None
        scheduler.shutdown(wait=False)


app = FastAPI(title="dealer-dashboard", lifespan=lifespan)
app.state.live = LiveState()
app.state.poller = None
app.state.poll_handle = None
app.include_router(api_router)
