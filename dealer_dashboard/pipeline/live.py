from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime

import structlog

from ..providers.sheets import SheetFetchError, SheetSource
from ..utils import now_utc
from .aggregate import (
    combined_zone_summaries,
    distinct_dealers,
    family_totals,
    high_risk,
    total_count,
)
from .columns import ColumnMap, map_columns
from .extract import extract_records
from .models import ActiveDealerRecord, ExpiredDealerRecord
from .tabular import UnsupportedInputError, parse_csv

log = structlog.get_logger()


@dataclass
class LiveResult:
    active: list[ActiveDealerRecord]
    expired: list[ExpiredDealerRecord]
    columns: ColumnMap
    fetched_at: datetime


@dataclass
class LiveState:
    """Latest live data. Whichever cycle finishes last wins; there is no sequencing."""

    result: LiveResult | None = None
    last_error: str | None = None
    last_error_at: datetime | None = None
    cycles_started: int = 0
    cycles_finished: int = 0
    cycles_failed: int = 0

    def record_result(self, result: LiveResult):
        self.result = result
        self.last_error = None
        self.last_error_at = None
        self.cycles_finished += 1

    def record_error(self, err: Exception):
        self.last_error = str(err)
        self.last_error_at = now_utc()
        self.cycles_failed += 1

    def status(self) -> dict:
        return {
            "last_refresh_at": self.result.fetched_at.isoformat() if self.result else None,
            "last_error": self.last_error,
            "last_error_at": self.last_error_at.isoformat() if self.last_error_at else None,
            "cycles_started": self.cycles_started,
            "cycles_finished": self.cycles_finished,
            "cycles_failed": self.cycles_failed,
        }


def build_live_result(text: str, fetched_at: datetime | None = None) -> LiveResult:
    fetched_at = fetched_at or now_utc()
    rows = parse_csv(text)
    columns = map_columns(rows[0]) if rows else ColumnMap()
    active, expired = extract_records(rows, columns, observed_at=fetched_at)
    return LiveResult(active=active, expired=expired, columns=columns, fetched_at=fetched_at)


async def fetch_live(source: SheetSource) -> LiveResult:
    text = await source.fetch_text()
    return build_live_result(text)


async def refresh_live(source: SheetSource, state: LiveState) -> LiveResult:
    state.cycles_started += 1
    started = time.monotonic()
    try:
        result = await fetch_live(source)
    except (SheetFetchError, UnsupportedInputError) as e:
        state.record_error(e)
        log.warning("live_refresh_failed", err=str(e))
        raise
    state.record_result(result)
    log.info(
        "live_refresh_done",
        active=len(result.active),
        expired=len(result.expired),
        unmapped=result.columns.unmapped,
        elapsed_sec=round(time.monotonic() - started, 2),
    )
    return result


async def poll_cycle(source: SheetSource, state: LiveState):
    """One scheduled tick; failures are kept in ``state`` for the next reader."""
    try:
        await refresh_live(source, state)
    except (SheetFetchError, UnsupportedInputError):
        pass


def live_summary(result: LiveResult) -> dict:
    return {
        "fetched_at": result.fetched_at.isoformat(),
        "total_active": total_count(result.active),
        "total_expired": total_count(result.expired),
        "total_dealers": distinct_dealers(result.active, result.expired),
        "high_risk_dealers": len(high_risk(result.expired)),
        "families": family_totals(result.active, result.expired),
        "zones": combined_zone_summaries(result.active, result.expired),
        "unmapped_columns": result.columns.unmapped,
    }
