from __future__ import annotations

import re
from datetime import datetime

import structlog

from .columns import ColumnMap, map_columns
from .models import ActiveDealerRecord, ExpiredDealerRecord
from .tabular import is_blank_row

log = structlog.get_logger()

EXCLUDED_SERVICE_TOKEN = "zong"
INCLUDED_SERVICE_TOKENS = ("tes", "mcsol")

_LEADING_INT = re.compile(r"^[+-]?\d+")


def service_included(service: str) -> bool:
    lowered = service.lower()
    if EXCLUDED_SERVICE_TOKEN in lowered:
        return False
    return any(token in lowered for token in INCLUDED_SERVICE_TOKENS)


def parse_count(raw: str) -> int:
    """Leading base-10 integer of ``raw``; 0 for empty, non-numeric or negative input."""
    match = _LEADING_INT.match((raw or "").strip())
    if not match:
        return 0
    return max(int(match.group(0)), 0)


def _read_side(row: list[str], indices: tuple[int, int, int, int]):
    dealer_idx, service_idx, zone_idx, count_idx = indices
    dealer = row[dealer_idx].strip()
    service = row[service_idx].strip()
    if not dealer or not service or not service_included(service):
        return None
    return dealer, service, row[zone_idx].strip(), parse_count(row[count_idx])


def extract_records(
    rows: list[list[str]],
    columns: ColumnMap | None = None,
    observed_at: datetime | None = None,
) -> tuple[list[ActiveDealerRecord], list[ExpiredDealerRecord]]:
    """Walk the data rows and build the active and expired dealer records.

    ``rows[0]`` is the header. Each data row carries an active record and an
    expired record side by side; the inclusion rule is applied to each side
    independently. A row shorter than the highest mapped column is dropped
    whole. A side with any unmapped column contributes nothing.
    """
    active: list[ActiveDealerRecord] = []
    expired: list[ExpiredDealerRecord] = []
    if len(rows) < 2:
        return active, expired
    if columns is None:
        columns = map_columns(rows[0])

    active_idx = columns.side("active") if columns.side_mapped("active") else None
    expired_idx = columns.side("expired") if columns.side_mapped("expired") else None
    if active_idx is None and expired_idx is None:
        log.warning("extract_no_mapped_columns", unmapped=columns.unmapped)
        return active, expired

    required = columns.max_index + 1
    dropped = 0
    for row in rows[1:]:
        if len(row) < required or is_blank_row(row):
            dropped += 1
            continue
        if active_idx is not None:
            values = _read_side(row, active_idx)
            if values:
                dealer, service, zone, count = values
                active.append(ActiveDealerRecord(dealer, service, zone, count, observed_at))
        if expired_idx is not None:
            values = _read_side(row, expired_idx)
            if values:
                dealer, service, zone, count = values
                expired.append(ExpiredDealerRecord(dealer, service, zone, count, observed_at))

    log.debug(
        "extract_done",
        rows=len(rows) - 1,
        dropped_rows=dropped,
        active=len(active),
        expired=len(expired),
    )
    return active, expired
