from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import date, datetime

import structlog

from ..db import get_conn, migrate
from ..utils import now_utc, parse_iso, to_local_date
from .aggregate import snapshot_totals
from .models import ActiveDealerRecord, ExpiredDealerRecord, Snapshot
from .validation import records_or_empty

log = structlog.get_logger()

SNAPSHOT_KINDS = ("manual", "auto")
PROVENANCES = ("live", "reused")

_COLUMNS = (
    "id, snapshot_type, active_data, expired_data, total_active, total_expired, total_dealers, "
    "provenance, source_snapshot_id, created_at_utc"
)


class InvalidSnapshotIdError(ValueError):
    pass


def validate_snapshot_id(snapshot_id) -> str:
    if not snapshot_id or not isinstance(snapshot_id, str):
        raise InvalidSnapshotIdError("Invalid snapshot ID")
    try:
        uuid.UUID(snapshot_id)
    except ValueError:
        raise InvalidSnapshotIdError(f"Invalid snapshot ID: {snapshot_id!r}")
    return snapshot_id


def _is_int(val) -> bool:
    return isinstance(val, int) and not isinstance(val, bool)


def _row_to_snapshot(row) -> Snapshot | None:
    (sid, kind, active_json, expired_json, total_active, total_expired, total_dealers,
     provenance, source_id, created_at) = row
    created = parse_iso(created_at) if isinstance(created_at, str) else None
    if (
        not isinstance(sid, str)
        or kind not in SNAPSHOT_KINDS
        or not all(_is_int(v) for v in (total_active, total_expired, total_dealers))
        or created is None
    ):
        log.warning("snapshot_row_invalid", snapshot_id=sid, snapshot_type=kind, created_at=created_at)
        return None
    active, active_issues = records_or_empty(active_json, "active")
    expired, expired_issues = records_or_empty(expired_json, "expired")
    issues = [f"active: {r}" for r in active_issues] + [f"expired: {r}" for r in expired_issues]
    if issues:
        log.warning("snapshot_blob_invalid", snapshot_id=sid, reasons=issues)
    return Snapshot(
        id=sid,
        kind=kind,
        active_records=active,
        expired_records=expired,
        total_active=total_active,
        total_expired=total_expired,
        total_dealer_count=total_dealers,
        created_at=created,
        provenance=provenance if provenance in PROVENANCES else "live",
        source_snapshot_id=source_id,
        data_issues=issues,
    )


class SnapshotStore:
    """Snapshots persisted in sqlite: insert, newest-first listing and delete by id.

    Stored rows are never updated; record arrays are decoded through the
    validator on every read.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @classmethod
    def open(cls, db_path: str) -> "SnapshotStore":
        conn = get_conn(db_path)
        migrate(conn)
        return cls(conn)

    def insert(
        self,
        kind: str,
        active: list[ActiveDealerRecord],
        expired: list[ExpiredDealerRecord],
        provenance: str = "live",
        source_snapshot_id: str | None = None,
        created_at: datetime | None = None,
    ) -> Snapshot:
        if kind not in SNAPSHOT_KINDS:
            raise ValueError("snapshot kind must be manual|auto")
        if provenance not in PROVENANCES:
            raise ValueError("provenance must be live|reused")
        totals = snapshot_totals(active, expired)
        created = created_at or now_utc()
        sid = str(uuid.uuid4())
        cur = self.conn.cursor()
        cur.execute(
            """
            INSERT INTO snapshots
              (id, snapshot_type, active_data, expired_data, total_active, total_expired, total_dealers,
               provenance, source_snapshot_id, created_at_utc, updated_at_utc)
            VALUES (?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                sid,
                kind,
                json.dumps([r.to_payload() for r in active]),
                json.dumps([r.to_payload() for r in expired]),
                totals["total_active"],
                totals["total_expired"],
                totals["total_dealers"],
                provenance,
                source_snapshot_id,
                created.isoformat(),
                created.isoformat(),
            ),
        )
        self.conn.commit()
        log.info(
            "snapshot_saved",
            snapshot_id=sid,
            snapshot_type=kind,
            provenance=provenance,
            source_snapshot_id=source_snapshot_id,
            active=len(active),
            expired=len(expired),
            **totals,
        )
        return Snapshot(
            id=sid,
            kind=kind,
            active_records=list(active),
            expired_records=list(expired),
            total_active=totals["total_active"],
            total_expired=totals["total_expired"],
            total_dealer_count=totals["total_dealers"],
            created_at=created,
            provenance=provenance,
            source_snapshot_id=source_snapshot_id,
        )

    def list_recent(self, limit: int = 10, kind: str | None = None) -> list[Snapshot]:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        cur = self.conn.cursor()
        if kind:
            rows = cur.execute(
                f"SELECT {_COLUMNS} FROM snapshots WHERE snapshot_type=? ORDER BY created_at_utc DESC LIMIT ?",
                (kind, int(limit)),
            ).fetchall()
        else:
            rows = cur.execute(
                f"SELECT {_COLUMNS} FROM snapshots ORDER BY created_at_utc DESC LIMIT ?",
                (int(limit),),
            ).fetchall()
        out = []
        for row in rows:
            snap = _row_to_snapshot(row)
            if snap is not None:
                out.append(snap)
        return out

    def latest(self, kind: str | None = None) -> Snapshot | None:
        snaps = self.list_recent(1, kind=kind)
        return snaps[0] if snaps else None

    def get(self, snapshot_id: str) -> Snapshot | None:
        validate_snapshot_id(snapshot_id)
        row = self.conn.execute(f"SELECT {_COLUMNS} FROM snapshots WHERE id=?", (snapshot_id,)).fetchone()
        return _row_to_snapshot(row) if row else None

    def delete(self, snapshot_id: str) -> bool:
        validate_snapshot_id(snapshot_id)
        cur = self.conn.cursor()
        cur.execute("DELETE FROM snapshots WHERE id=?", (snapshot_id,))
        self.conn.commit()
        deleted = cur.rowcount > 0
        log.info("snapshot_deleted", snapshot_id=snapshot_id, deleted=deleted)
        return deleted


def available_dates(snapshots: list[Snapshot], local_tz: str) -> list[str]:
    days = {to_local_date(s.created_at, local_tz).isoformat() for s in snapshots}
    return sorted(days, reverse=True)


def select_by_date(snapshots: list[Snapshot], day: date, local_tz: str) -> Snapshot | None:
    """Newest snapshot created on ``day`` (local calendar date); ``snapshots`` must be newest-first."""
    for snap in snapshots:
        if to_local_date(snap.created_at, local_tz) == day:
            return snap
    return None
