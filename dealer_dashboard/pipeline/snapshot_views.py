from __future__ import annotations

import json
from datetime import datetime, timezone

from ..utils import now_utc
from .models import Snapshot


def snapshot_summary(snapshot: Snapshot) -> dict:
    return {
        "id": snapshot.id,
        "snapshot_type": snapshot.kind,
        "provenance": snapshot.provenance,
        "source_snapshot_id": snapshot.source_snapshot_id,
        "total_active": snapshot.total_active,
        "total_expired": snapshot.total_expired,
        "total_dealers": snapshot.total_dealer_count,
        "active_records": len(snapshot.active_records),
        "expired_records": len(snapshot.expired_records),
        "has_data_issues": snapshot.has_data_issues,
        "data_issues": list(snapshot.data_issues),
        "created_at": snapshot.created_at.isoformat(),
    }


def download_payload(snapshot: Snapshot, downloaded_at: datetime | None = None) -> dict:
    active = [r.to_payload() for r in snapshot.active_records]
    expired = [r.to_payload() for r in snapshot.expired_records]
    return {
        "id": snapshot.id,
        "snapshot_type": snapshot.kind,
        "provenance": snapshot.provenance,
        "source_snapshot_id": snapshot.source_snapshot_id,
        "active_data": active,
        "expired_data": expired,
        "total_active": snapshot.total_active,
        "total_expired": snapshot.total_expired,
        "total_dealers": snapshot.total_dealer_count,
        "created_at": snapshot.created_at.isoformat(),
        "metadata": {
            "downloadedAt": (downloaded_at or now_utc()).isoformat(),
            "totalRecords": len(active) + len(expired),
        },
    }


def download_json(snapshot: Snapshot, downloaded_at: datetime | None = None) -> str:
    return json.dumps(download_payload(snapshot, downloaded_at), indent=2, ensure_ascii=False)


def download_filename(snapshot: Snapshot) -> str:
    day = snapshot.created_at.astimezone(timezone.utc).date().isoformat()
    return f"snapshot-{snapshot.kind}-{day}.json"
