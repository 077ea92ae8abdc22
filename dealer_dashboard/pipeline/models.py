"""Record and aggregate types shared by the pipeline.

Persisted and downloaded JSON keeps the spreadsheet dashboard's camelCase keys
(``activeUsers`` / ``expiredUsers``); the Python side uses snake_case.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Mode = Literal["active", "expired"]
SnapshotKind = Literal["manual", "auto"]
Provenance = Literal["live", "reused"]


@dataclass(frozen=True)
class ActiveDealerRecord:
    dealer: str
    service: str
    zone: str
    active_users: int
    observed_at: datetime | None = None

    @property
    def count(self) -> int:
        return self.active_users

    def to_payload(self) -> dict:
        return {
            "dealer": self.dealer,
            "service": self.service,
            "zone": self.zone,
            "activeUsers": self.active_users,
        }


@dataclass(frozen=True)
class ExpiredDealerRecord:
    dealer: str
    service: str
    zone: str
    expired_users: int
    observed_at: datetime | None = None

    @property
    def count(self) -> int:
        return self.expired_users

    def to_payload(self) -> dict:
        return {
            "dealer": self.dealer,
            "service": self.service,
            "zone": self.zone,
            "expiredUsers": self.expired_users,
        }


DealerRecord = ActiveDealerRecord | ExpiredDealerRecord


@dataclass
class ZoneAggregate:
    zone: str
    service: str
    total_active: int = 0
    total_expired: int = 0


@dataclass
class CombinedDealerRow:
    dealer: str
    service: str
    zone: str
    active_users: int = 0
    expired_users: int = 0


@dataclass
class Snapshot:
    id: str
    kind: SnapshotKind
    active_records: list[ActiveDealerRecord]
    expired_records: list[ExpiredDealerRecord]
    total_active: int
    total_expired: int
    total_dealer_count: int
    created_at: datetime
    provenance: Provenance = "live"
    source_snapshot_id: str | None = None
    data_issues: list[str] = field(default_factory=list)

    @property
    def has_data_issues(self) -> bool:
        return bool(self.data_issues)

    def records(self, mode: Mode) -> list[DealerRecord]:
        return list(self.active_records) if mode == "active" else list(self.expired_records)
