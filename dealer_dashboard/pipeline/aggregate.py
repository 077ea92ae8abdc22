from __future__ import annotations

from typing import Iterable

from .models import (
    ActiveDealerRecord,
    CombinedDealerRow,
    DealerRecord,
    ExpiredDealerRecord,
    ZoneAggregate,
)

HIGH_RISK_THRESHOLD = 20
MEDIUM_RISK_THRESHOLD = 10

SERVICE_FAMILIES = ("TES", "McSOL")


def service_family(service: str) -> str:
    return "TES" if "tes" in service.lower() else "McSOL"


def _accumulate(summaries: dict, record: DealerRecord):
    key = (record.zone, record.service)
    summary = summaries.get(key)
    if summary is None:
        summary = summaries[key] = ZoneAggregate(zone=record.zone, service=record.service)
    if isinstance(record, ActiveDealerRecord):
        summary.total_active += record.active_users
    else:
        summary.total_expired += record.expired_users


def zone_summaries(records: Iterable[DealerRecord]) -> list[ZoneAggregate]:
    """Group by (zone, service) in first-seen order.

    Active and expired records may be mixed; both totals accumulate into the
    same entry when the composite key matches.
    """
    summaries: dict[tuple[str, str], ZoneAggregate] = {}
    for record in records:
        _accumulate(summaries, record)
    return list(summaries.values())


def combined_zone_summaries(
    active: Iterable[ActiveDealerRecord], expired: Iterable[ExpiredDealerRecord]
) -> list[ZoneAggregate]:
    return zone_summaries([*active, *expired])


def zone_totals(records: Iterable[DealerRecord]) -> dict[str, int]:
    """Zone-only totals of the record count; records with an empty zone are skipped."""
    out: dict[str, int] = {}
    for record in records:
        if not record.zone:
            continue
        out[record.zone] = out.get(record.zone, 0) + record.count
    return out


def total_count(records: Iterable[DealerRecord]) -> int:
    return sum(record.count for record in records)


def distinct_dealers(*record_lists: Iterable[DealerRecord]) -> int:
    return len({record.dealer for records in record_lists for record in records})


def unique_zones(records: Iterable[DealerRecord]) -> list[str]:
    seen: dict[str, None] = {}
    for record in records:
        if record.zone:
            seen.setdefault(record.zone, None)
    return list(seen)


def high_risk(expired: Iterable[ExpiredDealerRecord], threshold: int = HIGH_RISK_THRESHOLD) -> list[ExpiredDealerRecord]:
    return [record for record in expired if record.expired_users >= threshold]


def risk_tier(expired_users: int) -> str:
    if expired_users >= HIGH_RISK_THRESHOLD:
        return "high"
    if expired_users >= MEDIUM_RISK_THRESHOLD:
        return "medium"
    return "low"


def family_totals(
    active: Iterable[ActiveDealerRecord], expired: Iterable[ExpiredDealerRecord]
) -> dict[str, dict[str, int]]:
    out = {family: {"active": 0, "expired": 0} for family in SERVICE_FAMILIES}
    for record in active:
        out[service_family(record.service)]["active"] += record.active_users
    for record in expired:
        out[service_family(record.service)]["expired"] += record.expired_users
    return out


def family_zone_breakdown(expired: Iterable[ExpiredDealerRecord]) -> dict[str, dict[str, int]]:
    """Expired totals per service family, then per zone (zones sorted)."""
    grouped: dict[str, dict[str, int]] = {family: {} for family in SERVICE_FAMILIES}
    for record in expired:
        zones = grouped[service_family(record.service)]
        zones[record.zone] = zones.get(record.zone, 0) + record.expired_users
    return {family: dict(sorted(zones.items())) for family, zones in grouped.items()}


def combine_by_dealer(
    active: Iterable[ActiveDealerRecord], expired: Iterable[ExpiredDealerRecord]
) -> list[CombinedDealerRow]:
    rows: dict[tuple[str, str], CombinedDealerRow] = {}
    for record in active:
        key = (record.dealer, record.service)
        if key in rows:
            rows[key].active_users = record.active_users
        else:
            rows[key] = CombinedDealerRow(
                dealer=record.dealer,
                service=record.service,
                zone=record.zone,
                active_users=record.active_users,
            )
    for record in expired:
        key = (record.dealer, record.service)
        if key in rows:
            rows[key].expired_users = record.expired_users
        else:
            rows[key] = CombinedDealerRow(
                dealer=record.dealer,
                service=record.service,
                zone=record.zone,
                expired_users=record.expired_users,
            )
    return list(rows.values())


def snapshot_totals(active: list[ActiveDealerRecord], expired: list[ExpiredDealerRecord]) -> dict[str, int]:
    return {
        "total_active": total_count(active),
        "total_expired": total_count(expired),
        "total_dealers": distinct_dealers(active, expired),
    }


def history_summary(active: list[ActiveDealerRecord], expired: list[ExpiredDealerRecord]) -> dict:
    totals = snapshot_totals(active, expired)
    total_active = totals["total_active"]
    total_expired = totals["total_expired"]
    denominator = total_active + total_expired
    families = family_totals(active, expired)
    return {
        **totals,
        "total_expired_dealers": distinct_dealers(expired),
        "high_risk_expired": sum(1 for r in expired if risk_tier(r.expired_users) == "high"),
        "medium_risk_expired": sum(1 for r in expired if risk_tier(r.expired_users) == "medium"),
        "expired_rate_pct": round(total_expired / denominator * 100, 2) if denominator else 0.0,
        "families": families,
    }


def filter_records(
    records: Iterable[DealerRecord],
    search: str | None = None,
    service: str | None = None,
    zone: str | None = None,
) -> list[DealerRecord]:
    search_l = (search or "").lower()
    service_l = (service or "").lower()
    out = []
    for record in records:
        if search_l and search_l not in record.dealer.lower():
            continue
        if service_l and service_l != "all" and service_l not in record.service.lower():
            continue
        if zone and zone != "all" and record.zone != zone:
            continue
        out.append(record)
    return out


SORT_KEYS = ("count", "dealer", "zone")


def sort_records(records: Iterable[DealerRecord], sort_by: str = "count") -> list[DealerRecord]:
    if sort_by == "dealer":
        return sorted(records, key=lambda r: r.dealer.lower())
    if sort_by == "zone":
        return sorted(records, key=lambda r: r.zone.lower())
    return sorted(records, key=lambda r: r.count, reverse=True)


def sort_expired_high_risk_first(records: Iterable[ExpiredDealerRecord], sort_by: str = "count") -> list[ExpiredDealerRecord]:
    records = list(records)
    flagged = sorted(high_risk(records), key=lambda r: r.expired_users, reverse=True)
    rest = sort_records([r for r in records if r.expired_users < HIGH_RISK_THRESHOLD], sort_by)
    return [*flagged, *rest]
