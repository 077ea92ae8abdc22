from __future__ import annotations

from typing import Sequence

from .aggregate import HIGH_RISK_THRESHOLD, total_count, unique_zones, zone_totals
from .models import DealerRecord, Mode

_PCT_PRECISION = 2


def direction(delta: int | float) -> str:
    if delta > 0:
        return "increase"
    if delta < 0:
        return "decrease"
    return "unchanged"


def change_pct(current: int | float, previous: int | float) -> float:
    """Absolute percentage change; 0 when there is no previous value to divide by."""
    if previous <= 0:
        return 0.0
    return round(abs(current - previous) / previous * 100, _PCT_PRECISION)


def _change(current: int, previous: int) -> dict:
    delta = current - previous
    return {
        "current": current,
        "previous": previous,
        "delta": delta,
        "change_pct": change_pct(current, previous),
        "direction": direction(delta),
    }


def _zone_rows(current: dict[str, int], previous: dict[str, int]) -> list[dict]:
    return [{"zone": zone, **_change(total, previous.get(zone, 0))} for zone, total in current.items()]


def _dealer_rows(current: Sequence[DealerRecord], historical: Sequence[DealerRecord]) -> list[dict]:
    previous: dict[tuple[str, str, str], int] = {}
    for record in historical:
        previous.setdefault((record.dealer, record.service, record.zone), record.count)
    # Python's sort is stable, so ties keep input order.
    ordered = sorted(current, key=lambda r: r.count, reverse=True)
    return [
        {
            "dealer": record.dealer,
            "service": record.service,
            "zone": record.zone,
            **_change(record.count, previous.get((record.dealer, record.service, record.zone), 0)),
        }
        for record in ordered
    ]


def compare_records(current: Sequence[DealerRecord], historical: Sequence[DealerRecord], mode: Mode) -> dict:
    """Compare a live record set against one recovered from a snapshot.

    Both sets must be the same variant (``mode``). Expired mode adds the
    high-risk dealer counts and per-zone totals.
    """
    if mode not in ("active", "expired"):
        raise ValueError("mode must be active|expired")
    out = {
        "mode": mode,
        "totals": _change(total_count(current), total_count(historical)),
        "unique_zones": unique_zones(current),
        "high_risk": None,
        "zones": None,
        "dealers": _dealer_rows(current, historical),
        "max_count": max([r.count for r in current] + [1]),
    }
    if mode == "expired":
        current_zones = zone_totals(current)
        previous_zones = zone_totals(historical)
        out["high_risk"] = {
            "threshold": HIGH_RISK_THRESHOLD,
            **_change(
                sum(1 for r in current if r.count >= HIGH_RISK_THRESHOLD),
                sum(1 for r in historical if r.count >= HIGH_RISK_THRESHOLD),
            ),
        }
        out["zones"] = {
            "current": current_zones,
            "previous": previous_zones,
            "rows": _zone_rows(current_zones, previous_zones),
        }
    return out


def compare_family_zones(
    current: dict[str, dict[str, int]], previous: dict[str, dict[str, int]] | None = None
) -> dict[str, list[dict]]:
    """Per family, per zone rows; change fields only when a previous breakdown is given."""
    if previous is None:
        return {
            family: [{"zone": zone, "current": total} for zone, total in zones.items()]
            for family, zones in current.items()
        }
    return {
        family: _zone_rows(zones, previous.get(family, {}))
        for family, zones in current.items()
    }
