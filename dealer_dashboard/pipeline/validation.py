from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, List, Tuple

from .models import ActiveDealerRecord, ExpiredDealerRecord, Mode

STRING_FIELDS = ("dealer", "service", "zone")
COUNT_FIELD = {"active": "activeUsers", "expired": "expiredUsers"}

# Reasons are capped so one bad blob can't flood the logs.
MAX_REASONS = 10


@dataclass(frozen=True)
class BlobOk:
    records: list = field(default_factory=list)


@dataclass(frozen=True)
class BlobError:
    reasons: List[str] = field(default_factory=list)


DecodeResult = BlobOk | BlobError


def _is_number(val) -> bool:
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        return False
    return math.isfinite(val)


def check_record_blob(value: Any, mode: Mode) -> Tuple[bool, List[str]]:
    reasons: List[str] = []
    if not isinstance(value, list):
        return False, [f"{mode} data is not a list"]
    count_field = COUNT_FIELD[mode]
    for i, item in enumerate(value):
        if len(reasons) >= MAX_REASONS:
            reasons.append("...")
            break
        if not isinstance(item, dict):
            reasons.append(f"[{i}] is not an object")
            continue
        for key in STRING_FIELDS:
            if key not in item:
                reasons.append(f"[{i}] missing {key}")
            elif not isinstance(item[key], str):
                reasons.append(f"[{i}].{key} is not a string")
        if count_field not in item:
            reasons.append(f"[{i}] missing {count_field}")
        elif not _is_number(item[count_field]):
            reasons.append(f"[{i}].{count_field} is not a finite number")
    return (len(reasons) == 0), reasons


def is_valid_active_data(value: Any) -> bool:
    return check_record_blob(value, "active")[0]


def is_valid_expired_data(value: Any) -> bool:
    return check_record_blob(value, "expired")[0]


def decode_records(value: Any, mode: Mode) -> DecodeResult:
    """Validate an untrusted blob and build typed records from it.

    ``value`` may be the raw JSON text or an already-deserialized object.
    """
    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except ValueError as e:
            return BlobError([f"{mode} data is not valid JSON: {e}"])
    ok, reasons = check_record_blob(value, mode)
    if not ok:
        return BlobError(reasons)
    if mode == "active":
        records = [
            ActiveDealerRecord(item["dealer"], item["service"], item["zone"], int(item["activeUsers"]))
            for item in value
        ]
    else:
        records = [
            ExpiredDealerRecord(item["dealer"], item["service"], item["zone"], int(item["expiredUsers"]))
            for item in value
        ]
    return BlobOk(records)


def records_or_empty(value: Any, mode: Mode) -> Tuple[list, List[str]]:
    """Records for a trusted view, or an empty list plus the reasons it was rejected."""
    result = decode_records(value, mode)
    if isinstance(result, BlobOk):
        return result.records, []
    return [], result.reasons
