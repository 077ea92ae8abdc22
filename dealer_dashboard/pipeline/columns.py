from __future__ import annotations

from dataclasses import dataclass, fields

UNMAPPED = -1

# Checked in this order; a header is claimed by the first key whose alias it contains.
HEADER_ALIASES = {
    "active_dealer": ("a-dealers",),
    "active_service": ("a-service",),
    "active_count": ("active users",),
    "active_zone": ("a-zone",),
    "expired_dealer": ("e-dealers",),
    "expired_service": ("e-service",),
    "expired_count": ("expired users",),
    "expired_zone": ("e-zone",),
}


@dataclass(frozen=True)
class ColumnMap:
    active_dealer: int = UNMAPPED
    active_service: int = UNMAPPED
    active_zone: int = UNMAPPED
    active_count: int = UNMAPPED
    expired_dealer: int = UNMAPPED
    expired_service: int = UNMAPPED
    expired_zone: int = UNMAPPED
    expired_count: int = UNMAPPED

    def as_dict(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def side(self, mode: str) -> tuple[int, int, int, int]:
        """(dealer, service, zone, count) indices for one side of the sheet."""
        return (
            getattr(self, f"{mode}_dealer"),
            getattr(self, f"{mode}_service"),
            getattr(self, f"{mode}_zone"),
            getattr(self, f"{mode}_count"),
        )

    def side_mapped(self, mode: str) -> bool:
        return all(idx != UNMAPPED for idx in self.side(mode))

    @property
    def max_index(self) -> int:
        return max(self.as_dict().values())

    @property
    def unmapped(self) -> list[str]:
        return [key for key, idx in self.as_dict().items() if idx == UNMAPPED]


def map_columns(headers: list[str]) -> ColumnMap:
    found: dict[str, int] = {}
    for index, header in enumerate(headers):
        normalized = header.lower().strip()
        for key, aliases in HEADER_ALIASES.items():
            if any(alias in normalized for alias in aliases):
                # first header wins; a later duplicate is ignored rather than re-tried
                found.setdefault(key, index)
                break
    return ColumnMap(**found)
