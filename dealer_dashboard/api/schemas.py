from pydantic import BaseModel
from typing import Optional, Literal, List

class SnapshotSummary(BaseModel):
    id: str
    snapshot_type: Literal['manual', 'auto']
    provenance: Literal['live', 'reused']
    source_snapshot_id: Optional[str] = None
    total_active: int
    total_expired: int
    total_dealers: int
    active_records: int
    expired_records: int
    has_data_issues: bool
    data_issues: List[str] = []
    created_at: str

class SnapshotTotals(BaseModel):
    total_active: int
    total_expired: int
    total_dealers: int

class AutoSnapshotResult(BaseModel):
    success: bool
    snapshot_id: str
    provenance: Literal['live', 'reused']
    source_snapshot_id: Optional[str] = None
    totals: SnapshotTotals

class DeleteResult(BaseModel):
    ok: bool
    deleted: str
