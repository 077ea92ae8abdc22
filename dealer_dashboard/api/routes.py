import sqlite3
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from .schemas import SnapshotSummary, AutoSnapshotResult, DeleteResult
from ..config import settings
from ..pipeline.aggregate import (
    SORT_KEYS,
    combine_by_dealer,
    family_totals,
    family_zone_breakdown,
    filter_records,
    high_risk,
    history_summary,
    risk_tier,
    sort_expired_high_risk_first,
    sort_records,
    total_count,
    unique_zones,
    zone_summaries,
)
from ..pipeline.auto_snapshot import run_auto_snapshot
from ..pipeline.compare import compare_family_zones, compare_records
from ..pipeline.live import LiveResult, LiveState, live_summary, refresh_live
from ..pipeline.models import ActiveDealerRecord
from ..pipeline.snapshot_views import download_filename, download_json, snapshot_summary
from ..pipeline.snapshots import InvalidSnapshotIdError, SnapshotStore, available_dates, select_by_date
from ..pipeline.tabular import UnsupportedInputError
from ..providers.sheets import SheetFetchError, SheetSource
from ..services.charts import generate_expired_chart

router = APIRouter()


def get_store():
    store = SnapshotStore.open(settings.db_path)
    try:
        yield store
    finally:
        store.conn.close()

def get_sheet_source() -> SheetSource:
    return SheetSource(settings.sheet_csv_url, timeout=settings.http_timeout_seconds)

def get_live_state(request: Request) -> LiveState:
    return request.app.state.live


async def _live(state: LiveState, source: SheetSource, refresh: bool = False) -> LiveResult:
    if state.result is not None and not refresh:
        return state.result
    try:
        return await refresh_live(source, state)
    except (SheetFetchError, UnsupportedInputError) as e:
        raise HTTPException(503, f'sheet_unavailable: {e}')

def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(400, 'date must be YYYY-MM-DD')

def _record_out(record) -> dict:
    if isinstance(record, ActiveDealerRecord):
        return {
            'dealer': record.dealer,
            'service': record.service,
            'zone': record.zone,
            'active_users': record.active_users,
        }
    return {
        'dealer': record.dealer,
        'service': record.service,
        'zone': record.zone,
        'expired_users': record.expired_users,
        'risk': risk_tier(record.expired_users),
    }


@router.get(
    '/health',
    summary="Health check",
    description="Returns DB connectivity, poller state and the live data's last refresh/error.",
    tags=["Health"],
)
def health(request: Request, store: SnapshotStore = Depends(get_store)):
    try:
        latest = store.latest()
    except sqlite3.Error as e:
        raise HTTPException(503, f'db_error: {e}')
    poller = getattr(request.app.state, 'poller', None)
    handle = getattr(request.app.state, 'poll_handle', None)
    return {
        'ok': True,
        'db': 'ok',
        'latest_snapshot_at': latest.created_at.isoformat() if latest else None,
        'poller_running': bool(poller and poller.is_running(handle)),
        'live': request.app.state.live.status(),
    }

@router.get(
    '/live',
    summary="Live summary",
    description="Totals, combined zone/service aggregates, family totals and high-risk count for the latest sheet data.",
    tags=["Live"],
)
async def live(state: LiveState = Depends(get_live_state), source: SheetSource = Depends(get_sheet_source)):
    result = await _live(state, source)
    return {**live_summary(result), 'status': state.status()}

@router.post(
    '/live/refresh',
    summary="Refresh live data",
    description="Fetches the sheet now instead of waiting for the next poll tick.",
    tags=["Live"],
)
async def live_refresh(state: LiveState = Depends(get_live_state), source: SheetSource = Depends(get_sheet_source)):
    result = await _live(state, source, refresh=True)
    return {**live_summary(result), 'status': state.status()}

@router.get(
    '/live/active',
    summary="Active dealers",
    description="Filtered and sorted active dealer records. sort_by: count|dealer|zone.",
    tags=["Live"],
)
async def live_active(
    search: str | None = None,
    service: str | None = None,
    zone: str | None = None,
    sort_by: str = 'count',
    state: LiveState = Depends(get_live_state),
    source: SheetSource = Depends(get_sheet_source),
):
    if sort_by not in SORT_KEYS:
        raise HTTPException(400, 'sort_by must be count|dealer|zone')
    result = await _live(state, source)
    rows = sort_records(filter_records(result.active, search, service, zone), sort_by)
    return {
        'fetched_at': result.fetched_at.isoformat(),
        'count': len(rows),
        'total_active': total_count(rows),
        'families': {k: v['active'] for k, v in family_totals(rows, []).items()},
        'unique_zones': unique_zones(result.active),
        'zones': zone_summaries(result.active),
        'dealers': [_record_out(r) for r in rows],
    }

@router.get(
    '/live/expired',
    summary="Expired dealers",
    description="Filtered expired dealer records, high-risk dealers first. sort_by: count|dealer|zone.",
    tags=["Live"],
)
async def live_expired(
    search: str | None = None,
    service: str | None = None,
    zone: str | None = None,
    sort_by: str = 'count',
    state: LiveState = Depends(get_live_state),
    source: SheetSource = Depends(get_sheet_source),
):
    if sort_by not in SORT_KEYS:
        raise HTTPException(400, 'sort_by must be count|dealer|zone')
    result = await _live(state, source)
    rows = sort_expired_high_risk_first(filter_records(result.expired, search, service, zone), sort_by)
    return {
        'fetched_at': result.fetched_at.isoformat(),
        'count': len(rows),
        'total_expired': total_count(rows),
        'high_risk_count': len(high_risk(rows)),
        'high_risk': [_record_out(r) for r in high_risk(rows)],
        'families': {k: v['expired'] for k, v in family_totals([], rows).items()},
        'unique_zones': unique_zones(result.expired),
        'zones': zone_summaries(result.expired),
        'dealers': [_record_out(r) for r in rows],
    }

@router.get(
    '/live/zones/expired',
    summary="Expired users by family and zone",
    description="TES/McSOL expired totals per zone; compare_date adds change against that day's snapshot.",
    tags=["Live"],
)
async def live_zones_expired(
    compare_date: str | None = None,
    state: LiveState = Depends(get_live_state),
    source: SheetSource = Depends(get_sheet_source),
    store: SnapshotStore = Depends(get_store),
):
    result = await _live(state, source)
    current = family_zone_breakdown(result.expired)
    previous = None
    snapshot = None
    if compare_date:
        day = _parse_day(compare_date)
        snapshot = select_by_date(store.list_recent(settings.comparison_snapshot_limit), day, settings.local_tz)
        if snapshot is None:
            raise HTTPException(404, 'no snapshot for that date')
        previous = family_zone_breakdown(snapshot.expired_records)
    return {
        'fetched_at': result.fetched_at.isoformat(),
        'compare_date': compare_date,
        'snapshot': snapshot_summary(snapshot) if snapshot else None,
        'families': compare_family_zones(current, previous),
    }

@router.get(
    '/snapshots',
    response_model=list[SnapshotSummary],
    summary="List snapshots",
    description="Newest first. Snapshots whose stored records fail validation are flagged with has_data_issues.",
    tags=["Snapshots"],
)
def snapshots_list(limit: int | None = None, kind: str | None = None, store: SnapshotStore = Depends(get_store)):
    limit = settings.snapshot_list_limit if limit is None else limit
    if limit < 1:
        raise HTTPException(400, 'limit must be >= 1')
    if kind is not None and kind not in ('manual', 'auto'):
        raise HTTPException(400, 'kind must be manual|auto')
    limit = min(limit, settings.snapshot_list_max)
    return [snapshot_summary(s) for s in store.list_recent(limit, kind=kind)]

@router.post(
    '/snapshots',
    response_model=SnapshotSummary,
    status_code=201,
    summary="Save manual snapshot",
    description="Fetches the sheet and stores the result as a manual snapshot.",
    tags=["Snapshots"],
)
async def snapshots_save(
    state: LiveState = Depends(get_live_state),
    source: SheetSource = Depends(get_sheet_source),
    store: SnapshotStore = Depends(get_store),
):
    result = await _live(state, source, refresh=True)
    snap = store.insert('manual', result.active, result.expired)
    return snapshot_summary(snap)

@router.post(
    '/snapshots/auto',
    response_model=AutoSnapshotResult,
    status_code=201,
    summary="Run auto snapshot",
    description="Runs the scheduled auto-snapshot job now. Falls back to the newest manual snapshot (provenance=reused).",
    tags=["Snapshots"],
)
async def snapshots_auto(source: SheetSource = Depends(get_sheet_source), store: SnapshotStore = Depends(get_store)):
    return await run_auto_snapshot(store, source, prefer_live=settings.auto_snapshot_prefer_live)

@router.get(
    '/snapshots/dates',
    summary="Available snapshot dates",
    description="Distinct local dates with at least one snapshot, newest first.",
    tags=["Snapshots"],
)
def snapshots_dates(store: SnapshotStore = Depends(get_store)):
    snaps = store.list_recent(settings.comparison_snapshot_limit)
    return {'dates': available_dates(snaps, settings.local_tz), 'count': len(snaps)}

@router.get(
    '/snapshots/{snapshot_id}/download',
    summary="Download snapshot",
    description="Snapshot as indented JSON with a metadata block, served as snapshot-<kind>-<date>.json.",
    tags=["Snapshots"],
)
def snapshots_download(snapshot_id: str, store: SnapshotStore = Depends(get_store)):
    try:
        snap = store.get(snapshot_id)
    except InvalidSnapshotIdError as e:
        raise HTTPException(400, str(e))
    if not snap:
        raise HTTPException(404, 'snapshot not found')
    return Response(
        content=download_json(snap),
        media_type='application/json',
        headers={'Content-Disposition': f'attachment; filename="{download_filename(snap)}"'},
    )

@router.delete(
    '/snapshots/{snapshot_id}',
    response_model=DeleteResult,
    summary="Delete snapshot",
    tags=["Snapshots"],
)
def snapshots_delete(snapshot_id: str, store: SnapshotStore = Depends(get_store)):
    try:
        deleted = store.delete(snapshot_id)
    except InvalidSnapshotIdError as e:
        raise HTTPException(400, str(e))
    if not deleted:
        raise HTTPException(404, 'snapshot not found')
    return DeleteResult(ok=True, deleted=snapshot_id)

@router.get(
    '/history/{day}',
    summary="Historical summary",
    description="Totals, risk counts, expired rate and family totals for the newest snapshot taken on that date.",
    tags=["History"],
)
def history(day: str, store: SnapshotStore = Depends(get_store)):
    target = _parse_day(day)
    snap = select_by_date(store.list_recent(settings.history_snapshot_limit), target, settings.local_tz)
    if snap is None:
        raise HTTPException(404, 'no snapshot for that date')
    expired_sorted = sorted(snap.expired_records, key=lambda r: r.expired_users, reverse=True)
    return {
        'date': day,
        'snapshot': snapshot_summary(snap),
        'summary': history_summary(snap.active_records, snap.expired_records),
        'active_zones': zone_summaries(snap.active_records),
        'expired_zones': zone_summaries(snap.expired_records),
        'active': [_record_out(r) for r in sort_records(snap.active_records)],
        'expired': [_record_out(r) for r in expired_sorted],
        'dealers': combine_by_dealer(snap.active_records, snap.expired_records),
    }

@router.get(
    '/compare',
    summary="Compare live data with a snapshot",
    description=(
        "Compares the current sheet data with the newest snapshot on the given date "
        "(default: newest available date). mode: active|expired."
    ),
    tags=["Compare"],
)
async def compare(
    day: str | None = Query(default=None, alias="date"),
    mode: str = 'expired',
    refresh: bool = False,
    state: LiveState = Depends(get_live_state),
    source: SheetSource = Depends(get_sheet_source),
    store: SnapshotStore = Depends(get_store),
):
    mode = mode.lower()
    if mode not in ('active', 'expired'):
        raise HTTPException(400, 'mode must be active|expired')
    snaps = store.list_recent(settings.comparison_snapshot_limit)
    dates = available_dates(snaps, settings.local_tz)
    if not dates:
        raise HTTPException(404, 'no snapshots available')
    target = _parse_day(day or dates[0])
    snap = select_by_date(snaps, target, settings.local_tz)
    if snap is None:
        raise HTTPException(404, 'no snapshot for that date')
    result = await _live(state, source, refresh=refresh)
    current = result.active if mode == 'active' else result.expired
    return {
        'date': target.isoformat(),
        'available_dates': dates,
        'current_fetched_at': result.fetched_at.isoformat(),
        'snapshot': snapshot_summary(snap),
        **compare_records(current, snap.records(mode), mode),
    }

@router.get(
    '/charts/expired.png',
    summary="Expired users chart",
    description="PNG bar chart of live expired users per dealer (top N by count).",
    tags=["Charts"],
)
async def chart_expired(
    limit: int = 30,
    state: LiveState = Depends(get_live_state),
    source: SheetSource = Depends(get_sheet_source),
):
    if limit < 1:
        raise HTTPException(400, 'limit must be >= 1')
    result = await _live(state, source)
    top = sort_records(result.expired)[:limit]
    png = generate_expired_chart(top)
    if png is None:
        raise HTTPException(404, 'no expired data')
    return Response(content=png, media_type='image/png')
