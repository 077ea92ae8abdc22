"""
Write one snapshot to disk in the download format (snapshot-<kind>-<date>.json).

Usage:
    python scripts/export_snapshot.py                 # newest snapshot
    python scripts/export_snapshot.py --id <uuid>     # a specific snapshot
    python scripts/export_snapshot.py --out exports/
"""
from pathlib import Path
import os
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

from dealer_dashboard.config import settings
from dealer_dashboard.pipeline.snapshot_views import download_filename, download_json
from dealer_dashboard.pipeline.snapshots import InvalidSnapshotIdError, SnapshotStore


def main():
    import argparse
    p = argparse.ArgumentParser(description="Export a snapshot as JSON.")
    p.add_argument("--id", dest="snapshot_id", help="Snapshot id (default: newest)")
    p.add_argument("--out", default=".", help="Output directory")
    args = p.parse_args()

    store = SnapshotStore.open(settings.db_path)
    try:
        snap = store.get(args.snapshot_id) if args.snapshot_id else store.latest()
    except InvalidSnapshotIdError as e:
        print(e)
        sys.exit(1)
    finally:
        store.conn.close()
    if snap is None:
        print("No snapshot found.")
        sys.exit(1)
    if snap.has_data_issues:
        print("Warning: stored records failed validation:", "; ".join(snap.data_issues))
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / download_filename(snap)
    path.write_text(download_json(snap), encoding="utf-8")
    print("Wrote", path)


if __name__ == "__main__":
    main()
