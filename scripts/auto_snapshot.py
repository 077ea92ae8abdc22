"""
Store one auto snapshot, the same job the service schedules daily.

Usage:
    python scripts/auto_snapshot.py             # live sheet first, newest manual snapshot as fallback
    python scripts/auto_snapshot.py --no-live   # always reuse the newest manual snapshot
"""
from pathlib import Path
import asyncio
import json
import os
import sys

# Ensure repo root is on sys.path and is the working directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

from dealer_dashboard.config import settings
from dealer_dashboard.logging import setup_logging
from dealer_dashboard.pipeline.auto_snapshot import run_auto_snapshot
from dealer_dashboard.pipeline.snapshots import SnapshotStore
from dealer_dashboard.providers.sheets import SheetSource


def main():
    import argparse
    p = argparse.ArgumentParser(description="Store an auto snapshot.")
    p.add_argument("--no-live", action="store_true", help="Skip the sheet and reuse the newest manual snapshot")
    args = p.parse_args()

    setup_logging()
    store = SnapshotStore.open(settings.db_path)
    source = SheetSource(settings.sheet_csv_url, timeout=settings.http_timeout_seconds)
    try:
        outcome = asyncio.run(run_auto_snapshot(store, source, prefer_live=not args.no_live))
    finally:
        store.conn.close()
    print(json.dumps(outcome, indent=2))


if __name__ == "__main__":
    main()
