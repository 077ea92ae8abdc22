import sqlite3
from pathlib import Path

def get_conn(db_path: str) -> sqlite3.Connection:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, isolation_level=None, check_same_thread=False)  # autocommit
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn

DDL = [
    # Persisted snapshots (insert + delete only, never updated in place)
    """
CREATE TABLE IF NOT EXISTS snapshots (
  id TEXT PRIMARY KEY,
  snapshot_type TEXT NOT NULL,      -- 'manual'|'auto'
  active_data TEXT NOT NULL,        -- JSON array of active dealer records
  expired_data TEXT NOT NULL,       -- JSON array of expired dealer records
  total_active INTEGER NOT NULL,
  total_expired INTEGER NOT NULL,
  total_dealers INTEGER NOT NULL,
  provenance TEXT NOT NULL DEFAULT 'live',  -- 'live'|'reused'
  source_snapshot_id TEXT,          -- set when provenance='reused'
  created_at_utc TEXT NOT NULL,
  updated_at_utc TEXT NOT NULL
);
""",
    "CREATE INDEX IF NOT EXISTS ix_snapshots_created ON snapshots(created_at_utc DESC);",
    "CREATE INDEX IF NOT EXISTS ix_snapshots_type_created ON snapshots(snapshot_type, created_at_utc DESC);",
]

def migrate(conn: sqlite3.Connection):
    cur = conn.cursor()
    for stmt in DDL:
        cur.execute(stmt)
    conn.commit()
