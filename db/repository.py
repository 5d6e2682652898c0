from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from typing import Any, List, Optional


@contextmanager
def transaction(conn: sqlite3.Connection):
  """Context manager for database transactions with proper error handling."""
  try:
    yield conn
    conn.commit()
  except Exception:
    conn.rollback()
    raise


def _prefix_bounds(prefix: str) -> tuple[str, str]:
  """Half-open key range [prefix/, prefix0) covering keys strictly under prefix."""
  base = prefix.rstrip("/")
  return base + "/", base + "0"


def get_record(conn: sqlite3.Connection, key: str) -> Optional[Any]:
  row = conn.execute("SELECT value_json FROM records WHERE key = ?", (key, )).fetchone()
  if not row:
    return None
  return json.loads(row[0])


def has_record(conn: sqlite3.Connection, key: str) -> bool:
  row = conn.execute("SELECT 1 FROM records WHERE key = ?", (key, )).fetchone()
  return row is not None


def put_record(conn: sqlite3.Connection, key: str, value: Any, overwrite: bool = True) -> None:
  """Store one JSON value. With overwrite=False a duplicate key raises sqlite3.IntegrityError.

  NaN and infinities raise ValueError before anything is written.
  """
  payload = json.dumps(value, ensure_ascii=False, allow_nan=False)
  if overwrite:
    conn.execute(
      """
      INSERT INTO records(key, value_json) VALUES (?, ?)
      ON CONFLICT(key) DO UPDATE SET value_json = excluded.value_json, updated_at = CURRENT_TIMESTAMP
      """,
      (key, payload),
    )
  else:
    conn.execute("INSERT INTO records(key, value_json) VALUES (?, ?)", (key, payload))


def list_record_keys(conn: sqlite3.Connection, prefix: str) -> List[str]:
  lo, hi = _prefix_bounds(prefix)
  cur = conn.execute(
    "SELECT key FROM records WHERE key >= ? AND key < ? ORDER BY key",
    (lo, hi),
  )
  return [str(r[0]) for r in cur.fetchall()]


def count_records(conn: sqlite3.Connection) -> int:
  return int(conn.execute("SELECT COUNT(1) FROM records").fetchone()[0])
