from __future__ import annotations

import sqlite3

# One table: the key-value namespace used by the session server.
#   <project>/project, <project>/tasks/<task>, <project>/assignments/<task>/<worker>,
#   <project>/submissions/<task>/<worker>/<submit ms>
SCHEMA_SQL = r"""
CREATE TABLE IF NOT EXISTS records (
  key         TEXT PRIMARY KEY,
  value_json  TEXT NOT NULL CHECK (json_valid(value_json)),
  created_at  DATETIME DEFAULT CURRENT_TIMESTAMP,
  updated_at  DATETIME
)
WITHOUT ROWID;
"""


def init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)
    conn.commit()
