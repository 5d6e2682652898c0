from __future__ import annotations

import os
import sqlite3
from pathlib import Path
from typing import Optional

# Default DB path relative to the working directory: ./data/sat/sat.db
# Overridable with SAT_DB_PATH (the app's --db flag sets it).

_DEFAULT_DB_REL = Path('data') / 'sat' / 'sat.db'


def get_db_path(custom_path: Optional[Path] = None) -> Path:
    # 1) explicit custom path
    if custom_path is not None:
        path = Path(custom_path)
    else:
        # 2) env override, 3) default under cwd
        env_path = os.getenv('SAT_DB_PATH')
        path = Path(env_path) if env_path else Path.cwd() / _DEFAULT_DB_REL
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def get_connection(custom_path: Optional[Path] = None) -> sqlite3.Connection:
    db_path = get_db_path(custom_path)
    try:
        conn = sqlite3.connect(str(db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute('PRAGMA journal_mode = WAL;')  # Better concurrency
        conn.execute('PRAGMA synchronous = NORMAL;')  # Balance safety/speed
        conn.execute('PRAGMA temp_store = MEMORY;')
        return conn
    except sqlite3.Error as e:
        raise RuntimeError(f"Failed to connect to database at {db_path}: {e}") from e
