"""
Key-value storage backend (SQLite).

Exposes the four operations the session core consumes: load, save, has_key and
list_keys. Every sqlite3 failure is re-raised as StorageUnavailable; there is
no retry here. A value that is not plain JSON (NaN, infinities) is refused as
MalformedState before it reaches the database.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.errors import KeyNotFound, MalformedState, StorageUnavailable
from db.connection import get_connection
from db.repository import count_records, get_record, has_record, list_record_keys, put_record, transaction
from db.schema import init_db


def _is_duplicate_key(e: sqlite3.IntegrityError) -> bool:
  message = str(e)
  return "UNIQUE constraint" in message or "PRIMARY KEY" in message


class Storage:
  """SQLite-backed key-value store.

    Opens a short-lived connection per call unless an external connection is
    injected (tests pass an in-memory database).
    """

  def __init__(self, db_path: Optional[Path] = None, conn: Optional[sqlite3.Connection] = None):
    self.db_path = db_path
    self._external_conn = conn
    self._log = logging.getLogger("sat.core.storage")

  def _conn(self) -> sqlite3.Connection:
    if self._external_conn is not None:
      return self._external_conn
    try:
      conn = get_connection(self.db_path)
    except RuntimeError as e:
      raise StorageUnavailable(str(e)) from e
    init_db(conn)
    return conn

  def _release(self, conn: sqlite3.Connection) -> None:
    if conn is not self._external_conn:
      conn.close()

  def load(self, key: str) -> Dict[str, Any]:
    self._log.debug("load key=%s", key)
    try:
      conn = self._conn()
      try:
        value = get_record(conn, key)
      finally:
        self._release(conn)
    except sqlite3.Error as e:
      raise StorageUnavailable(f"load {key} failed: {e}") from e
    if value is None:
      raise KeyNotFound(key)
    return value

  def save(self, key: str, fields: Dict[str, Any], overwrite: bool = True) -> None:
    """Write `fields` at `key`. overwrite=False makes the write append-only."""
    self._log.debug("save key=%s overwrite=%s", key, overwrite)
    try:
      conn = self._conn()
      try:
        with transaction(conn):
          put_record(conn, key, fields, overwrite=overwrite)
      finally:
        self._release(conn)
    except (TypeError, ValueError) as e:
      raise MalformedState(f"save {key}: value is not storable JSON: {e}") from e
    except sqlite3.IntegrityError as e:
      if _is_duplicate_key(e):
        raise StorageUnavailable(f"key already exists: {key}") from e
      raise StorageUnavailable(f"save {key} rejected by store: {e}") from e
    except sqlite3.Error as e:
      raise StorageUnavailable(f"save {key} failed: {e}") from e

  def has_key(self, key: str) -> bool:
    try:
      conn = self._conn()
      try:
        return has_record(conn, key)
      finally:
        self._release(conn)
    except sqlite3.Error as e:
      raise StorageUnavailable(f"has_key {key} failed: {e}") from e

  def list_keys(self, prefix: str) -> List[str]:
    """Keys strictly under `prefix/`, in ascending (byte-wise) order."""
    try:
      conn = self._conn()
      try:
        return list_record_keys(conn, prefix)
      finally:
        self._release(conn)
    except sqlite3.Error as e:
      raise StorageUnavailable(f"list_keys {prefix} failed: {e}") from e

  def count(self) -> int:
    try:
      conn = self._conn()
      try:
        return count_records(conn)
      finally:
        self._release(conn)
    except sqlite3.Error as e:
      raise StorageUnavailable(f"count failed: {e}") from e
