"""
Tests for the key-value repository layer.
"""

import pytest
import sqlite3

from db.repository import (
  transaction,
  get_record,
  has_record,
  put_record,
  list_record_keys,
  count_records,
)


class TestRecordRepository:
  """Test record storage operations."""

  def test_put_and_get_record(self, temp_db):
    """A stored JSON value is returned decoded."""
    put_record(temp_db, "p/project", {"options": {"name": "p"}, "items": []})
    temp_db.commit()

    assert get_record(temp_db, "p/project") == {"options": {"name": "p"}, "items": []}
    assert has_record(temp_db, "p/project")

  def test_get_missing_record_returns_none(self, temp_db):
    assert get_record(temp_db, "p/nothing") is None
    assert not has_record(temp_db, "p/nothing")

  def test_put_record_overwrites_by_default(self, temp_db):
    put_record(temp_db, "k", {"v": 1})
    put_record(temp_db, "k", {"v": 2})

    assert get_record(temp_db, "k") == {"v": 2}
    assert count_records(temp_db) == 1

  def test_put_record_append_only_rejects_duplicate(self, temp_db):
    """overwrite=False never replaces an existing value."""
    put_record(temp_db, "k", {"v": 1}, overwrite=False)

    with pytest.raises(sqlite3.IntegrityError):
      put_record(temp_db, "k", {"v": 2}, overwrite=False)
    assert get_record(temp_db, "k") == {"v": 1}

  def test_put_record_rejects_non_finite_numbers(self, temp_db):
    with pytest.raises(ValueError):
      put_record(temp_db, "k", {"x1": float("inf")})
    assert count_records(temp_db) == 0

  def test_list_record_keys_is_prefix_scoped_and_ordered(self, temp_db):
    """Only keys strictly under `prefix/` are listed, in ascending order."""
    for key in (
        "p/submissions/000000/w/1500000000002",
        "p/submissions/000000/w/1500000000001",
        "p/submissions/000000/w2/1500000000000",
        "p/submissions/000000/w",
        "p/submissions/000001/w/1500000000000",
    ):
      put_record(temp_db, key, {})

    keys = list_record_keys(temp_db, "p/submissions/000000/w")

    assert keys == [
      "p/submissions/000000/w/1500000000001",
      "p/submissions/000000/w/1500000000002",
    ]

  def test_list_record_keys_accepts_trailing_slash(self, temp_db):
    put_record(temp_db, "p/tasks/000000", {})
    assert list_record_keys(temp_db, "p/tasks/") == ["p/tasks/000000"]

  def test_list_record_keys_empty(self, temp_db):
    assert list_record_keys(temp_db, "missing") == []

  def test_transaction_commits(self, temp_db):
    with transaction(temp_db):
      put_record(temp_db, "k", {"v": 1})
    assert count_records(temp_db) == 1

  def test_transaction_rolls_back_on_error(self, temp_db):
    with pytest.raises(RuntimeError):
      with transaction(temp_db):
        put_record(temp_db, "k", {"v": 1})
        raise RuntimeError("boom")
    assert count_records(temp_db) == 0
