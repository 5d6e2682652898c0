"""
Storage key namespace and clock helpers.

Layout (joined with '/'):
  <project>/project
  <project>/tasks/<task id>
  <project>/assignments/<task id>/<worker id>
  <project>/submissions/<task id>/<worker id>/<submit time ms>
"""

import time

from core.errors import MalformedState

DEFAULT_WORKER = "default_worker"

_SEP = "/"


def index_to_str(index: int) -> str:
  """Zero-padded task id used in keys and configs."""
  return f"{int(index):06d}"


def record_timestamp() -> int:
  """Wall-clock time in Unix milliseconds."""
  return time.time_ns() // 1_000_000


def join_key(*parts) -> str:
  """Join key components; every component must be non-empty."""
  cleaned = [str(p).strip(_SEP) for p in parts]
  if any(not c for c in cleaned):
    raise MalformedState(f"empty key component in {parts!r}")
  return _SEP.join(cleaned)


def project_key(project: str) -> str:
  return join_key(project, "project")


def tasks_prefix(project: str) -> str:
  return join_key(project, "tasks")


def task_key(project: str, task_id: str) -> str:
  return join_key(project, "tasks", task_id)


def assignment_key(project: str, task_id: str, worker: str) -> str:
  return join_key(project, "assignments", task_id, worker)


def submissions_prefix(project: str, task_id: str, worker: str) -> str:
  return join_key(project, "submissions", task_id, worker)


def submission_key(project: str, task_id: str, worker: str, submit_time: int) -> str:
  return join_key(submissions_prefix(project, task_id, worker), int(submit_time))
