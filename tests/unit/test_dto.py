import pytest
from pydantic import ValidationError

from dto import ExportQuery, LabelPageQuery, SubmissionsQuery


def test_label_page_query_coerces_and_trims():
  q = LabelPageQuery.model_validate({"project_name": "  demo  ", "task_index": "3"})
  assert q.project_name == "demo"
  assert q.task_index == 3


@pytest.mark.parametrize("payload", [
  {"project_name": "", "task_index": 0},
  {"project_name": "demo"},
  {"project_name": "demo", "task_index": "x"},
])
def test_label_page_query_rejects_bad_input(payload):
  with pytest.raises(ValidationError):
    LabelPageQuery.model_validate(payload)


def test_export_query_requires_name():
  with pytest.raises(ValidationError, match="must not be empty"):
    ExportQuery.model_validate({"project_name": "   "})


def test_submissions_query_defaults_worker():
  q = SubmissionsQuery.model_validate({"project_name": "demo", "task_index": 0})
  assert q.worker_id == "default_worker"


@pytest.mark.parametrize("worker", ["", "   "])
def test_submissions_query_rejects_empty_worker(worker):
  with pytest.raises(ValidationError, match="worker_id must not be empty"):
    SubmissionsQuery.model_validate({"project_name": "demo", "task_index": 0, "worker_id": worker})
