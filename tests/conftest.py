"""
Pytest configuration and shared fixtures for session server tests.
"""

# Ensure the project root is on sys.path so imports like `from core...` work
import sys
from pathlib import Path as _Path

_THIS_DIR = _Path(__file__).resolve().parent
_TOOL_ROOT = _THIS_DIR.parent
if str(_TOOL_ROOT) not in sys.path:
  sys.path.insert(0, str(_TOOL_ROOT))

import pytest
import tempfile
import shutil
import sqlite3
from pathlib import Path
from typing import Generator, Dict, Any, List

from flask import Flask
from flask.testing import FlaskClient

from core.keys import index_to_str, project_key, task_key
from core.storage import Storage
from db.schema import init_db
from services.assignment_service import AssignmentService
from services.export_service import ExportService
from services.project_service import ProjectService
from services.session_service import SessionService
from tests.fixtures.factories import ProjectOptionsDataFactory, TaskDataFactory, make_items


@pytest.fixture(scope="session")
def temp_data_dir() -> Generator[Path, None, None]:
  """Create a temporary directory for test data that persists for the session."""
  temp_dir = Path(tempfile.mkdtemp(prefix="sat_test_"))
  try:
    yield temp_dir
  finally:
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(scope="session", autouse=True)
def _force_test_db_env(temp_data_dir: Path) -> Generator[None, None, None]:
  """Force all DB connections during tests to use an isolated temp file.

  Guards the real database against any code path that calls get_connection()
  without an explicit path.
  """
  import os

  original_db_path = os.environ.get("SAT_DB_PATH")
  os.environ["SAT_DB_PATH"] = str(temp_data_dir / "session_default.db")
  try:
    yield
  finally:
    if original_db_path is not None:
      os.environ["SAT_DB_PATH"] = original_db_path
    else:
      os.environ.pop("SAT_DB_PATH", None)


@pytest.fixture
def temp_db() -> Generator[sqlite3.Connection, None, None]:
  """Create a temporary in-memory SQLite database for testing."""
  conn = sqlite3.connect(":memory:")
  conn.row_factory = sqlite3.Row
  init_db(conn)
  try:
    yield conn
  finally:
    conn.close()


@pytest.fixture
def temp_db_file(temp_data_dir: Path) -> Path:
  """Path of a fresh, not yet created, SQLite database file."""
  import uuid

  return temp_data_dir / f"test_{uuid.uuid4().hex}.db"


@pytest.fixture
def storage(temp_db: sqlite3.Connection) -> Storage:
  return Storage(conn=temp_db)


@pytest.fixture
def project_service(storage: Storage) -> ProjectService:
  return ProjectService(storage)


@pytest.fixture
def assignment_service(storage: Storage, project_service: ProjectService) -> AssignmentService:
  return AssignmentService(storage, project_service)


@pytest.fixture
def session_service(storage: Storage, assignment_service: AssignmentService) -> SessionService:
  return SessionService(storage, assignment_service)


@pytest.fixture
def export_service(storage: Storage, project_service: ProjectService,
                   session_service: SessionService) -> ExportService:
  return ExportService(storage, project_service, session_service)


@pytest.fixture
def app(storage: Storage) -> Flask:
  """Flask application with the session blueprint over the in-memory store."""
  from api import create_sat_api

  app = Flask(__name__)
  app.config.update({"TESTING": True, "SECRET_KEY": "test-secret-key"})
  app.register_blueprint(create_sat_api(storage))
  return app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
  return app.test_client()


@pytest.fixture
def seeded_project(storage: Storage) -> Dict[str, Any]:
  """Project `demo_project` with task 0 (a.jpg, b.jpg) and task 1 (c.jpg)."""
  return create_test_project(storage, "demo_project", [["a.jpg", "b.jpg"], ["c.jpg"]])


# Utility functions for tests
def create_test_project(storage: Storage,
                        name: str,
                        task_urls: List[List[str]],
                        **options: Any) -> Dict[str, Any]:
  """Write a project record and one task record per url list; returns the options."""
  project_options = ProjectOptionsDataFactory(name=name, **options)
  all_items = make_items([url for urls in task_urls for url in urls])
  storage.save(project_key(name), {"options": project_options, "items": all_items})
  for index, urls in enumerate(task_urls):
    task = TaskDataFactory(projectOptions=project_options, index=index, items=make_items(urls))
    storage.save(task_key(name, index_to_str(index)), task)
  return project_options
