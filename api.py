from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from flask import Blueprint, Response, jsonify, render_template, request
from pydantic import ValidationError

from core.errors import (
  DecodeError,
  DemoModeSaveRejected,
  KeyNotFound,
  MalformedState,
  StorageUnavailable,
)
from core.keys import DEFAULT_WORKER, index_to_str
from core.storage import Storage
from dto import ExportQuery, LabelPageQuery, SubmissionsQuery
from logging_setup import bind_session
from models.project import Assignment
from models.session import Session, parse_json
from services.assignment_service import AssignmentService
from services.export_service import ExportService
from services.project_service import ProjectService, decode_record
from services.session_service import SessionService

TEMPLATE_DIR = Path(__file__).parent.resolve() / "templates"

# first match wins; subclasses must precede their bases
_ERROR_STATUS = (
  (DecodeError, 400),
  (ValidationError, 400),
  (DemoModeSaveRejected, 403),
  (KeyNotFound, 404),
  (MalformedState, 422),
  (StorageUnavailable, 503),
)


def _status_for(exc: BaseException) -> int:
  for cls, status in _ERROR_STATUS:
    if isinstance(exc, cls):
      return status
  return 500


def _json_body() -> Any:
  return parse_json(request.get_data(as_text=True), "JSON body")


def create_sat_api(storage: Storage, notifier: Any = None, name: str = "sat_api") -> Blueprint:
  """Blueprint with the labeling page, load, save and export endpoints.

    Every failure is logged server-side and answered with an empty body; the
    status code carries the error class.
    """
  bp = Blueprint(name, __name__, template_folder=str(TEMPLATE_DIR))
  log = logging.getLogger(f"sat.api.{name}")

  projects = ProjectService(storage)
  assignments = AssignmentService(storage, projects)
  sessions = SessionService(storage, assignments)
  exporter = ExportService(storage, projects, sessions)

  def _fail(exc: Exception) -> Response:
    status = _status_for(exc)
    if status >= 500:
      log.exception("%s %s failed", request.method, request.path)
    else:
      log.warning("%s %s rejected (%s): %s", request.method, request.path, type(exc).__name__, exc)
    return Response(status=status)

  @bp.before_request
  def _bp_log_request():
    log.debug("request %s %s qs=%s", request.method, request.path, request.query_string)

  @bp.after_request
  def _bp_log_response(resp):
    log.debug("response %s %s -> %s", request.method, request.path, resp.status_code)
    return resp

  # -------------------- Labeling page --------------------
  @bp.route("/label2dv2", methods=["GET"])
  def label2d_page():
    """Render the labeling page for the default worker's assignment.

        Query params:
          - project_name
          - task_index: integer task index
        The assignment is created on the first visit.
        """
    try:
      query = LabelPageQuery.model_validate(request.args.to_dict())
      task_id = index_to_str(query.task_index)
      bind_session(query.project_name, task_id, DEFAULT_WORKER)
      assignment = assignments.get_or_create_assignment(query.project_name, task_id, DEFAULT_WORKER)
    except Exception as e:
      return _fail(e)
    return render_template("label2d.html", assignment=assignment.to_wire())

  # -------------------- Load / Save --------------------
  @bp.route("/postLoadAssignmentV2", methods=["POST"])
  def post_load_assignment():
    """Return the current session for the posted assignment's task."""
    try:
      assignment = decode_record(Assignment, _json_body(), "request body")
      project = assignment.task.project_options.name
      task_id = index_to_str(assignment.task.index)
      bind_session(project, task_id, DEFAULT_WORKER)
      session = sessions.load(project, task_id, DEFAULT_WORKER)
    except Exception as e:
      return _fail(e)
    return Response(session.to_json(), mimetype="application/json")

  @bp.route("/postSaveV2", methods=["POST"])
  def post_save():
    """Persist the posted session as a new version."""
    try:
      session = Session.from_json(request.get_data(as_text=True))
      bind_session(session.config.project_name, session.config.task_id, session.config.worker_id)
      key = sessions.save(session)
    except Exception as e:
      return _fail(e)
    if notifier is not None:
      cfg = session.config
      notifier.emit_thread_safe(
        "submission_saved", {
          "key": key,
          "project": cfg.project_name,
          "task": cfg.task_id,
          "worker": cfg.worker_id,
          "submitTime": cfg.submit_time,
        })
    return Response(status=200)

  # -------------------- Export --------------------
  @bp.route("/postExportV2", methods=["POST"])
  def post_export():
    """Download latest results of every task as `<project>_results.json`."""
    try:
      query = ExportQuery.model_validate({"project_name": request.values.get("project_name", "")})
      bind_session(query.project_name)
      data = exporter.export_json(query.project_name)
    except Exception as e:
      return _fail(e)
    resp = Response(data, mimetype="application/json")
    resp.headers["Content-Disposition"] = f"attachment; filename={query.project_name}_results.json"
    return resp

  # -------------------- Inspection --------------------
  @bp.route("/api/submissions", methods=["GET"])
  def api_list_submissions():
    try:
      query = SubmissionsQuery.model_validate(request.args.to_dict())
      task_id = index_to_str(query.task_index)
      bind_session(query.project_name, task_id, query.worker_id)
      keys = sessions.list_submissions(query.project_name, task_id, query.worker_id)
    except Exception as e:
      return _fail(e)
    return jsonify({"keys": keys, "count": len(keys)})

  return bp
