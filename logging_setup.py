"""
Logging for the session server.

Every record carries the request id and, once a route has resolved it, the
annotation session it is working on (project, task and worker). Text logs show
both in brackets; JSON logs emit them as separate fields.
"""

import contextvars
import logging
import logging.config
import os
import sys
import time
import uuid
from typing import Any, Dict, NamedTuple, Optional

from pythonjsonlogger import jsonlogger

UNBOUND = "-"


class SessionContext(NamedTuple):
  project: str = UNBOUND
  task: str = UNBOUND
  worker: str = UNBOUND

  def label(self) -> str:
    if self.project == UNBOUND:
      return UNBOUND
    return "/".join(p for p in (self.project, self.task, self.worker) if p != UNBOUND)


_request_id_ctx: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default=UNBOUND)
_session_ctx: contextvars.ContextVar[SessionContext] = contextvars.ContextVar("sat_session", default=SessionContext())

# Third-party loggers kept at WARNING unless running at DEBUG
_CHATTY_LOGGERS = ("werkzeug", "websockets")


class SessionContextFilter(logging.Filter):
  """Copies the request id and the bound session onto each record."""

  def filter(self, record: logging.LogRecord) -> bool:
    ctx = _session_ctx.get()
    record.request_id = _request_id_ctx.get()
    record.session = ctx.label()
    record.project = ctx.project
    record.task = ctx.task
    record.worker = ctx.worker
    return True


def bind_session(project: Any, task_id: Any = None, worker: Any = None) -> None:
  """Tag the rest of this request's log lines with a session.

  Empty or missing parts stay unbound.
  """
  _session_ctx.set(SessionContext(*(str(p) if p not in (None, "") else UNBOUND for p in (project, task_id, worker))))


def clear_session() -> None:
  _session_ctx.set(SessionContext())


def get_session_context() -> SessionContext:
  return _session_ctx.get()


def generate_request_id(header_value: str | None = None) -> str:
  if header_value:
    return header_value.strip()[:128] or str(uuid.uuid4())
  return str(uuid.uuid4())


def set_request_id(request_id: str) -> None:
  _request_id_ctx.set(request_id)


def get_request_id() -> str:
  return _request_id_ctx.get()


def _build_text_formatter() -> logging.Formatter:
  return logging.Formatter(
    fmt="%(asctime)s %(levelname)s %(name)s [req=%(request_id)s sat=%(session)s] - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S%z",
  )


def _build_json_formatter() -> logging.Formatter:
  return jsonlogger.JsonFormatter(
    "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s %(project)s %(task)s %(worker)s",
    json_ensure_ascii=False,
  )


def _level_from_env(app_debug: Optional[bool]) -> int:
  level_name = os.getenv("SAT_LOG_LEVEL")
  if not level_name and app_debug:
    level_name = "DEBUG"
  return getattr(logging, (level_name or "INFO").upper(), logging.INFO)


def _handler_config(formatter: str, log_file: Optional[str]) -> Dict[str, Any]:
  common = {"formatter": formatter, "filters": ["sat_context"]}
  if log_file:
    return {
      "class": "logging.handlers.RotatingFileHandler",
      "filename": log_file,
      "maxBytes": 10 * 1024 * 1024,
      "backupCount": 3,
      "encoding": "utf-8",
      **common,
    }
  return {"class": "logging.StreamHandler", "stream": sys.stdout, **common}


def setup_logging(app_debug: bool | None = None) -> None:
  """Configure root logging for the session server.

  Environment variables:
  - SAT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default INFO; DEBUG if app_debug True)
  - SAT_LOG_JSON: 1 to enable JSON logs (default 0)
  - SAT_LOG_FILE: path to a rotating log file (stdout by default)
  """
  level = _level_from_env(app_debug)
  formatter = "json" if os.getenv("SAT_LOG_JSON", "0").strip().lower() in ("1", "true") else "text"
  builder = _build_json_formatter if formatter == "json" else _build_text_formatter

  logging.config.dictConfig({
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {"sat_context": {"()": SessionContextFilter}},
    "formatters": {formatter: {"()": builder}},
    "handlers": {"sat": _handler_config(formatter, os.getenv("SAT_LOG_FILE"))},
    "root": {"level": level, "handlers": ["sat"]},
    "loggers": {name: {"level": "INFO" if level <= logging.DEBUG else "WARNING"} for name in _CHATTY_LOGGERS},
  })


def install_flask_request_hooks(app) -> None:
  """Attach Flask hooks for request correlation and access logging.

  Each request starts unbound with an id taken from X-Request-Id (or generated);
  the access line names the session the route bound, and the id is echoed back.
  """
  from flask import g, request

  access_log = logging.getLogger("sat.access")

  @app.before_request
  def _start_request():
    g._start_time = time.perf_counter()
    set_request_id(generate_request_id(request.headers.get("X-Request-Id")))
    clear_session()

  @app.after_request
  def _log_access(response):
    start = getattr(g, "_start_time", None)
    elapsed = f"{int((time.perf_counter() - start) * 1000)}ms" if start is not None else "-"
    access_log.info(
      "%s %s -> %s (%s) session=%s",
      request.method,
      request.full_path if request.query_string else request.path,
      response.status_code,
      elapsed,
      get_session_context().label(),
    )
    response.headers.setdefault("X-Request-Id", get_request_id())
    return response
