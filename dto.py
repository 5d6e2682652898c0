from __future__ import annotations

from pydantic import BaseModel, field_validator

from core.keys import DEFAULT_WORKER


def _strip(v):
  return v.strip() if isinstance(v, str) else v


class LabelPageQuery(BaseModel):
  project_name: str
  task_index: int

  @field_validator("project_name", mode="before")
  def _trim_project_name(cls, v):
    return _strip(v)

  @field_validator("project_name")
  def _require_project_name(cls, v):
    if not v:
      raise ValueError("project_name must not be empty")
    return v


class ExportQuery(BaseModel):
  project_name: str

  @field_validator("project_name", mode="before")
  def _trim_project_name(cls, v):
    return _strip(v)

  @field_validator("project_name")
  def _require_project_name(cls, v):
    if not v:
      raise ValueError("project_name must not be empty")
    return v


class SubmissionsQuery(BaseModel):
  project_name: str
  task_index: int
  worker_id: str = DEFAULT_WORKER

  @field_validator("project_name", "worker_id", mode="before")
  def _trim(cls, v):
    return _strip(v)

  @field_validator("project_name", "worker_id")
  def _require_non_empty(cls, v, info):
    if not v:
      raise ValueError(f"{info.field_name} must not be empty")
    return v
