"""
Project, task and assignment records.

These are owned by the project-creation side of the system; the session core
only reads them. Unknown fields are kept (`extra="allow"`) so re-saving an
assignment never loses data written by a newer creator.
"""

from __future__ import annotations

from typing import List

from pydantic import ConfigDict, Field

from models.session import Attribute, SatModel


class Category(SatModel):
  name: str = ""
  subcategories: List["Category"] = Field(default_factory=list)


class ProjectOptions(SatModel):
  name: str = ""
  item_type: str = ""
  label_type: str = ""
  task_size: int = 0
  handler_url: str = ""
  page_title: str = ""
  categories: List[Category] = Field(default_factory=list)
  attributes: List[Attribute] = Field(default_factory=list)
  instructions: str = ""
  demo_mode: bool = False
  bundle_file: str = ""


class TaskItem(SatModel):
  model_config = ConfigDict(extra="allow")

  index: int = 0
  url: str = ""


class Task(SatModel):
  project_options: ProjectOptions = Field(default_factory=ProjectOptions)
  index: int = 0
  items: List[TaskItem] = Field(default_factory=list)


class Project(SatModel):
  model_config = ConfigDict(extra="allow")

  options: ProjectOptions = Field(default_factory=ProjectOptions)
  items: List[TaskItem] = Field(default_factory=list)


class Assignment(SatModel):
  model_config = ConfigDict(extra="allow")

  id: str = ""
  task: Task = Field(default_factory=Task)
  worker_id: str = ""
  start_time: int = 0
  submit_time: int = 0


Category.model_rebuild()
