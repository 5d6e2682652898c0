from __future__ import annotations

import logging
from typing import Any, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from core.errors import MalformedState
from core.keys import project_key, task_key, tasks_prefix
from core.storage import Storage
from models.project import Project, Task

T = TypeVar("T", bound=BaseModel)


def decode_record(model_cls: Type[T], fields: Any, key: str) -> T:
    try:
        return model_cls.model_validate(fields)
    except ValidationError as e:
        raise MalformedState(f"{model_cls.__name__} at {key} does not decode: {e}") from e


class ProjectService:
    """Read access to project and task records (written by project creation)."""

    def __init__(self, storage: Storage):
        self.storage = storage
        self.log = logging.getLogger(f"sat.services.{self.__class__.__name__}")

    def get_project(self, project: str) -> Project:
        key = project_key(project)
        return decode_record(Project, self.storage.load(key), key)

    def get_task(self, project: str, task_id: str) -> Task:
        key = task_key(project, task_id)
        return decode_record(Task, self.storage.load(key), key)

    def list_task_keys(self, project: str) -> List[str]:
        return self.storage.list_keys(tasks_prefix(project))

    def list_tasks(self, project: str) -> List[Task]:
        """All tasks of a project, ordered by task key (zero-padded index)."""
        tasks: List[Task] = []
        for key in self.list_task_keys(project):
            tasks.append(decode_record(Task, self.storage.load(key), key))
        self.log.debug("list_tasks project=%s count=%d", project, len(tasks))
        return tasks
