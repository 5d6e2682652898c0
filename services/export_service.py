"""
Project export: one flat record per item across every task of a project.

Each task's latest default-worker session supplies the attribute values. A task
whose session cannot be resolved still contributes its items, with no
attributes, so one untouched task never fails the export.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional

from core.errors import SatError
from core.keys import DEFAULT_WORKER, index_to_str
from core.storage import Storage
from models.export import ItemExport
from models.project import Project, Task
from models.session import Attribute, Label, Session
from services.project_service import ProjectService
from services.session_service import SessionService

VIDEO_ITEM_TYPE = "video"


def resolve_attribute_values(label: Label, definitions: List[Attribute]) -> Dict[str, str]:
    """Map a label's selected attribute indices to their display strings.

    For each attribute name on the label, the first definition with that name
    is used; the first selected index is looked up in its `values`.
    """
    resolved: Dict[str, str] = {}
    for name, selected in label.attributes.items():
        for definition in definitions:
            if definition.name != name:
                continue
            if selected and 0 <= selected[0] < len(definition.values):
                resolved[name] = definition.values[selected[0]]
            break
    return resolved


class ExportService:
    """Aggregate the latest sessions of all tasks in a project into ItemExport records."""

    def __init__(
        self,
        storage: Storage,
        projects: Optional[ProjectService] = None,
        sessions: Optional[SessionService] = None,
        worker: str = DEFAULT_WORKER,
    ):
        self.storage = storage
        self.projects = projects or ProjectService(storage)
        self.sessions = sessions or SessionService(storage)
        self.worker = worker
        self.log = logging.getLogger(f"sat.services.{self.__class__.__name__}")

    def _load_project(self, project: str) -> Project:
        try:
            return self.projects.get_project(project)
        except SatError as e:
            self.log.error("project record unavailable for %s: %s", project, e)
            return Project()

    def _video_name(self, project: Project, task: Task) -> str:
        if project.options.item_type != VIDEO_ITEM_TYPE:
            return ""
        return f"{project.options.name}_{index_to_str(task.index)}"

    def _from_session(self, session: Session, video_name: str) -> List[ItemExport]:
        records: List[ItemExport] = []
        for item in session.items:
            attributes: Dict[str, str] = {}
            label = session.first_label_of(item)
            if label is not None:
                attributes = resolve_attribute_values(label, session.config.attributes)
            records.append(
                ItemExport(index=item.index, name=item.url, url=item.url, video_name=video_name, attributes=attributes))
        return records

    def _from_task(self, task: Task, video_name: str) -> List[ItemExport]:
        return [
            ItemExport(index=item.index, name=item.url, url=item.url, video_name=video_name) for item in task.items
        ]

    def export(self, project: str) -> List[ItemExport]:
        project_record = self._load_project(project)
        records: List[ItemExport] = []
        for task in self.projects.list_tasks(project):
            video_name = self._video_name(project_record, task)
            task_id = index_to_str(task.index)
            try:
                session = self.sessions.resolve(project, task_id, self.worker)
            except SatError as e:
                # never touched: fall back to the task's own item list
                self.log.info("export fallback project=%s task=%s: %s", project, task_id, e)
                records.extend(self._from_task(task, video_name))
                continue
            records.extend(self._from_session(session, video_name))
        self.log.info("export project=%s items=%d", project, len(records))
        return records

    def export_json(self, project: str, indent: int = 2) -> str:
        return json.dumps([r.to_wire() for r in self.export(project)], indent=indent, ensure_ascii=False)
