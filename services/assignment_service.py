from __future__ import annotations

import logging
import uuid

from core.keys import assignment_key, record_timestamp
from core.storage import Storage
from models.project import Assignment
from services.project_service import ProjectService, decode_record


class AssignmentService:
    """Task-to-worker bindings: one Assignment per (project, task, worker)."""

    def __init__(self, storage: Storage, projects: ProjectService | None = None):
        self.storage = storage
        self.projects = projects or ProjectService(storage)
        self.log = logging.getLogger(f"sat.services.{self.__class__.__name__}")

    def has_assignment(self, project: str, task_id: str, worker: str) -> bool:
        return self.storage.has_key(assignment_key(project, task_id, worker))

    def get_assignment(self, project: str, task_id: str, worker: str) -> Assignment:
        """Raises KeyNotFound when the triple was never assigned."""
        key = assignment_key(project, task_id, worker)
        self.log.info("Reading %s", key)
        return decode_record(Assignment, self.storage.load(key), key)

    def create_assignment(self, project: str, task_id: str, worker: str) -> Assignment:
        """Bind a worker to an existing task and persist the binding.

        The write is append-only: a concurrent creator for the same triple makes
        this call fail with StorageUnavailable instead of replacing the record.
        """
        task = self.projects.get_task(project, task_id)
        now = record_timestamp()
        assignment = Assignment(
            id=uuid.uuid4().hex,
            task=task,
            worker_id=worker,
            start_time=now,
            submit_time=0,
        )
        key = assignment_key(project, task_id, worker)
        self.storage.save(key, assignment.to_wire(), overwrite=False)
        self.log.info("Created assignment %s", key)
        return assignment

    def get_or_create_assignment(self, project: str, task_id: str, worker: str) -> Assignment:
        if self.has_assignment(project, task_id, worker):
            return self.get_assignment(project, task_id, worker)
        return self.create_assignment(project, task_id, worker)
