from __future__ import annotations

import logging
from typing import List, Optional

from core.bootstrap import assignment_to_session
from core.errors import DemoModeSaveRejected
from core.keys import DEFAULT_WORKER, record_timestamp, submissions_prefix
from core.storage import Storage
from models.session import Session
from services.assignment_service import AssignmentService


class SessionService:
    """Resolve, load and save versioned sessions for (project, task, worker) triples."""

    def __init__(self, storage: Storage, assignments: Optional[AssignmentService] = None):
        self.storage = storage
        self.assignments = assignments or AssignmentService(storage)
        self.log = logging.getLogger(f"sat.services.{self.__class__.__name__}")

    def list_submissions(self, project: str, task_id: str, worker: str) -> List[str]:
        """Submission keys for a triple, oldest first."""
        return self.storage.list_keys(submissions_prefix(project, task_id, worker))

    def resolve(self, project: str, task_id: str, worker: str) -> Session:
        """Return the latest saved session, or bootstrap one from the assignment.

        "Latest" is the last key in storage order. Submit times are millisecond
        timestamps of equal width, so key order matches submit order.

        Raises KeyNotFound when there is neither a submission nor an assignment;
        creating the assignment is up to the caller.
        """
        keys = self.list_submissions(project, task_id, worker)
        if keys:
            latest = keys[-1]
            self.log.info("Reading %s", latest)
            return Session.from_fields(self.storage.load(latest))
        assignment = self.assignments.get_assignment(project, task_id, worker)
        return assignment_to_session(assignment)

    def load(self, project: str, task_id: str, worker: str = DEFAULT_WORKER) -> Session:
        """The load operation: create the assignment on first visit, then resolve.

        The returned session has config.start_time stamped with the current time.
        """
        if not self.assignments.has_assignment(project, task_id, worker):
            assignment = self.assignments.create_assignment(project, task_id, worker)
            session = assignment_to_session(assignment)
        else:
            session = self.resolve(project, task_id, worker)
        session.config.start_time = record_timestamp()
        return session

    def save(self, session: Session) -> str:
        """Persist a new immutable version and return its key.

        Demo sessions are rejected before anything is written.
        """
        if session.config.demo_mode:
            raise DemoModeSaveRejected("can't save a demo project")
        session.config.submit_time = record_timestamp()
        key = session.storage_key()
        self.storage.save(key, session.persistable_fields(), overwrite=False)
        self.log.info("Saved %s", key)
        return key
