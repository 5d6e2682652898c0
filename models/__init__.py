"""
Data models for the session server.
"""

from .session import Attribute, Item, Label, Session, SessionConfig, SessionCursor
from .project import Assignment, Category, Project, ProjectOptions, Task, TaskItem
from .export import ItemExport

__all__ = [
  'Attribute', 'Item', 'Label', 'Session', 'SessionConfig', 'SessionCursor', 'Assignment', 'Category', 'Project',
  'ProjectOptions', 'Task', 'TaskItem', 'ItemExport'
]
