"""
Assignment -> Session bootstrap.

Runs once per (project, task, worker), before the first save, to give the
client an empty session built from the assignment. Once any submission exists
this is never used again for that triple. The client is expected to take over
session creation; keep this limited to what is here.
"""

from typing import List

from core.keys import index_to_str
from models.project import Assignment, Category
from models.session import Item, Session, SessionConfig, SessionCursor


def flatten_category_names(categories: List[Category]) -> List[str]:
  """Top-level category names in source order; subcategories are not descended."""
  return [category.name for category in categories]


def assignment_to_session(assignment: Assignment) -> Session:
  task = assignment.task
  options = task.project_options
  items = [Item(id=item.index, index=item.index, url=item.url, labels=[]) for item in task.items]
  config = SessionConfig(
    assignment_id=assignment.id,
    project_name=options.name,
    item_type=options.item_type,
    label_type=options.label_type,
    task_size=options.task_size,
    handler_url=options.handler_url,
    page_title=options.page_title,
    instruction_page=options.instructions,
    demo_mode=options.demo_mode,
    bundle_file=options.bundle_file,
    categories=flatten_category_names(options.categories),
    attributes=[attr.model_copy(deep=True) for attr in options.attributes],
    task_id=index_to_str(task.index),
    worker_id=assignment.worker_id,
    start_time=assignment.start_time,
    submit_time=assignment.submit_time,
  )
  return Session(
    config=config,
    current=SessionCursor(item=-1, label=-1, max_object_id=-1),
    items=items,
    labels={},
    tracks={},
    shapes={},
    actions=[],
  )
