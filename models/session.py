"""
Session state schema ("Sat").

A Session is one worker's annotation pass over one task. It is saved as an
immutable snapshot under a timestamped key on every submit; the newest key is
the current state. Wire names are camelCase to match the annotation client.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from core.errors import DecodeError, MalformedState
from core.keys import submission_key
from core.shapes import decode_int_keyed, encode_int_keyed, lenient_validate, lenient_validate_list

PERSISTED_FIELDS = ("config", "current", "items", "labels", "tracks", "shapes", "actions")


class SatModel(BaseModel):
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

  def to_wire(self) -> Dict[str, Any]:
    return self.model_dump(by_alias=True, mode="json")


class Attribute(SatModel):
  """Attribute-type definition; `values[i]` names selected index i."""
  name: str = ""
  tool_type: str = ""
  tag_text: str = ""
  tag_prefix: str = ""
  tag_suffixes: List[str] = Field(default_factory=list)
  values: List[str] = Field(default_factory=list)
  button_colors: List[str] = Field(default_factory=list)


class SessionConfig(SatModel):
  assignment_id: str = ""
  project_name: str = ""
  item_type: str = ""
  label_type: str = ""
  task_size: int = 0
  handler_url: str = ""
  page_title: str = ""
  instruction_page: str = ""
  demo_mode: bool = False
  bundle_file: str = ""
  categories: List[str] = Field(default_factory=list)
  attributes: List[Attribute] = Field(default_factory=list)
  task_id: str = ""
  worker_id: str = ""
  start_time: int = 0
  submit_time: int = 0


class SessionCursor(SatModel):
  """Current selection. A fresh session starts at -1 (nothing selected, no id
  allocated); fields missing from stored state read as 0."""
  item: int = 0
  label: int = 0
  max_object_id: int = 0


class Item(SatModel):
  id: int = 0
  index: int = 0
  url: str = ""
  active: bool = False
  loaded: bool = False
  labels: List[int] = Field(default_factory=list)


class Label(SatModel):
  """One annotation instance. parent/children are ids into Session.labels."""
  id: int = 0
  item: int = 0
  category: List[int] = Field(default_factory=list)
  attributes: Dict[str, List[int]] = Field(default_factory=dict)
  parent: int = 0
  children: List[int] = Field(default_factory=list)
  num_children: int = 0
  valid: bool = False
  shapes: List[int] = Field(default_factory=list)
  selected_shape: int = 0
  state: int = 0


def decode_label(raw: Any) -> Label:
  return lenient_validate(Label, raw)


def decode_track(raw: Any) -> List[Label]:
  return lenient_validate_list(Label, raw)


def _keep(value: Any) -> Any:
  return value


def _reject_constant(name: str) -> Any:
  raise ValueError(f"{name} is not a JSON value")


def parse_json(text: Any, what: str = "JSON") -> Any:
  """Strict json.loads: NaN and Infinity are rejected along with bad syntax."""
  try:
    return json.loads(text, parse_constant=_reject_constant)
  except (TypeError, ValueError) as e:
    raise DecodeError(f"invalid {what}: {e}") from e


class Session(SatModel):
  config: SessionConfig = Field(default_factory=SessionConfig)
  current: SessionCursor = Field(default_factory=SessionCursor)
  items: List[Item] = Field(default_factory=list)
  labels: Dict[int, Label] = Field(default_factory=dict)
  tracks: Dict[int, List[Label]] = Field(default_factory=dict)
  shapes: Dict[int, Any] = Field(default_factory=dict)
  actions: List[Any] = Field(default_factory=list)

  # ------------- persistence -------------
  def storage_key(self) -> str:
    """`project/submissions/task/worker/submitTime`; unique per save."""
    cfg = self.config
    return submission_key(cfg.project_name, cfg.task_id, cfg.worker_id, cfg.submit_time)

  def persistable_fields(self) -> Dict[str, Any]:
    """The seven persisted fields as JSON-ready values, in a fixed order."""
    return {
      "config": self.config.to_wire(),
      "current": self.current.to_wire(),
      "items": [item.to_wire() for item in self.items],
      "labels": encode_int_keyed(self.labels, Label.to_wire),
      "tracks": encode_int_keyed(self.tracks, lambda track: [label.to_wire() for label in track]),
      "shapes": encode_int_keyed(self.shapes, _keep),
      "actions": list(self.actions),
    }

  def to_json(self, indent: Optional[int] = None) -> str:
    return json.dumps(self.persistable_fields(), indent=indent, ensure_ascii=False)

  @classmethod
  def from_fields(cls, fields: Any) -> "Session":
    """Decode a stored property bag.

    Raises MalformedKeyError for a non-integer map key and MalformedState for
    any other structural problem outside the leniently decoded label maps.
    """
    if not isinstance(fields, dict):
      raise MalformedState(f"session must be a JSON object, got {type(fields).__name__}")
    labels = decode_int_keyed(fields.get("labels"), decode_label, "labels")
    tracks = decode_int_keyed(fields.get("tracks"), decode_track, "tracks")
    shapes = decode_int_keyed(fields.get("shapes"), _keep, "shapes")
    actions = fields.get("actions")
    if actions is None:
      actions = []
    elif not isinstance(actions, list):
      raise MalformedState("actions must be a JSON array")
    rest = {k: fields[k] for k in ("config", "current", "items") if fields.get(k) is not None}
    try:
      return cls.model_validate({**rest, "labels": labels, "tracks": tracks, "shapes": shapes, "actions": actions})
    except ValidationError as e:
      raise MalformedState(f"session does not decode: {e}") from e

  @classmethod
  def from_json(cls, text: Any) -> "Session":
    return cls.from_fields(parse_json(text, "session JSON"))

  # ------------- label graph -------------
  def parent_of(self, label_id: int) -> Optional[Label]:
    label = self.labels.get(label_id)
    if label is None or label.parent < 0 or label.parent == label_id:
      return None
    return self.labels.get(label.parent)

  def children_of(self, label_id: int) -> List[Label]:
    """Child labels that exist in `labels`; dangling ids are skipped."""
    label = self.labels.get(label_id)
    if label is None:
      return []
    return [self.labels[c] for c in label.children if c in self.labels]

  def first_label_of(self, item: Item) -> Optional[Label]:
    if not item.labels:
      return None
    return self.labels.get(item.labels[0])
