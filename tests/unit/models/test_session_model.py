"""
Tests for the Session schema: decoding, persistable fields and the label graph.
"""

import json

import pytest

from core.errors import DecodeError, MalformedKeyError, MalformedState
from models.session import PERSISTED_FIELDS, Label, Session
from tests.fixtures.factories import LabelDataFactory, create_session_fields


class TestSessionDecode:

  def test_from_fields_decodes_every_persisted_field(self):
    session = Session.from_fields(create_session_fields(submit_time=1500000000500))

    assert session.config.project_name == "demo_project"
    assert session.config.submit_time == 1500000000500
    assert session.current.max_object_id == 0
    assert [item.url for item in session.items] == ["0.jpg", "1.jpg"]
    assert set(session.labels) == {0}
    assert session.labels[0].attributes == {"occluded": [1]}
    assert session.shapes[0]["kind"] == "box2d"
    assert session.actions == [{"type": "ADD_LABEL", "labelId": 0}]

  def test_persistable_fields_round_trip(self):
    fields = create_session_fields(submit_time=1500000000500)
    session = Session.from_fields(fields)

    persisted = session.persistable_fields()

    assert tuple(persisted) == PERSISTED_FIELDS
    assert persisted["labels"] == {"0": fields["labels"]["0"]}
    assert persisted["shapes"] == fields["shapes"]
    assert persisted["config"]["submitTime"] == 1500000000500
    assert Session.from_fields(persisted).persistable_fields() == persisted

  def test_non_integer_label_key(self):
    fields = create_session_fields()
    fields["labels"] = {"abc": LabelDataFactory()}

    with pytest.raises(MalformedKeyError) as exc_info:
      Session.from_fields(fields)
    assert exc_info.value.key == "abc"
    assert exc_info.value.field == "labels"

  def test_non_integer_shape_key(self):
    fields = create_session_fields()
    fields["shapes"]["1.5"] = {"kind": "box2d"}

    with pytest.raises(MalformedKeyError):
      Session.from_fields(fields)

  def test_tracks_decode_to_label_lists(self):
    fields = create_session_fields()
    fields["tracks"] = {"5": [LabelDataFactory(id=1), LabelDataFactory(id=2)]}

    session = Session.from_fields(fields)

    assert [label.id for label in session.tracks[5]] == [1, 2]

  def test_missing_maps_default_to_empty(self):
    session = Session.from_fields({"config": {"projectName": "p"}})

    assert session.labels == {}
    assert session.tracks == {}
    assert session.shapes == {}
    assert session.actions == []
    assert session.current.item == 0

  def test_label_with_bad_field_is_decoded_leniently(self):
    fields = create_session_fields()
    fields["labels"]["0"]["parent"] = "none"

    session = Session.from_fields(fields)

    assert session.labels[0].parent == 0
    assert session.labels[0].shapes == [0]

  @pytest.mark.parametrize("bad", [[], "x", 3, None])
  def test_non_object_session_is_malformed(self, bad):
    with pytest.raises(MalformedState):
      Session.from_fields(bad)

  def test_actions_must_be_a_list(self):
    fields = create_session_fields()
    fields["actions"] = {"type": "ADD_LABEL"}
    with pytest.raises(MalformedState, match="actions"):
      Session.from_fields(fields)

  def test_structurally_invalid_items_are_malformed(self):
    fields = create_session_fields()
    fields["items"] = "not a list"
    with pytest.raises(MalformedState):
      Session.from_fields(fields)

  def test_from_json_invalid_json(self):
    with pytest.raises(DecodeError):
      Session.from_json("{not json")

  @pytest.mark.parametrize("token", ["NaN", "Infinity", "-Infinity"])
  def test_from_json_rejects_non_standard_constants(self, token):
    text = json.dumps(create_session_fields()).replace("30.5", token)
    with pytest.raises(DecodeError, match=token.lstrip("-")):
      Session.from_json(text)

  def test_to_json_from_json(self):
    session = Session.from_fields(create_session_fields())
    text = session.to_json()

    assert json.loads(text)["labels"]["0"]["selectedShape"] == -1
    assert Session.from_json(text).persistable_fields() == session.persistable_fields()


class TestSessionKey:

  def test_storage_key(self):
    session = Session.from_fields(create_session_fields(task_id="000004", worker="w1", submit_time=1500000000777))
    assert session.storage_key() == "demo_project/submissions/000004/w1/1500000000777"


class TestLabelGraph:

  def _session(self) -> Session:
    return Session(labels={
      1: Label(id=1, children=[2, 3, 99]),
      2: Label(id=2, parent=1),
      3: Label(id=3, parent=1),
      4: Label(id=4, parent=42),
    })

  def test_parent_of(self):
    session = self._session()
    assert session.parent_of(2).id == 1
    assert session.parent_of(1) is None
    assert session.parent_of(4) is None
    assert session.parent_of(100) is None

  def test_children_of_skips_dangling_ids(self):
    session = self._session()
    assert [label.id for label in session.children_of(1)] == [2, 3]
    assert session.children_of(2) == []
    assert session.children_of(100) == []

  def test_first_label_of(self):
    session = Session.from_fields(create_session_fields())
    assert session.first_label_of(session.items[0]).id == 0
    assert session.first_label_of(session.items[1]) is None

  def test_self_parent_is_no_parent(self):
    session = Session(labels={0: Label(id=0), 1: Label(id=1)})
    assert session.parent_of(0) is None
    assert session.parent_of(1).id == 0


class TestZeroValueDefaults:
  """Fields absent from stored state come back as zero values."""

  def test_label_and_cursor_fields_missing_from_storage(self):
    session = Session.from_fields({"labels": {"0": {"id": 0}}, "current": {}})

    label = session.labels[0]
    assert (label.parent, label.selected_shape, label.num_children) == (0, 0, 0)
    assert (session.current.item, session.current.label, session.current.max_object_id) == (0, 0, 0)
    assert session.persistable_fields()["labels"]["0"]["parent"] == 0
