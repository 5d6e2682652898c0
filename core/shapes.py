"""
Polymorphic value store for integer-keyed session maps.

Labels, Tracks and Shapes travel as JSON objects whose keys are decimal
integers. Keys are parsed strictly; values are decoded by a per-map decoder:
lenient pydantic validation for labels/tracks, nothing at all for shapes.

Shape payloads differ per shape kind (box, polygon, ...). They are kept as
plain JSON data. Consumers that understand a kind can register a decoder and
call `interpret_shape`; stored data is never rewritten by a registration.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from core.errors import MalformedKeyError, MalformedState

_log = logging.getLogger("sat.core.shapes")

V = TypeVar("V")
M = TypeVar("M", bound=BaseModel)

SHAPE_KIND_FIELD = "kind"

# ASCII decimal only; no surrounding whitespace
_INT_KEY_RE = re.compile(r"[+-]?[0-9]+")

_shape_decoders: Dict[str, Callable[[Dict[str, Any]], Any]] = {}


def parse_int_key(key: Any, field: str = "") -> int:
  """Parse one map key; bools and non-decimal strings are rejected."""
  if isinstance(key, bool):
    raise MalformedKeyError(key, field)
  if isinstance(key, int):
    return key
  if isinstance(key, str) and _INT_KEY_RE.fullmatch(key):
    return int(key)
  raise MalformedKeyError(key, field)


def decode_int_keyed(raw: Any, decode_value: Callable[[Any], V], field: str = "") -> Dict[int, V]:
  """Decode a `{"<int>": value}` object into `{int: decoded value}`.

  The first non-integer key aborts the whole decode with MalformedKeyError, as
  does a key that parses to an integer already seen ("1" and "01").
  """
  if raw is None:
    return {}
  if not isinstance(raw, dict):
    raise MalformedState(f"{field or 'map'} must be a JSON object, got {type(raw).__name__}")
  # parse every key before decoding any value so a bad key is never masked
  keys = []
  seen = set()
  for k in raw.keys():
    i = parse_int_key(k, field)
    if i in seen:
      raise MalformedKeyError(k, field)
    seen.add(i)
    keys.append((i, k))
  return {i: decode_value(raw[k]) for i, k in keys}


def encode_int_keyed(mapping: Dict[int, V], encode_value: Callable[[V], Any]) -> Dict[str, Any]:
  """Inverse of decode_int_keyed: stringify keys per JSON convention."""
  return {str(k): encode_value(v) for k, v in mapping.items()}


def lenient_validate(model_cls: Type[M], raw: Any) -> M:
  """Best-effort decode of `raw` into `model_cls`.

  Unknown fields are ignored by the model config, missing ones take their
  defaults, and fields that fail validation fall back to their defaults.
  Anything that is not an object yields a default instance.
  """
  if not isinstance(raw, dict):
    return model_cls()
  try:
    return model_cls.model_validate(raw)
  except ValidationError as e:
    bad = {err["loc"][0] for err in e.errors() if err.get("loc")}
    _log.debug("lenient decode of %s dropped fields %s", model_cls.__name__, sorted(map(str, bad)))
  cleaned = {k: v for k, v in raw.items() if k not in bad and _field_name(model_cls, k) not in bad}
  try:
    return model_cls.model_validate(cleaned)
  except ValidationError:
    return model_cls()


def lenient_validate_list(model_cls: Type[M], raw: Any) -> list[M]:
  if not isinstance(raw, list):
    return []
  return [lenient_validate(model_cls, v) for v in raw]


def _field_name(model_cls: Type[BaseModel], key: str) -> Optional[str]:
  for name, info in model_cls.model_fields.items():
    if info.alias == key:
      return name
  return None


# -------------------- shape kinds --------------------


def register_shape_kind(kind: str, decoder: Callable[[Dict[str, Any]], Any]) -> None:
  """Register a decoder for shapes whose payload has `"kind": <kind>`."""
  if not kind:
    raise ValueError("shape kind must be a non-empty string")
  _shape_decoders[kind] = decoder


def unregister_shape_kind(kind: str) -> None:
  _shape_decoders.pop(kind, None)


def registered_shape_kinds() -> list[str]:
  return sorted(_shape_decoders)


def interpret_shape(value: Any) -> Any:
  """Decode a stored shape with its kind decoder, or return it untouched."""
  if not isinstance(value, dict):
    return value
  kind = value.get(SHAPE_KIND_FIELD)
  decoder = _shape_decoders.get(kind) if isinstance(kind, str) else None
  if decoder is None:
    return value
  return decoder(value)
