"""
Core session-state components: keys, errors, the int-keyed value store,
storage access and the assignment bootstrap.
"""

from .errors import (
  DecodeError,
  DemoModeSaveRejected,
  KeyNotFound,
  MalformedKeyError,
  MalformedState,
  SatError,
  StorageUnavailable,
)

__all__ = [
  "SatError", "DecodeError", "MalformedState", "MalformedKeyError", "StorageUnavailable", "KeyNotFound",
  "DemoModeSaveRejected"
]
