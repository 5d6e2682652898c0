"""
Error taxonomy for session state decoding, storage access and saving.

Every error raised by the core derives from `SatError` so that callers with
local recovery (the export aggregator) can catch them as one family.
"""


class SatError(Exception):
  """Base class for session-state errors."""


class DecodeError(SatError):
  """Request body is not valid JSON."""


class MalformedState(SatError):
  """Stored or posted state does not decode into a Session."""


class MalformedKeyError(MalformedState):
  """A Labels/Tracks/Shapes map key does not parse as an integer."""

  def __init__(self, key, field: str = ""):
    self.key = key
    self.field = field
    where = f" in {field}" if field else ""
    super().__init__(f"map key {key!r}{where} is not an integer")


class StorageUnavailable(SatError):
  """The storage backend failed to load or save."""


class KeyNotFound(SatError):
  """A storage key does not exist."""

  def __init__(self, key: str):
    self.key = key
    super().__init__(f"key not found: {key}")


class DemoModeSaveRejected(SatError):
  """Attempt to persist a session whose config is flagged as demo."""
