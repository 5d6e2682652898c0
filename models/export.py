"""
Flat export record, one per item of every task in a project.
"""

from __future__ import annotations

from typing import Dict

from pydantic import Field

from models.session import SatModel

# real frame times are not tracked yet; consumers expect a constant
PLACEHOLDER_TIMESTAMP = 10000


class ItemExport(SatModel):
  name: str = ""
  url: str = ""
  video_name: str = ""
  attributes: Dict[str, str] = Field(default_factory=dict)
  timestamp: int = PLACEHOLDER_TIMESTAMP
  index: int = 0
