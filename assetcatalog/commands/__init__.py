"""Command registration for the Asset Cataloger CLI."""
from __future__ import annotations

from typing import Iterable

from . import dupes, scan

COMMAND_MODULES: Iterable = (scan, dupes)

__all__ = ["COMMAND_MODULES"]
