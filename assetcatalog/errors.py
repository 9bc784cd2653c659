"""Exception types raised by the asset catalog."""
from __future__ import annotations

from typing import Sequence


class AssetCatalogError(Exception):
    """Base class for catalog errors."""


class ConfigError(AssetCatalogError):
    """Configuration file is unreadable or holds invalid values."""


class NoAssetsToDeleteError(AssetCatalogError):
    """None of the identifiers requested for deletion match a live record."""

    def __init__(self, requested: Sequence[str]) -> None:
        self.requested = list(requested)
        super().__init__(f"No indexed assets found to delete among {len(self.requested)} requested")
