"""Asset Cataloger: incremental media indexing and exact-duplicate detection."""
from __future__ import annotations

from .config import CatalogConfig, load_config
from .dedupe import DeletionCoordinator, duplicate_report, group_duplicates, plan_deletions
from .errors import AssetCatalogError, ConfigError, NoAssetsToDeleteError
from .fingerprint import Fingerprinter
from .index import AssetIndex
from .models import AssetIndexRecord, DeletionResult, ScanProgress, ScanState, ScanStats
from .orchestrator import ScanOrchestrator
from .provider import AssetProvider, AssetRef, FetchResult
from .scan import select_candidates
from .store import RecordStore

__all__ = [
    "AssetCatalogError",
    "AssetIndex",
    "AssetIndexRecord",
    "AssetProvider",
    "AssetRef",
    "CatalogConfig",
    "ConfigError",
    "DeletionCoordinator",
    "DeletionResult",
    "FetchResult",
    "Fingerprinter",
    "NoAssetsToDeleteError",
    "RecordStore",
    "ScanOrchestrator",
    "ScanProgress",
    "ScanState",
    "ScanStats",
    "duplicate_report",
    "group_duplicates",
    "load_config",
    "plan_deletions",
    "select_candidates",
]
