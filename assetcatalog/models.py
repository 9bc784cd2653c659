"""Record and result types shared across the catalog."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

CACHE_LOCAL = "local"
CACHE_ICLOUD = "icloud"


def cache_status_for(is_local: bool) -> str:
    return CACHE_LOCAL if is_local else CACHE_ICLOUD


class AssetIndexRecord(BaseModel):
    """Indexed metadata snapshot for one asset, keyed by ``asset_identifier``."""

    model_config = ConfigDict(frozen=True)

    asset_identifier: str
    pixel_width: int
    pixel_height: int
    creation_date: Optional[datetime] = None
    file_size: int
    is_local: bool
    cache_status: str
    fingerprint: Optional[str] = None


DuplicateGroup = List[AssetIndexRecord]


class ScanState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ScanProgress:
    scanned_count: int = 0
    total_count: int = 0

    @property
    def fraction(self) -> float:
        if self.total_count <= 0:
            return 0.0
        return min(1.0, self.scanned_count / float(self.total_count))


@dataclass
class ScanStats:
    assets_seen: int = 0
    local_assets: int = 0
    candidates: int = 0
    fingerprinted: int = 0
    skipped_existing: int = 0
    unhashed: int = 0
    checkpoints: int = 0


@dataclass
class DeletionResult:
    requested: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    groups: List[DuplicateGroup] = field(default_factory=list)

    @property
    def deleted_count(self) -> int:
        return len(self.deleted)
