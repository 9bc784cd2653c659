"""JSON-backed persistence for the asset index.

The whole index is one JSON object mapping asset identifier to record. Writes
go to a sibling temp file that is fsynced and swapped into place, so readers
see either the previous file or the new one, never a partial write.
"""
from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Dict, Mapping, Optional

from pydantic import TypeAdapter, ValidationError

from .config import StoreConfig
from .models import AssetIndexRecord

logger = logging.getLogger(__name__)

_RECORDS = TypeAdapter(Dict[str, AssetIndexRecord])


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Atomically write *data* into *path*."""
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    path.parent.mkdir(parents=True, exist_ok=True)
    with tmp_path.open("wb") as handle:
        handle.write(data)
        handle.flush()
        os.fsync(handle.fileno())
    # Windows refuses the replace while another process holds the destination open.
    for attempt in range(5):
        try:
            tmp_path.replace(path)
            return
        except PermissionError:
            if attempt == 4:
                tmp_path.unlink(missing_ok=True)
                raise
            time.sleep(0.05 * (attempt + 1))


class RecordStore:
    """Loads and saves the identifier -> record mapping."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning(f"[STORE] Could not create index directory {self.path.parent}: {exc}")

    @classmethod
    def from_config(cls, cfg: StoreConfig) -> "RecordStore":
        return cls(cfg.resolve_path())

    def load(self) -> Dict[str, AssetIndexRecord]:
        if not self.path.exists():
            return {}
        try:
            records = _RECORDS.validate_json(self.path.read_bytes())
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning(f"[STORE] Failed to load index {self.path}: {exc}")
            return {}
        logger.debug(f"[STORE] Loaded {len(records):,} records from {self.path}")
        return records

    def save(self, records: Mapping[str, AssetIndexRecord]) -> bool:
        """Persist *records*; returns False (after logging) if the write failed."""
        try:
            payload = _RECORDS.dump_json(dict(records), indent=2)
            atomic_write_bytes(self.path, payload)
        except Exception as exc:
            logger.warning(f"[STORE] Failed to save index {self.path}: {exc}")
            return False
        return True

    def size_bytes(self) -> Optional[int]:
        try:
            return self.path.stat().st_size
        except OSError:
            return None
