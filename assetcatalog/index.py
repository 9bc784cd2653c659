"""In-memory asset index shared by the scanner and the deletion path."""
from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional, Set

from .models import AssetIndexRecord
from .store import RecordStore

logger = logging.getLogger(__name__)


class AssetIndex:
    """Authoritative identifier -> record map guarded by one re-entrant lock.

    The map is loaded from the store once and written back on checkpoints.
    Every mutation and every save takes ``lock``, so deletions and scan
    checkpoints never interleave on the shared map.
    """

    def __init__(self, store: RecordStore, records: Optional[Dict[str, AssetIndexRecord]] = None) -> None:
        self.store = store
        self.lock = threading.RLock()
        self._records: Dict[str, AssetIndexRecord] = dict(records) if records is not None else {}
        # Identifiers removed since the last clear_removed(); a running scan must not re-add them.
        self._removed: Set[str] = set()

    @classmethod
    def open(cls, store: RecordStore) -> "AssetIndex":
        return cls(store, store.load())

    def __len__(self) -> int:
        with self.lock:
            return len(self._records)

    def __contains__(self, identifier: object) -> bool:
        with self.lock:
            return identifier in self._records

    def get(self, identifier: str) -> Optional[AssetIndexRecord]:
        with self.lock:
            return self._records.get(identifier)

    def snapshot(self) -> Dict[str, AssetIndexRecord]:
        with self.lock:
            return dict(self._records)

    def records(self) -> List[AssetIndexRecord]:
        with self.lock:
            return list(self._records.values())

    def put(self, record: AssetIndexRecord) -> None:
        with self.lock:
            self._records[record.asset_identifier] = record

    def remove(self, identifiers: Iterable[str]) -> List[str]:
        removed: List[str] = []
        with self.lock:
            for identifier in identifiers:
                if self._records.pop(identifier, None) is not None:
                    removed.append(identifier)
                    self._removed.add(identifier)
        return removed

    def was_removed(self, identifier: str) -> bool:
        with self.lock:
            return identifier in self._removed

    def clear_removed(self) -> None:
        with self.lock:
            self._removed.clear()

    def checkpoint(self) -> bool:
        with self.lock:
            ok = self.store.save(self._records)
            count = len(self._records)
        if ok:
            logger.debug(f"[STORE] Checkpoint wrote {count:,} records")
        return ok
