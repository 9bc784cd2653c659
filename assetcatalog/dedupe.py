# assetcatalog/dedupe.py
"""
Exact-duplicate grouping and pruning.

Records sharing a fingerprint form a duplicate group. Within a group the
oldest asset (missing creation date counts as oldest) comes first and is the
one pruning keeps; groups are ordered largest first.
"""
from __future__ import annotations
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .errors import NoAssetsToDeleteError
from .index import AssetIndex
from .models import AssetIndexRecord, DeletionResult, DuplicateGroup
from .provider import AssetProvider
from .util import emit

logger = logging.getLogger(__name__)

LogCallback = Callable[[str], None]


def _timestamp(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def member_sort_key(record: AssetIndexRecord) -> Tuple[int, float, str]:
    if record.creation_date is None:
        return (0, 0.0, record.asset_identifier)
    return (1, _timestamp(record.creation_date), record.asset_identifier)


def group_duplicates(records: Iterable[AssetIndexRecord]) -> List[DuplicateGroup]:
    """Partition fingerprinted records into ordered duplicate groups."""
    by_fingerprint: Dict[str, List[AssetIndexRecord]] = defaultdict(list)
    for record in records:
        if record.fingerprint:
            by_fingerprint[record.fingerprint].append(record)

    groups: List[DuplicateGroup] = [
        sorted(members, key=member_sort_key)
        for members in by_fingerprint.values()
        if len(members) > 1
    ]
    groups.sort(key=lambda g: (-len(g), member_sort_key(g[0]), g[0].fingerprint or ""))
    return groups


def reclaimable_bytes(group: DuplicateGroup) -> int:
    return sum(record.file_size for record in group[1:])


def duplicate_report(groups: List[DuplicateGroup], limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Summaries of duplicate groups, in group order.

    Each entry holds:
    - fingerprint: The shared content hash
    - count: Number of copies
    - size_bytes: Size of the kept copy
    - reclaimable_bytes: Space freed by deleting every other copy
    - keeper: Identifier retained by pruning
    - members: Identifiers with creation dates, keeper first
    """
    selected = groups if limit is None else groups[:limit]
    results: List[Dict[str, Any]] = []
    for group in selected:
        keeper = group[0]
        results.append({
            "fingerprint": keeper.fingerprint,
            "count": len(group),
            "size_bytes": keeper.file_size,
            "reclaimable_bytes": reclaimable_bytes(group),
            "keeper": keeper.asset_identifier,
            "members": [
                {
                    "identifier": r.asset_identifier,
                    "created": r.creation_date.isoformat() if r.creation_date else "",
                    "cache_status": r.cache_status,
                }
                for r in group
            ],
        })
    return results


def plan_deletions(groups: List[DuplicateGroup]) -> Dict[str, Any]:
    """Keep/delete plan for *groups* without touching the provider."""
    plan: Dict[str, Any] = {
        "hash_groups": len(groups),
        "files_considered": 0,
        "potential_bytes_reclaimed": 0,
        "groups": [],
    }
    for group in groups:
        if len(group) <= 1:
            continue
        duplicates = group[1:]
        plan["files_considered"] += len(duplicates)
        plan["potential_bytes_reclaimed"] += reclaimable_bytes(group)
        plan["groups"].append({
            "fingerprint": group[0].fingerprint,
            "keeper": group[0].asset_identifier,
            "duplicates": [r.asset_identifier for r in duplicates],
        })
    return plan


class DeletionCoordinator:
    """Deletes all but the first member of duplicate groups.

    Only identifiers the provider confirms as removed leave the index; the
    index is persisted after every attempt.
    """

    def __init__(self, provider: AssetProvider, index: AssetIndex, log_cb: Optional[LogCallback] = None) -> None:
        self.provider = provider
        self.index = index
        self.log_cb = log_cb

    def _emit_log(self, message: str) -> None:
        logger.info(message)
        emit(self.log_cb, message)

    def duplicate_groups(self) -> List[DuplicateGroup]:
        return group_duplicates(self.index.records())

    def delete_duplicates(self, group: DuplicateGroup) -> DeletionResult:
        if len(group) <= 1:
            return DeletionResult(groups=self.duplicate_groups())

        requested = [record.asset_identifier for record in group[1:]]
        with self.index.lock:
            live = [ident for ident in requested if ident in self.index]
        if not live:
            raise NoAssetsToDeleteError(requested)

        errors: List[str] = []
        try:
            removed = set(self.provider.delete(live))
        except Exception as exc:
            removed = set()
            errors.append(f"Provider rejected deletion of {len(live)} assets: {exc}")
            self._emit_log(f"[DEDUPE][ERROR] Provider rejected deletion: {exc}")

        confirmed = [ident for ident in live if ident in removed]
        failed = [ident for ident in requested if ident not in removed]
        with self.index.lock:
            self.index.remove(confirmed)
            self.index.checkpoint()

        self._emit_log(
            f"[DEDUPE] Kept {group[0].asset_identifier}; deleted {len(confirmed)} of {len(requested)} duplicates"
        )
        return DeletionResult(
            requested=requested,
            deleted=confirmed,
            failed=failed,
            errors=errors,
            groups=self.duplicate_groups(),
        )

    def delete_all(self, groups: List[DuplicateGroup]) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "groups_modified": 0,
            "files_removed": 0,
            "bytes_reclaimed": 0,
            "failed": [],
            "errors": [],
        }
        for group in groups:
            sizes = {r.asset_identifier: r.file_size for r in group}
            try:
                result = self.delete_duplicates(group)
            except NoAssetsToDeleteError as exc:
                stats["errors"].append(str(exc))
                continue
            if result.deleted:
                stats["groups_modified"] += 1
            stats["files_removed"] += result.deleted_count
            stats["bytes_reclaimed"] += sum(sizes[ident] for ident in result.deleted)
            stats["failed"].extend(result.failed)
            stats["errors"].extend(result.errors)
        return stats
