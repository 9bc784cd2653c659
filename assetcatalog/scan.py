# assetcatalog/scan.py
"""
Metadata collection (scan phase 1) and duplicate candidate selection.

Phase 1 refreshes a lightweight record for every asset the provider reports;
no content is read. Candidate selection then buckets local records by
(width, height, size bucket) so only assets that collide on that cheap
signature are fingerprinted in phase 2.
"""
from __future__ import annotations
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from .index import AssetIndex
from .models import AssetIndexRecord, cache_status_for
from .provider import AssetProvider, AssetRef

logger = logging.getLogger(__name__)

SIZE_BUCKET_BYTES = 65536

BucketKey = Tuple[int, int, int]


def estimated_size(ref: AssetRef) -> int:
    """Provider-reported byte size, else the coarse ``width * height * 4`` estimate."""
    if ref.resource_size is not None and ref.resource_size > 0:
        return int(ref.resource_size)
    return int(ref.pixel_width) * int(ref.pixel_height) * 4


def probe_is_local(provider: AssetProvider, ref: AssetRef) -> bool:
    try:
        return bool(provider.probe_local_availability(ref))
    except Exception as e:
        logger.warning(f"[SCAN] Availability probe failed for {ref.identifier}: {e}")
        return False


def build_record(provider: AssetProvider, ref: AssetRef) -> AssetIndexRecord:
    """Fresh metadata for *ref*; the fingerprint is left unset."""
    is_local = probe_is_local(provider, ref)
    return AssetIndexRecord(
        asset_identifier=ref.identifier,
        pixel_width=int(ref.pixel_width),
        pixel_height=int(ref.pixel_height),
        creation_date=ref.creation_date,
        file_size=estimated_size(ref),
        is_local=is_local,
        cache_status=cache_status_for(is_local),
    )


def enumerate_refs(provider: AssetProvider) -> List[AssetRef]:
    refs = list(provider.enumerate_assets())
    logger.info(f"[SCAN] Provider reported {len(refs):,} assets")
    return refs


def refresh_record(provider: AssetProvider, index: AssetIndex, ref: AssetRef) -> Optional[AssetIndexRecord]:
    """Merge refreshed metadata for *ref* into *index*, keeping any fingerprint.

    Returns None without touching the index when *ref* was deleted since the
    scan started.
    """
    # Probe outside the lock; provider calls may be slow.
    fresh = build_record(provider, ref)
    with index.lock:
        if index.was_removed(ref.identifier):
            logger.debug(f"[SCAN] Skipping deleted asset {ref.identifier}")
            return None
        existing = index.get(ref.identifier)
        if existing is not None and existing.fingerprint:
            fresh = fresh.model_copy(update={"fingerprint": existing.fingerprint})
        index.put(fresh)
    return fresh


def bucket_key(record: AssetIndexRecord, bucket_bytes: int = SIZE_BUCKET_BYTES) -> BucketKey:
    return (record.pixel_width, record.pixel_height, record.file_size // bucket_bytes)


def candidate_buckets(
    records: Iterable[AssetIndexRecord],
    bucket_bytes: int = SIZE_BUCKET_BYTES,
) -> Dict[BucketKey, List[str]]:
    """Buckets of local records that hold more than one member."""
    buckets: Dict[BucketKey, List[str]] = defaultdict(list)
    for record in records:
        if not record.is_local:
            continue
        buckets[bucket_key(record, bucket_bytes)].append(record.asset_identifier)
    return {key: sorted(ids) for key, ids in buckets.items() if len(ids) > 1}


def select_candidates(
    records: Iterable[AssetIndexRecord],
    bucket_bytes: int = SIZE_BUCKET_BYTES,
) -> List[str]:
    """Sorted identifiers sharing a coarse signature with at least one other local asset."""
    buckets = candidate_buckets(records, bucket_bytes)
    candidates = sorted(ident for ids in buckets.values() for ident in ids)
    logger.info(
        f"[SCAN] {len(candidates):,} fingerprint candidates across {len(buckets):,} shared buckets"
    )
    return candidates
