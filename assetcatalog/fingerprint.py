"""Content fingerprints for duplicate detection."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from .config import FingerprintConfig
from .models import AssetIndexRecord
from .provider import AssetProvider, AssetRef
from .util import blake3_bytes, sha256_bytes

logger = logging.getLogger(__name__)

HASHERS: Dict[str, Callable[[bytes, int], str]] = {
    "sha256": sha256_bytes,
    "blake3": blake3_bytes,
}


def ref_for_record(record: AssetIndexRecord) -> AssetRef:
    return AssetRef(
        identifier=record.asset_identifier,
        pixel_width=record.pixel_width,
        pixel_height=record.pixel_height,
        creation_date=record.creation_date,
        resource_size=record.file_size,
    )


class Fingerprinter:
    """Hashes the exact bytes of an asset as lowercase hex.

    In local-only mode bytes that the provider had to pull over the network
    are discarded and no fingerprint is returned.
    """

    def __init__(self, provider: AssetProvider, algorithm: str = "sha256", chunk_bytes: int = 2 * 1024 * 1024) -> None:
        if algorithm not in HASHERS:
            raise ValueError(f"Unsupported fingerprint algorithm: {algorithm!r}")
        self.provider = provider
        self.algorithm = algorithm
        self.chunk_bytes = chunk_bytes
        self._hash = HASHERS[algorithm]

    @classmethod
    def from_config(cls, provider: AssetProvider, cfg: FingerprintConfig) -> "Fingerprinter":
        return cls(provider, cfg.algorithm, cfg.chunk_bytes)

    def fingerprint(self, ref: AssetRef, local_only: bool = True) -> Optional[str]:
        try:
            fetched = self.provider.fetch_bytes(ref, allow_network=not local_only)
        except Exception as exc:
            logger.warning(f"[HASH] Failed to fetch {ref.identifier}: {exc}")
            return None
        if fetched is None:
            logger.debug(f"[HASH] No bytes available for {ref.identifier}")
            return None
        if local_only and fetched.was_remote:
            logger.debug(f"[HASH] Discarding remote bytes for {ref.identifier} in local-only mode")
            return None
        return self._hash(fetched.data, self.chunk_bytes)
