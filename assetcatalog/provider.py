"""Interface the catalog consumes from a media asset provider."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Protocol, Set


@dataclass(frozen=True)
class AssetRef:
    identifier: str
    pixel_width: int
    pixel_height: int
    creation_date: Optional[datetime] = None
    resource_size: Optional[int] = None


@dataclass(frozen=True)
class FetchResult:
    data: bytes
    was_remote: bool = False


class AssetProvider(Protocol):
    """Enumerates, reads and deletes assets of a media library.

    Calls may block; the catalog imposes no timeout on them.
    """

    def enumerate_assets(self) -> Iterable[AssetRef]:
        ...

    def probe_local_availability(self, ref: AssetRef) -> bool:
        """Cheap check, never touching the network."""
        ...

    def fetch_bytes(self, ref: AssetRef, allow_network: bool) -> Optional[FetchResult]:
        ...

    def delete(self, identifiers: Iterable[str]) -> Set[str]:
        """Delete assets, returning the identifiers actually removed."""
        ...
