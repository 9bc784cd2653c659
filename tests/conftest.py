from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

import pytest

from assetcatalog.config import CatalogConfig, ScanConfig
from assetcatalog.index import AssetIndex
from assetcatalog.models import AssetIndexRecord, cache_status_for
from assetcatalog.provider import AssetRef, FetchResult
from assetcatalog.store import RecordStore


@dataclass
class FakeAsset:
    ref: AssetRef
    data: bytes
    local: bool = True


class FakeProvider:
    """In-memory asset library with hooks for driving scans from tests."""

    def __init__(self, assets: Iterable[FakeAsset]) -> None:
        self.assets: Dict[str, FakeAsset] = {a.ref.identifier: a for a in assets}
        self.fetch_log: List[str] = []
        self.on_fetch: Optional[Callable[[str], None]] = None
        self.undeletable: Set[str] = set()
        self.delete_calls: List[List[str]] = []
        self.enumerate_error: Optional[Exception] = None

    def enumerate_assets(self) -> List[AssetRef]:
        if self.enumerate_error is not None:
            raise self.enumerate_error
        return [self.assets[k].ref for k in sorted(self.assets)]

    def probe_local_availability(self, ref: AssetRef) -> bool:
        asset = self.assets.get(ref.identifier)
        return bool(asset and asset.local)

    def fetch_bytes(self, ref: AssetRef, allow_network: bool) -> Optional[FetchResult]:
        self.fetch_log.append(ref.identifier)
        if self.on_fetch is not None:
            self.on_fetch(ref.identifier)
        asset = self.assets.get(ref.identifier)
        if asset is None:
            return None
        if not asset.local:
            if not allow_network:
                return None
            return FetchResult(asset.data, was_remote=True)
        return FetchResult(asset.data, was_remote=False)

    def delete(self, identifiers: Iterable[str]) -> Set[str]:
        requested = list(identifiers)
        self.delete_calls.append(requested)
        removed = {i for i in requested if i in self.assets and i not in self.undeletable}
        for ident in removed:
            del self.assets[ident]
        return removed


def make_asset(
    identifier: str,
    data: bytes,
    width: int = 100,
    height: int = 100,
    created: Optional[datetime] = None,
    local: bool = True,
    size: Optional[int] = -1,
) -> FakeAsset:
    resource_size = len(data) if size == -1 else size
    ref = AssetRef(identifier, width, height, created, resource_size)
    return FakeAsset(ref=ref, data=data, local=local)


def make_record(
    identifier: str,
    fingerprint: Optional[str] = None,
    created: Optional[datetime] = None,
    width: int = 100,
    height: int = 100,
    size: int = 10,
    local: bool = True,
) -> AssetIndexRecord:
    return AssetIndexRecord(
        asset_identifier=identifier,
        pixel_width=width,
        pixel_height=height,
        creation_date=created,
        file_size=size,
        is_local=local,
        cache_status=cache_status_for(local),
        fingerprint=fingerprint,
    )


def ts(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class CountingStore(RecordStore):
    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self.saves = 0

    def save(self, records) -> bool:  # type: ignore[override]
        self.saves += 1
        return super().save(records)


@pytest.fixture
def fast_config() -> CatalogConfig:
    return CatalogConfig(scan=ScanConfig(pause_poll_seconds=0.01))


@pytest.fixture
def store(tmp_path: Path) -> CountingStore:
    return CountingStore(tmp_path / "AssetCatalog" / "asset_index.json")


@pytest.fixture
def index(store: CountingStore) -> AssetIndex:
    return AssetIndex(store)
