"""Asset provider backed by media files under local folders.

Files evicted by iCloud Drive are left behind as ``.<name>.icloud``
placeholders; those are reported as cloud-only assets whose bytes cannot be
fetched from here.
"""
from __future__ import annotations

import logging
import os
import plistlib
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from PIL import Image, UnidentifiedImageError

from .config import LibraryConfig
from .provider import AssetRef, FetchResult
from .util import utc

logger = logging.getLogger(__name__)

PLACEHOLDER_SUFFIX = ".icloud"


def should_skip_path(p: Path, excludes: Sequence[str]) -> bool:
    s = str(p)
    for pat in excludes:
        if pat and pat in s:
            return True
    return False


def placeholder_target(path: Path) -> Optional[Path]:
    """Real file path an iCloud placeholder stands for, or None."""
    name = path.name
    if not (name.startswith(".") and name.endswith(PLACEHOLDER_SUFFIX)):
        return None
    real_name = name[1:-len(PLACEHOLDER_SUFFIX)]
    if not real_name:
        return None
    return path.with_name(real_name)


def placeholder_for(path: Path) -> Path:
    return path.with_name(f".{path.name}{PLACEHOLDER_SUFFIX}")


def read_placeholder_size(path: Path) -> Optional[int]:
    try:
        with path.open("rb") as fh:
            info = plistlib.load(fh)
    except Exception:
        return None
    size = info.get("NSURLFileSizeKey") if isinstance(info, dict) else None
    return int(size) if isinstance(size, int) else None


def image_dimensions(path: Path) -> Tuple[int, int]:
    try:
        with Image.open(path) as img:
            return img.size
    except (OSError, UnidentifiedImageError, ValueError, Image.DecompressionBombError):
        return (0, 0)


class FolderAssetProvider:
    """Serves media files under *roots* as assets keyed by absolute path."""

    def __init__(
        self,
        roots: Iterable[str],
        include_ext: Optional[Iterable[str]] = None,
        exclude_paths: Optional[Iterable[str]] = None,
    ) -> None:
        self.roots = [Path(r).expanduser() for r in roots]
        self.include = {e.lower() for e in include_ext} if include_ext else None
        self.excludes = list(exclude_paths or [])

    @classmethod
    def from_config(cls, cfg: LibraryConfig) -> "FolderAssetProvider":
        return cls(cfg.roots, cfg.include_ext, cfg.exclude_paths)

    def _wanted(self, path: Path) -> bool:
        if self.include and path.suffix.lower() not in self.include:
            return False
        return not should_skip_path(path, self.excludes)

    def enumerate_assets(self) -> List[AssetRef]:
        refs: List[AssetRef] = []
        seen: Set[str] = set()
        for root in self.roots:
            if not root.exists():
                logger.warning(f"[WARN] Root does not exist: {root}")
                continue
            for dirpath, _dirnames, filenames in os.walk(root):
                dpath = Path(dirpath)
                if should_skip_path(dpath, self.excludes):
                    continue
                for name in filenames:
                    ref = self._ref_for(dpath / name)
                    if ref is not None and ref.identifier not in seen:
                        seen.add(ref.identifier)
                        refs.append(ref)
        refs.sort(key=lambda r: r.identifier)
        return refs

    def _ref_for(self, path: Path) -> Optional[AssetRef]:
        target = placeholder_target(path)
        if target is not None:
            if not self._wanted(target) or target.exists():
                return None
            try:
                st = path.stat()
            except OSError as e:
                logger.warning(f"[WARN] Failed to stat placeholder {path}: {e}")
                return None
            return AssetRef(
                identifier=target.resolve().as_posix(),
                pixel_width=0,
                pixel_height=0,
                creation_date=utc(st.st_mtime),
                resource_size=read_placeholder_size(path),
            )
        if path.name.startswith(".") or not self._wanted(path):
            return None
        try:
            st = path.stat()
        except OSError as e:
            logger.warning(f"[WARN] Failed to consider {path}: {e}")
            return None
        width, height = image_dimensions(path)
        return AssetRef(
            identifier=path.resolve().as_posix(),
            pixel_width=width,
            pixel_height=height,
            creation_date=utc(st.st_mtime),
            resource_size=st.st_size,
        )

    def probe_local_availability(self, ref: AssetRef) -> bool:
        return Path(ref.identifier).is_file()

    def fetch_bytes(self, ref: AssetRef, allow_network: bool) -> Optional[FetchResult]:
        path = Path(ref.identifier)
        if not path.is_file():
            # Cloud-only placeholder.
            return None
        return FetchResult(data=path.read_bytes(), was_remote=False)

    def delete(self, identifiers: Iterable[str]) -> Set[str]:
        removed: Set[str] = set()
        for identifier in identifiers:
            path = Path(identifier)
            for candidate in (path, placeholder_for(path)):
                if not candidate.exists():
                    continue
                try:
                    candidate.unlink()
                    removed.add(identifier)
                    logger.info(f"[DEDUPE] Deleted duplicate file: {candidate}")
                except OSError as exc:
                    logger.error(f"[DEDUPE][ERROR] Failed to delete {candidate}: {exc}")
                break
        return removed
