from __future__ import annotations
import os
import sys
from pathlib import Path
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, ValidationError
import yaml

from .errors import ConfigError

DEFAULT_MEDIA_EXT = [
    ".jpg", ".jpeg", ".png", ".heic", ".heif", ".gif",
    ".tif", ".tiff", ".webp", ".mov", ".mp4",
]

class StoreConfig(BaseModel):
    base_dir: Optional[str] = None
    app_dir_name: str = "AssetCatalog"
    file_name: str = "asset_index.json"

    def resolve_path(self) -> Path:
        base = Path(self.base_dir).expanduser() if self.base_dir else default_data_dir()
        return base / self.app_dir_name / self.file_name

class ScanConfig(BaseModel):
    local_only: bool = True
    checkpoint_every: int = Field(default=25, ge=1)
    pause_poll_seconds: float = Field(default=0.2, gt=0)
    size_bucket_bytes: int = Field(default=65536, ge=1)

class FingerprintConfig(BaseModel):
    algorithm: Literal["sha256", "blake3"] = "sha256"
    chunk_bytes: int = 2 * 1024 * 1024  # 2 MB hashing chunks

class LibraryConfig(BaseModel):
    roots: List[str] = Field(default_factory=list)
    include_ext: List[str] = Field(default_factory=lambda: list(DEFAULT_MEDIA_EXT))
    exclude_paths: List[str] = Field(default_factory=list)

class LoggingConfig(BaseModel):
    level: str = "INFO"

class CatalogConfig(BaseModel):
    store: StoreConfig = Field(default_factory=StoreConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    fingerprint: FingerprintConfig = Field(default_factory=FingerprintConfig)
    library: LibraryConfig = Field(default_factory=LibraryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

def default_data_dir() -> Path:
    """Per-user writable application-data directory for this platform."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    if os.name == "nt":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata)
        return Path.home() / "AppData" / "Roaming"
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".local" / "share"

def load_config(path: Optional[Path]) -> CatalogConfig:
    if path is None or not Path(path).exists():
        return CatalogConfig()
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        return CatalogConfig(**data)
    except (OSError, yaml.YAMLError, ValidationError, TypeError) as exc:
        raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc
