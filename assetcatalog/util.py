from __future__ import annotations
from datetime import datetime, timezone
import hashlib
from typing import Callable, Optional

def utc(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)

def sha256_bytes(data: bytes, chunk_size: int = 2 * 1024 * 1024) -> str:
    h = hashlib.sha256()
    view = memoryview(data)
    for offset in range(0, len(view), chunk_size):
        h.update(view[offset:offset + chunk_size])
    return h.hexdigest()


def blake3_bytes(data: bytes, chunk_size: int = 2 * 1024 * 1024) -> str:
    """Compute the BLAKE3 digest (256-bit) of *data*."""
    try:
        import blake3  # type: ignore
    except Exception:
        # Defer import error until the function is actually used
        raise RuntimeError("The 'blake3' package is not installed. Install it with 'pip install blake3'.")

    hasher = blake3.blake3()
    view = memoryview(data)
    for offset in range(0, len(view), chunk_size):
        hasher.update(view[offset:offset + chunk_size])
    return hasher.hexdigest()


def emit(cb: Optional[Callable[..., None]], *args, **kwargs) -> None:
    if not cb:
        return
    try:
        cb(*args, **kwargs)
    except Exception:
        pass


def format_bytes(size: Optional[int]) -> str:
    if size is None:
        return ""
    if size < 1024:
        return f"{size} B"
    units = ["KB", "MB", "GB", "TB", "PB"]
    value = float(size)
    for unit in units:
        value /= 1024.0
        if value < 1024.0:
            return f"{value:.1f} {unit}"
    return f"{value:.1f} EB"
