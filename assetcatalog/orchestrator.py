# assetcatalog/orchestrator.py
"""
Background scan driver.

A scan runs two phases in one worker thread:
1. Metadata: refresh a record for every asset the provider reports
2. Fingerprint: hash the candidates that share a coarse signature

Between items the worker honours pause and cancel requests, and the index is
checkpointed every ``checkpoint_every`` items, at the end of each phase and
when the run ends for any reason.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional

from .config import CatalogConfig
from .fingerprint import Fingerprinter, ref_for_record
from .index import AssetIndex
from .models import ScanProgress, ScanState, ScanStats
from .provider import AssetProvider, AssetRef
from .scan import enumerate_refs, refresh_record, select_candidates
from .util import emit

logger = logging.getLogger(__name__)

# Callback type aliases (kept local for loose coupling)
ProgressCallback = Callable[[str, int, int, str], None]
LogCallback = Callable[[str], None]


class ScanOrchestrator:
    """Pausable, cancellable two-phase scan over an asset provider."""

    def __init__(
        self,
        provider: AssetProvider,
        index: AssetIndex,
        cfg: Optional[CatalogConfig] = None,
        fingerprinter: Optional[Fingerprinter] = None,
        progress_cb: Optional[ProgressCallback] = None,
        log_cb: Optional[LogCallback] = None,
    ) -> None:
        self.cfg = cfg or CatalogConfig()
        self.provider = provider
        self.index = index
        self.fingerprinter = fingerprinter or Fingerprinter.from_config(provider, self.cfg.fingerprint)
        self.progress_cb = progress_cb
        self.log_cb = log_cb

        self.stats = ScanStats()
        self.last_outcome: Optional[ScanState] = None
        self.last_error: Optional[str] = None

        self._state = ScanState.IDLE
        self._state_lock = threading.Lock()
        self._pause_requested = threading.Event()
        self._cancel_requested = threading.Event()
        self._progress = ScanProgress()
        self._since_checkpoint = 0
        self._thread: Optional[threading.Thread] = None

    # -- control ---------------------------------------------------------

    @property
    def state(self) -> ScanState:
        with self._state_lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state in (ScanState.RUNNING, ScanState.PAUSED)

    @property
    def is_paused(self) -> bool:
        return self.state == ScanState.PAUSED

    def start(self) -> bool:
        """Launch a scan; returns False without side effects if one is active."""
        with self._state_lock:
            if self._state in (ScanState.RUNNING, ScanState.PAUSED):
                return False
            self._state = ScanState.RUNNING
            self._pause_requested.clear()
            self._cancel_requested.clear()
            self._progress = ScanProgress()
            self._since_checkpoint = 0
            self.stats = ScanStats()
            self.last_outcome = None
            self.last_error = None
            self.index.clear_removed()
            self._thread = threading.Thread(target=self._run, name="asset-scan", daemon=True)
            self._thread.start()
        return True

    def pause(self) -> bool:
        with self._state_lock:
            if self._state != ScanState.RUNNING:
                return False
            self._pause_requested.set()
            self._state = ScanState.PAUSED
        self._emit_log("[SCAN] Pause requested")
        return True

    def resume(self) -> bool:
        with self._state_lock:
            if self._state != ScanState.PAUSED:
                return False
            self._pause_requested.clear()
            self._state = ScanState.RUNNING
        self._emit_log("[SCAN] Resumed")
        return True

    def cancel(self) -> bool:
        with self._state_lock:
            if self._state not in (ScanState.RUNNING, ScanState.PAUSED):
                return False
            self._cancel_requested.set()
        self._emit_log("[SCAN] Cancel requested")
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current scan thread exits; True if it has."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def progress(self) -> ScanProgress:
        with self._state_lock:
            return self._progress

    # -- worker ----------------------------------------------------------

    def _emit_progress(self, stage: str, message: str) -> None:
        progress = self.progress()
        emit(self.progress_cb, stage, progress.scanned_count, progress.total_count, message)

    def _emit_log(self, message: str) -> None:
        logger.info(message)
        emit(self.log_cb, message)

    def _set_progress(self, scanned: int, total: int) -> None:
        with self._state_lock:
            self._progress = ScanProgress(scanned_count=scanned, total_count=total)

    def _proceed(self) -> bool:
        """Gate between items: waits out a pause; False once cancelled."""
        if self._cancel_requested.is_set():
            return False
        announced = False
        poll = self.cfg.scan.pause_poll_seconds
        while self._pause_requested.is_set():
            if not announced:
                self._emit_progress("paused", "Scan paused")
                announced = True
            # Wakes early on cancel, otherwise re-checks after one poll interval.
            if self._cancel_requested.wait(poll):
                return False
        return not self._cancel_requested.is_set()

    def _checkpoint(self, reason: str) -> None:
        self._since_checkpoint = 0
        if self.index.checkpoint():
            self.stats.checkpoints += 1
        logger.debug(f"[SCAN] Checkpoint ({reason})")

    def _item_done(self, scanned: int, total: int) -> None:
        self._set_progress(scanned, total)
        self._since_checkpoint += 1
        if self._since_checkpoint >= self.cfg.scan.checkpoint_every:
            self._checkpoint("interval")

    def _run(self) -> None:
        outcome = ScanState.CANCELLED
        try:
            outcome = ScanState.COMPLETED if self._run_phases() else ScanState.CANCELLED
        except Exception as exc:
            self.last_error = str(exc)
            logger.exception("[SCAN] Scan aborted")
            emit(self.log_cb, f"[ERROR] Scan aborted: {exc}")
        finally:
            self._checkpoint("end")
            with self._state_lock:
                self.last_outcome = outcome
                self._state = ScanState.IDLE
                self._pause_requested.clear()
            progress = self.progress()
            stage = "done" if outcome == ScanState.COMPLETED else "cancelled"
            self._emit_progress(stage, f"Scan {outcome.value}: {progress.scanned_count:,}/{progress.total_count:,}")
            self._emit_log(
                f"[SCAN] {outcome.value} | assets={self.stats.assets_seen:,} candidates={self.stats.candidates:,} "
                f"hashed={self.stats.fingerprinted:,} skipped={self.stats.skipped_existing:,} "
                f"unhashed={self.stats.unhashed:,}"
            )

    def _run_phases(self) -> bool:
        local_only = self.cfg.scan.local_only
        self._emit_progress("start", "Enumerating assets...")
        self._emit_log(
            f"[SCAN] Starting scan (local_only={local_only}, checkpoint_every={self.cfg.scan.checkpoint_every}, "
            f"algorithm={self.fingerprinter.algorithm})"
        )

        refs = enumerate_refs(self.provider)
        total = len(refs)
        scanned = 0
        self._set_progress(0, total)
        self._emit_progress("metadata", f"Collecting metadata for {total:,} assets")

        # Phase 1: metadata
        for ref in refs:
            if not self._proceed():
                return False
            record = refresh_record(self.provider, self.index, ref)
            if record is not None:
                self.stats.assets_seen += 1
                if record.is_local:
                    self.stats.local_assets += 1
            scanned += 1
            self._item_done(scanned, total)
            if scanned % 100 == 0:
                self._emit_progress("metadata", f"Collected {scanned:,}/{total:,} assets")
        self._checkpoint("metadata complete")

        # Phase 2: fingerprints
        candidates = select_candidates(self.index.records(), self.cfg.scan.size_bucket_bytes)
        self.stats.candidates = len(candidates)
        total = len(refs) + len(candidates)
        self._set_progress(scanned, total)
        self._emit_progress("fingerprint", f"Fingerprinting {len(candidates):,} candidates")
        self._emit_log(f"[SCAN] {len(candidates):,} candidates queued for fingerprinting")

        refs_by_id: Dict[str, AssetRef] = {ref.identifier: ref for ref in refs}
        for identifier in candidates:
            if not self._proceed():
                return False
            self._fingerprint_one(identifier, refs_by_id, local_only)
            scanned += 1
            self._item_done(scanned, total)
            if scanned % 25 == 0:
                self._emit_progress("fingerprint", f"Processed {scanned:,}/{total:,} items")
        self._checkpoint("fingerprint complete")
        return True

    def _fingerprint_one(self, identifier: str, refs_by_id: Dict[str, AssetRef], local_only: bool) -> None:
        record = self.index.get(identifier)
        if record is None:
            return
        if record.fingerprint:
            self.stats.skipped_existing += 1
            return
        ref = refs_by_id.get(identifier) or ref_for_record(record)
        digest = self.fingerprinter.fingerprint(ref, local_only=local_only)
        if digest is None:
            self.stats.unhashed += 1
            return
        with self.index.lock:
            # The record may have been deleted while hashing; never resurrect it.
            current = self.index.get(identifier)
            if current is None:
                return
            self.index.put(current.model_copy(update={"fingerprint": digest}))
        self.stats.fingerprinted += 1


def pending_candidates(index: AssetIndex, cfg: Optional[CatalogConfig] = None) -> List[str]:
    """Candidates that still lack a fingerprint."""
    cfg = cfg or CatalogConfig()
    records = index.snapshot()
    return [
        ident
        for ident in select_candidates(records.values(), cfg.scan.size_bucket_bytes)
        if not records[ident].fingerprint
    ]
