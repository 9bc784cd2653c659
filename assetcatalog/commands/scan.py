"""CLI command for indexing a media library and fingerprinting duplicate candidates."""
from __future__ import annotations

import argparse
import signal
from argparse import _SubParsersAction
from pathlib import Path
from typing import Optional, Sequence

from ..config import load_config
from ..folder_provider import FolderAssetProvider
from ..index import AssetIndex
from ..models import ScanState
from ..orchestrator import ScanOrchestrator, pending_candidates
from ..store import RecordStore
from ..util import format_bytes


def _configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default="config/assetcatalog.yaml", help="Catalog configuration file")
    parser.add_argument("--root", action="append", help="Additional library folder to scan (may repeat)")
    parser.add_argument("--store-dir", help="Override the directory holding the asset index")
    parser.add_argument("--allow-network", action="store_true", help="Fingerprint assets even when their bytes must be downloaded")
    parser.add_argument("--algorithm", choices=["sha256", "blake3"], help="Override the fingerprint hash algorithm")


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "scan",
        help="Index library assets and fingerprint duplicate candidates",
        description="Collect metadata for every asset, then hash assets that share dimensions and size bucket.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog or "assetcatalog scan", description="Index a media library and fingerprint duplicate candidates")
    _configure_parser(parser)
    return parser


def _print_progress(stage: str, current: int, total: int, message: str) -> None:
    print(f"[{stage.upper()}] {message}")


def run_from_args(args: argparse.Namespace) -> int:
    cfg = load_config(Path(args.config))
    if args.root:
        cfg.library.roots.extend(args.root)
    if args.store_dir:
        cfg.store.base_dir = args.store_dir
    if args.allow_network:
        cfg.scan.local_only = False
    if args.algorithm:
        cfg.fingerprint.algorithm = args.algorithm

    if not cfg.library.roots:
        raise SystemExit("No library folders configured. Provide --root or configure library.roots.")

    store = RecordStore.from_config(cfg.store)
    index = AssetIndex.open(store)
    print(f"[RUN] index: {store.path} ({len(index):,} records)")
    provider = FolderAssetProvider.from_config(cfg.library)
    orchestrator = ScanOrchestrator(provider, index, cfg, progress_cb=_print_progress)

    def _handle_sigint(signum, frame):  # noqa: ARG001
        orchestrator.cancel()

    previous_handler = None
    try:
        previous_handler = signal.signal(signal.SIGINT, _handle_sigint)
    except ValueError:
        # Not on the main thread; Ctrl+C falls through to the default handler.
        pass

    orchestrator.start()
    try:
        while not orchestrator.wait(0.5):
            pass
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    stats = orchestrator.stats
    print("\n" + "=" * 70)
    print("SCAN SUMMARY")
    print("=" * 70)
    print(f"Outcome:               {orchestrator.last_outcome.value if orchestrator.last_outcome else 'unknown':>10}")
    print(f"Assets seen:           {stats.assets_seen:>10,}")
    print(f"Local assets:          {stats.local_assets:>10,}")
    print(f"Candidates:            {stats.candidates:>10,}")
    print(f"Fingerprinted:         {stats.fingerprinted:>10,}")
    print(f"Already fingerprinted: {stats.skipped_existing:>10,}")
    print(f"Not hashed:            {stats.unhashed:>10,}")
    print(f"Pending candidates:    {len(pending_candidates(index, cfg)):>10,}")
    print(f"Index size:            {format_bytes(store.size_bytes()):>10}")
    print("=" * 70)
    if orchestrator.last_error:
        print(f"Scan aborted: {orchestrator.last_error}")
        return 1
    return 0 if orchestrator.last_outcome == ScanState.COMPLETED else 130


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "run_cli", "run_from_args"]
