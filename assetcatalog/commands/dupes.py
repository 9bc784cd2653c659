"""CLI command for reporting and pruning exact-duplicate assets."""
from __future__ import annotations

import argparse
from argparse import _SubParsersAction
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from ..config import load_config
from ..dedupe import DeletionCoordinator, duplicate_report, group_duplicates, plan_deletions
from ..folder_provider import FolderAssetProvider
from ..index import AssetIndex
from ..store import RecordStore
from ..util import format_bytes


def _configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default="config/assetcatalog.yaml", help="Path to config file")
    parser.add_argument("--store-dir", help="Override the directory holding the asset index")
    parser.add_argument("--limit", type=int, default=20, help="Limit number of duplicate groups in report")
    parser.add_argument("--delete", action="store_true", help="Delete every duplicate except the oldest copy in each group")
    parser.add_argument("--dry-run", action="store_true", help="Preview deletions without touching the library or index")
    parser.add_argument("--no-confirm", action="store_true", help="Skip confirmation prompt before deleting duplicates")


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "dupes",
        help="Report and prune exact duplicates",
        description="List fingerprint duplicate groups from the asset index and optionally delete the extra copies.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog or "assetcatalog dupes", description="Report and prune exact-duplicate assets")
    _configure_parser(parser)
    return parser


def run_from_args(args: argparse.Namespace) -> int:
    cfg = load_config(Path(args.config))
    if args.store_dir:
        cfg.store.base_dir = args.store_dir

    index = AssetIndex.open(RecordStore.from_config(cfg.store))
    groups = group_duplicates(index.records())

    print("\n" + "=" * 70)
    print(f"TOP {args.limit} DUPLICATE GROUPS (largest first)")
    print("=" * 70)
    if not groups:
        print("No duplicate groups found. Run 'assetcatalog scan' first if the index is empty.")
        return 0

    for i, entry in enumerate(duplicate_report(groups, args.limit), 1):
        print(
            f"\n#{i} - {entry['count']} copies × {format_bytes(entry['size_bytes'])} = "
            f"{format_bytes(entry['reclaimable_bytes'])} reclaimable"
        )
        print(f"    Fingerprint: {entry['fingerprint'][:16]}...")
        for member in entry["members"]:
            marker = "keep" if member["identifier"] == entry["keeper"] else "dup "
            print(f"      [{marker}] {member['identifier']} ({member['cache_status']}) {member['created']}")

    if not args.delete:
        return 0

    preview: Dict[str, Any] = plan_deletions(groups)
    print("\n" + "=" * 70)
    print("DUPLICATE PRUNE (PREVIEW)")
    print("=" * 70)
    print(f"Duplicate groups:        {preview['hash_groups']:>10,}")
    print(f"Duplicate files flagged: {preview['files_considered']:>10,}")
    print(f"Potential space freed:   {format_bytes(preview['potential_bytes_reclaimed']):>10}")

    if args.dry_run:
        print("\nDry run requested; nothing was deleted.")
        return 0

    if not args.no_confirm:
        prompt = f"\nProceed with deleting {preview['files_considered']:,} duplicate assets? [y/N]: "
        if input(prompt).strip().lower() != "y":
            print("Duplicate deletion cancelled. Rerun with --dry-run to preview or with --no-confirm to skip prompts.")
            return 0

    provider = FolderAssetProvider.from_config(cfg.library)
    result = DeletionCoordinator(provider, index).delete_all(groups)
    print("\n" + "=" * 70)
    print("DUPLICATE PRUNE (RESULT)")
    print("=" * 70)
    print(f"Groups modified:         {result['groups_modified']:>10,}")
    print(f"Assets removed:          {result['files_removed']:>10,}")
    print(f"Not removed:             {len(result['failed']):>10,}")
    print(f"Space reclaimed:         {format_bytes(result['bytes_reclaimed']):>10}")
    if result["errors"]:
        print("\nErrors encountered (showing up to 5):")
        for err in result["errors"][:5]:
            print(f"  - {err}")
        if len(result["errors"]) > 5:
            print(f"  - ... {len(result['errors']) - 5} more issues")
    return 0 if not result["failed"] else 1


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "run_cli", "run_from_args"]
