"""
Command-line access to the content stores: check sync status, reload, or push
a local JSON document to a content domain.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.dependencies import get_content_registry, get_sync_metadata_sink
from backend.domains import DOMAINS
from backend.worker import refresh_once

logger = logging.getLogger(__name__)


def _print_status(registry) -> None:
    recorded = get_sync_metadata_sink().last_syncs()
    for store in registry.stores():
        state = store.sync_state()
        stats = store.get_stats()
        last_sync = state.last_sync_at.isoformat() if state.last_sync_at else "never"
        recorded_at = recorded.get(store.domain.name)
        recorded_sync = recorded_at.isoformat() if recorded_at else "never"
        print(
            f"{store.domain.name:<22} items={stats.total_count:<5} "
            f"available={state.source_available!s:<5} last_sync={last_sync} "
            f"recorded={recorded_sync}"
        )


def cmd_status(args: argparse.Namespace) -> int:
    registry = get_content_registry()
    registry.load_all()
    _print_status(registry)
    return 0


def cmd_reload(args: argparse.Namespace) -> int:
    registry = get_content_registry()
    if args.domain:
        store = registry.get(args.domain)
        store.reload()
        ok = store.is_source_available()
    else:
        ok = all(refresh_once(registry).values())
    _print_status(registry)
    return 0 if ok else 1


def cmd_push(args: argparse.Namespace) -> int:
    registry = get_content_registry()
    store = registry.get(args.domain)
    with open(args.file, encoding="utf-8") as f:
        content = json.load(f)
    result = store.update(content)
    print(result.message)
    return 0 if result.success else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Content sync tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    status = subparsers.add_parser("status", help="Load all domains and print their state")
    status.set_defaults(func=cmd_status)

    reload_parser = subparsers.add_parser("reload", help="Reload one or all domains")
    reload_parser.add_argument(
        "-d",
        "--domain",
        choices=sorted(DOMAINS),
        default=None,
        help="Reload only this domain",
    )
    reload_parser.set_defaults(func=cmd_reload)

    push = subparsers.add_parser("push", help="Push a JSON file to a domain's document")
    push.add_argument("domain", choices=sorted(DOMAINS))
    push.add_argument("file", type=str, help="Path to the JSON document")
    push.set_defaults(func=cmd_push)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
