"""``cache`` command: disk cache maintenance."""

from __future__ import annotations

import argparse
from datetime import timedelta
from typing import Any

from aws_image.config.settings import Settings
from aws_image.interfaces.image_store import IImageStore


def add_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("cache", help="Inspect or clean the disk cache")
    actions = parser.add_subparsers(dest="action", help="Cache actions")

    actions.add_parser("stats", help="Show entry count and total size")

    expired = actions.add_parser("clear-expired", help="Delete entries older than the max age")
    expired.add_argument(
        "--max-age-seconds",
        type=int,
        default=None,
        dest="max_age_seconds",
        help="Maximum entry age (default: configured cache duration)",
    )

    actions.add_parser("clear", help="Delete every cache entry")


async def handle_cache(
    args: argparse.Namespace,
    components: dict[str, Any],
) -> int:
    app_settings: Settings = components["settings"]
    store: IImageStore = components["image_store"]

    if args.action == "stats":
        count = await store.count()
        size = await store.size()
        print(f"Cache directory: {app_settings.cache_dir}")
        print(f"  Entries:       {count}")
        print(f"  Total size:    {size:,} bytes")
        return 0

    if args.action == "clear-expired":
        if args.max_age_seconds is not None:
            max_age = timedelta(seconds=args.max_age_seconds)
        else:
            max_age = app_settings.cache_duration
        cleared = await store.clear_expired(max_age)
        print(f"Cleared {cleared} expired entries.")
        return 0

    if args.action == "clear":
        await store.clear_all()
        print("Cache cleared.")
        return 0

    print("Error: choose one of stats, clear-expired, clear")
    return 1
