"""Entry point for ``python -m aws_image.cli``."""

from __future__ import annotations

import argparse
import asyncio
import sys

from aws_image.cli import cache, fetch, upload
from aws_image.config.loader import load_config
from aws_image.config.settings import Settings
from aws_image.utils.errors import AwsImageError
from aws_image.utils.logging import configure_logging

_HANDLERS = {
    "fetch": fetch.handle_fetch,
    "cache": cache.handle_cache,
    "upload": upload.handle_upload,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m aws_image.cli",
        description="Fetch, cache and upload images stored behind presigned URLs.",
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="YAML config file (default: config/config.yaml)",
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true", help="Only log warnings and errors"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")
    fetch.add_parser(subparsers)
    cache.add_parser(subparsers)
    upload.add_parser(subparsers)
    return parser


async def _dispatch(args: argparse.Namespace, app_settings: Settings) -> int:
    # Deferred so --help does not pay for building the HTTP stack.
    from aws_image.main import build_image_pipeline

    components = build_image_pipeline(app_settings)
    try:
        return await _HANDLERS[args.command](args, components)
    except AwsImageError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await components["pipeline"].drain_pending_evictions()
        await components["http_client"].aclose()


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    app_settings = load_config(args.config)
    quiet = args.quiet or getattr(args, "json", False)
    # Logs go to stderr so stdout only carries command output.
    configure_logging(
        log_level="WARNING" if quiet else app_settings.log_level,
        json_output=app_settings.app_env == "production",
        stream=sys.stderr,
    )
    return asyncio.run(_dispatch(args, app_settings))


if __name__ == "__main__":
    sys.exit(main())
