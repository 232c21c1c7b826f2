"""``fetch`` command: run the acquisition pipeline once."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from aws_image.config.settings import Settings
from aws_image.models.image import DecodedImage


def add_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("fetch", help="Load one image through the pipeline")
    parser.add_argument("source", help="Bucket key or (presigned) URL")
    parser.add_argument("--output", "-o", help="Write the image bytes to this file")
    parser.add_argument(
        "--force-refresh",
        action="store_true",
        dest="force_refresh",
        help="Ignore the disk cache and fetch from the network",
    )
    parser.add_argument("--json", action="store_true", help="Print image info as JSON")


def _format_text_output(source: str, image: DecodedImage) -> str:
    lines = [
        f"Source:  {source}",
        f"Format:  {image.format or 'unknown'}",
        f"Size:    {image.width}x{image.height}",
        f"Frames:  {image.frame_count}",
        f"Bytes:   {len(image.data):,}",
    ]
    return "\n".join(lines)


def _format_json_output(source: str, image: DecodedImage) -> str:
    output: dict[str, Any] = {"source": source, **image.model_dump(exclude={"data"})}
    output["bytes"] = len(image.data)
    return json.dumps(output, indent=2)


async def handle_fetch(
    args: argparse.Namespace,
    components: dict[str, Any],
) -> int:
    """Load ``args.source`` and report it.  Returns the exit code."""
    app_settings: Settings = components["settings"]
    pipeline = components["pipeline"]

    descriptor = app_settings.default_descriptor(
        args.source,
        force_refresh=args.force_refresh or app_settings.force_refresh,
    )

    def _progress(loaded: int, total: int) -> None:
        print(f"\r  {loaded:,} / {total:,} bytes", end="", file=sys.stderr)

    image = await pipeline.load_image(descriptor, on_progress=None if args.json else _progress)

    if args.output:
        Path(args.output).write_bytes(image.data)
        print(f"Image written to: {args.output}", file=sys.stderr)

    if args.json:
        print(_format_json_output(args.source, image))
    else:
        print("", file=sys.stderr)
        print(_format_text_output(args.source, image))
    return 0
