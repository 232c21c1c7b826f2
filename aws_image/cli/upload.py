"""``upload`` command: presign a PUT URL and upload a local file."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

from aws_image.services.upload_service import ImageUploader


def add_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("upload", help="Upload a file via a presigned PUT URL")
    parser.add_argument("bucket_key", help="Destination object key")
    parser.add_argument("file", help="Local file to upload")


async def handle_upload(
    args: argparse.Namespace,
    components: dict[str, Any],
) -> int:
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return 1

    uploader: ImageUploader = components["uploader"]

    def _progress(sent: int, total: int) -> None:
        print(f"\r  {sent:,} / {total:,} bytes", end="", file=sys.stderr)

    presigned = await uploader.get_and_upload_file(
        args.bucket_key, path, on_send_progress=_progress
    )
    print("", file=sys.stderr)
    print(f"Uploaded: {path.name} -> {presigned.key}")
    if presigned.preview_url:
        print(f"Preview:  {presigned.preview_url}")
    return 0
