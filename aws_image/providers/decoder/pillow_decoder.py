"""Pillow-backed image decoder.

Verifies that fetched or cached bytes are a complete, supported image and
reports its dimensions, format and frame count.  Decoding runs in a worker
thread so large images do not stall the event loop.
"""

from __future__ import annotations

import asyncio
import io

from PIL import Image, UnidentifiedImageError

from aws_image.interfaces.image_decoder import IImageDecoder
from aws_image.models.image import DecodedImage
from aws_image.utils.errors import DecodeError
from aws_image.utils.logging import get_logger


class PillowImageDecoder(IImageDecoder):
    """Decoder that fully loads the image with Pillow before accepting it."""

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    def get_provider_name(self) -> str:
        return "pillow"

    async def decode(self, data: bytes, scale: float = 1.0) -> DecodedImage:
        if not data:
            raise DecodeError("Image data is empty", provider_name=self.get_provider_name())
        try:
            return await asyncio.to_thread(self._decode_sync, data, scale)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            self._logger.warning("image_decode_failed", size=len(data), error=str(exc))
            raise DecodeError(
                f"Image data could not be decoded: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    # -- Sync helpers (executed via asyncio.to_thread) -------------------------

    @staticmethod
    def _decode_sync(data: bytes, scale: float) -> DecodedImage:
        with Image.open(io.BytesIO(data)) as img:
            # Truncated files only fail once pixel data is read.
            img.load()
            return DecodedImage(
                width=img.width,
                height=img.height,
                format=img.format,
                frame_count=getattr(img, "n_frames", 1),
                scale=scale,
                data=data,
            )
