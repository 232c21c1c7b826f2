"""Abstract base class for image codecs.

Pixel decoding is not this package's job; the pipeline hands bytes to a
decoder and passes whatever it returns to the display layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from aws_image.models.image import DecodedImage


class IImageDecoder(ABC):
    """Contract for turning encoded bytes into a :class:`DecodedImage`."""

    @abstractmethod
    async def decode(self, data: bytes, scale: float = 1.0) -> DecodedImage:
        """Decode *data*.

        Raises
        ------
        aws_image.utils.errors.DecodeError
            If *data* is not a supported image.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"pillow"``."""
