"""Image decoders."""

from aws_image.providers.decoder.pillow_decoder import PillowImageDecoder

__all__ = ["PillowImageDecoder"]
