"""Public interface definitions for every swappable collaborator.

The pipeline talks to storage, presign backends, codecs and the keyed
stream cache only through these abstract base classes.  Concrete adapters
live in ``aws_image/providers/`` and are wired in ``aws_image/main.py``;
tests inject fakes.

    Interface          ->  Concrete implementations (aws_image/providers/)
    ---------------------------------------------------------------------
    IImageStore        ->  DiskImageStore
    IPresignProvider   ->  RestPresignProvider, GraphQLPresignProvider
    IImageDecoder      ->  PillowImageDecoder
    IStreamCache       ->  MemoryStreamCache
"""

from aws_image.interfaces.image_decoder import IImageDecoder
from aws_image.interfaces.image_store import IImageStore
from aws_image.interfaces.presign_provider import IPresignProvider
from aws_image.interfaces.stream_cache import IStreamCache

__all__ = [
    "IImageDecoder",
    "IImageStore",
    "IPresignProvider",
    "IStreamCache",
]
