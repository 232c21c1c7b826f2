"""Pipeline components: orchestration, shared streams and per-surface state."""

from aws_image.pipeline.image_stream import (
    ImageStreamCompleter,
    ImageStreamCompleterHandle,
    ImageStreamListener,
)
from aws_image.pipeline.load_controller import ImageLoadController
from aws_image.pipeline.orchestrator import ImageAcquisitionPipeline

__all__ = [
    "ImageAcquisitionPipeline",
    "ImageLoadController",
    "ImageStreamCompleter",
    "ImageStreamCompleterHandle",
    "ImageStreamListener",
]
