"""aws_image -- load images stored behind presigned URLs, with a disk cache.

Typical use::

    from aws_image.main import build_image_pipeline

    components = build_image_pipeline()
    pipeline = components["pipeline"]
    descriptor = components["settings"].default_descriptor("photos/cat.jpg")
    image = await pipeline.load_image(descriptor)
"""

__version__ = "0.1.0"
