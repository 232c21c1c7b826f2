# =============================================================================
# aws_image/cli/__init__.py: CLI Module Overview
# =============================================================================
#
# Operator tooling for the image pipeline, run as `python -m aws_image.cli`.
# One module per command group:
#
#   1. FETCH  (fetch.py)
#      Runs the acquisition pipeline once for a bucket key or URL and prints
#      what was decoded, or writes the bytes to a file.
#
#   2. CACHE  (cache.py)
#      Disk cache maintenance: stats, clear-expired, clear.
#
#   3. UPLOAD (upload.py)
#      Requests a presigned PUT URL for a bucket key and uploads a file.
#
# Components are built from the layered configuration (config/config.yaml,
# .env, environment) via aws_image.main.build_image_pipeline.
# =============================================================================

"""Command-line tools for aws_image.

- ``python -m aws_image.cli fetch SOURCE`` -- load one image
- ``python -m aws_image.cli cache stats|clear-expired|clear`` -- cache maintenance
- ``python -m aws_image.cli upload BUCKET_KEY FILE`` -- presign and upload
"""
