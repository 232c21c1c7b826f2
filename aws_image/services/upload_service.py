"""Upload local files to object storage through presigned PUT URLs.

Two entry points:

* :meth:`ImageUploader.upload_file` PUTs a file to an upload URL the
  caller already has;
* :meth:`ImageUploader.get_and_upload_file` first asks the presign
  backend for an upload URL for a bucket key, then uploads.

Every failure surfaces as :class:`UploadError` with the original exception
and its formatted stack attached.
"""

from __future__ import annotations

import asyncio
import mimetypes
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Any

import httpx

from aws_image.interfaces.presign_provider import IPresignProvider
from aws_image.models.image import PresignedUrl, UrlType
from aws_image.utils.callbacks import invoke_callback
from aws_image.utils.errors import AwsImageError, ConfigurationError, UploadError
from aws_image.utils.logging import get_logger

_PROVIDER_NAME = "uploader"
_CHUNK_SIZE = 64 * 1024
_CACHE_CONTROL = "public, max-age=31536000"

SendProgressCallback = Callable[[int, int], Any]


class ImageUploader:
    """PUT files to presigned URLs, streaming the body in chunks.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient``.
    presign_provider:
        Needed only for :meth:`get_and_upload_file`.
    chunk_size:
        Bytes read from disk per chunk.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        presign_provider: IPresignProvider | None = None,
        chunk_size: int = _CHUNK_SIZE,
    ) -> None:
        self._http = http_client
        self._presign = presign_provider
        self._chunk_size = chunk_size
        self._logger = get_logger(__name__)

    async def upload_file(
        self,
        upload_url: str,
        path: str | Path,
        headers: dict[str, str] | None = None,
        query_parameters: dict[str, str] | None = None,
        on_send_progress: SendProgressCallback | None = None,
    ) -> Any:
        """PUT *path* to *upload_url* and return the response body.

        The body is decoded as JSON when possible, otherwise returned as text.

        Raises
        ------
        UploadError
            Unknown content type, unreadable file, transport failure or
            non-2xx status.
        """
        file_path = Path(path)
        try:
            content_type, _ = mimetypes.guess_type(file_path.name)
            if content_type is None:
                raise ValueError(f"Could not determine mime type for file: {file_path}")
            total = await asyncio.to_thread(lambda: file_path.stat().st_size)

            request_headers = {
                **(headers or {}),
                "Content-Type": content_type,
                "Accept": "*/*",
                "Content-Length": str(total),
                "Cache-Control": _CACHE_CONTROL,
            }
            response = await self._http.put(
                upload_url,
                content=self._iter_file(file_path, total, on_send_progress),
                params=query_parameters or None,
                headers=request_headers,
            )
            response.raise_for_status()
        except (ValueError, OSError, httpx.HTTPError, httpx.InvalidURL) as exc:
            self._logger.error("upload_failed", path=str(file_path), error=str(exc))
            raise UploadError(
                f"Failed to upload file to storage: {exc}",
                provider_name=_PROVIDER_NAME,
                original_error=exc,
            ) from exc

        self._logger.info(
            "upload_completed", path=str(file_path), size=total, status=response.status_code
        )
        try:
            return response.json()
        except ValueError:
            return response.text

    async def get_and_upload_file(
        self,
        bucket_key: str,
        path: str | Path,
        headers: dict[str, str] | None = None,
        query_parameters: dict[str, str] | None = None,
        on_send_progress: SendProgressCallback | None = None,
    ) -> PresignedUrl:
        """Request an upload URL for *bucket_key*, upload *path* to it.

        Returns the presign result so callers can store its key or preview
        URL.
        """
        if self._presign is None:
            raise ConfigurationError("No presign provider configured for uploads", _PROVIDER_NAME)

        content_type, _ = mimetypes.guess_type(str(path))
        try:
            presigned = await self._presign.request(bucket_key, content_type, UrlType.PUT)
        except AwsImageError as exc:
            raise UploadError(
                f"Failed to get and upload file for bucket key: {bucket_key}",
                provider_name=_PROVIDER_NAME,
                original_error=exc,
            ) from exc

        if presigned is None or not presigned.upload_url:
            raise UploadError(
                f"Failed to get presigned URL for bucket key: {bucket_key}",
                provider_name=_PROVIDER_NAME,
            )

        await self.upload_file(
            presigned.upload_url,
            path,
            headers=headers,
            query_parameters=query_parameters,
            on_send_progress=on_send_progress,
        )
        return presigned

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _iter_file(
        self,
        path: Path,
        total: int,
        on_send_progress: SendProgressCallback | None,
    ) -> AsyncIterator[bytes]:
        sent = 0
        with open(path, "rb") as fh:
            while True:
                chunk = await asyncio.to_thread(fh.read, self._chunk_size)
                if not chunk:
                    break
                sent += len(chunk)
                yield chunk
                if on_send_progress is not None:
                    await invoke_callback(
                        on_send_progress,
                        sent,
                        total,
                        logger=self._logger,
                        event="upload_progress_callback_error",
                    )
