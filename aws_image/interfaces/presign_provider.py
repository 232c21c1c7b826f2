"""Abstract base class for presigned-URL backends.

A presign provider exchanges a bucket key for a short-lived signed URL.
Two transports exist -- plain REST and GraphQL -- and both return the same
:class:`PresignedUrl` shape, so the resolver and uploader never know which
one they are talking to.  The concrete class is chosen once, at
construction (see ``aws_image.main.build_presign_provider``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from aws_image.models.image import PresignedUrl, UrlType


# Concrete implementations: RestPresignProvider, GraphQLPresignProvider
# Located in: aws_image/providers/presign/
class IPresignProvider(ABC):
    """Contract for presigned URL exchanges."""

    @abstractmethod
    async def request(
        self,
        bucket_key: str,
        content_type: str | None = None,
        url_type: UrlType = UrlType.GET,
    ) -> PresignedUrl | None:
        """Request a presigned URL for *bucket_key*.

        Parameters
        ----------
        bucket_key:
            Object key (a full URL is accepted; its path is used).
        content_type:
            MIME type of the object, forwarded to the backend.
        url_type:
            ``GET`` for a preview URL, ``PUT`` for an upload URL.

        Returns
        -------
        PresignedUrl or None
            ``None`` when the backend answered but without a usable URL.

        Raises
        ------
        aws_image.utils.errors.ResolutionError
            If the exchange itself fails (transport error, bad status,
            malformed or error-bearing payload).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"rest_presign"``."""
