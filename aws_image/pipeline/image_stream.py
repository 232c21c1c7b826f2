"""Observable result of one image load.

An :class:`ImageStreamCompleter` wraps a single load task and fans its
progress, image and error out to any number of listeners.  It is the unit
the acquisition pipeline caches per descriptor identity, so two surfaces
showing the same image share one download.

Lifecycle::

    pending ──chunk*──> completed(image)
            └──────────> completed(error)

Late listeners get the final image (or error) replayed immediately.
Listener callbacks may be sync or async; one that raises is logged and
skipped, the rest still run.

A pending completer that loses its last listener, with no keep-alive
handle outstanding, reports itself *abandoned* through the hook given at
construction.  The underlying task is not cancelled.
"""

from __future__ import annotations

import asyncio
import traceback
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from aws_image.models.image import DecodedImage, ImageChunkEvent
from aws_image.utils.callbacks import invoke_callback
from aws_image.utils.logging import get_logger


@dataclass(eq=False)
class ImageStreamListener:
    """Callbacks for one observer of an :class:`ImageStreamCompleter`.

    ``on_image(image, synchronous_call)`` -- ``synchronous_call`` is True
    when the image is replayed on subscription rather than freshly loaded.
    ``on_error(error, stack_context)``.
    """

    on_image: Callable[[DecodedImage, bool], Any]
    on_chunk: Callable[[ImageChunkEvent], Any] | None = None
    on_error: Callable[[BaseException, str | None], Any] | None = None


class ImageStreamCompleterHandle:
    """Keeps a completer alive while nobody is listening.  Call :meth:`dispose` once."""

    def __init__(self, completer: ImageStreamCompleter) -> None:
        self._completer: ImageStreamCompleter | None = completer

    @property
    def disposed(self) -> bool:
        return self._completer is None

    def dispose(self) -> None:
        if self._completer is None:
            return
        completer, self._completer = self._completer, None
        completer._release_keep_alive()


class ImageStreamCompleter:
    """Event emitter for a single load.

    Parameters
    ----------
    debug_label:
        Shown in logs (typically the source key).
    on_abandoned:
        Called with this completer when it is dropped while still pending.
    """

    def __init__(
        self,
        debug_label: str | None = None,
        on_abandoned: Callable[[ImageStreamCompleter], None] | None = None,
    ) -> None:
        self.debug_label = debug_label
        self._on_abandoned = on_abandoned
        self._listeners: list[ImageStreamListener] = []
        self._keep_alive_count = 0
        self._task: asyncio.Task[None] | None = None
        self._image: DecodedImage | None = None
        self._error: BaseException | None = None
        self._stack_context: str | None = None
        self._completed = False
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def is_completed(self) -> bool:
        return self._completed

    @property
    def image(self) -> DecodedImage | None:
        return self._image

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def has_listeners(self) -> bool:
        return bool(self._listeners)

    @property
    def is_kept_alive(self) -> bool:
        return self._keep_alive_count > 0

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def start(self, load: Awaitable[DecodedImage]) -> None:
        """Run *load* in a task and publish its outcome."""
        if self._task is not None:
            raise RuntimeError("ImageStreamCompleter already started")
        self._task = asyncio.get_running_loop().create_task(self._run(load))

    async def report_chunk(self, event: ImageChunkEvent) -> None:
        if self._completed:
            return
        for listener in list(self._listeners):
            if listener.on_chunk is not None:
                await invoke_callback(
                    listener.on_chunk, event, logger=self._logger, event="stream_listener_error"
                )

    async def set_image(self, image: DecodedImage) -> None:
        self._image = image
        self._completed = True
        self._logger.debug("stream_image", label=self.debug_label, listeners=len(self._listeners))
        for listener in list(self._listeners):
            await invoke_callback(
                listener.on_image, image, False, logger=self._logger, event="stream_listener_error"
            )

    async def report_error(self, error: BaseException, stack_context: str | None = None) -> None:
        self._error = error
        self._stack_context = stack_context
        self._completed = True
        self._logger.debug("stream_error", label=self.debug_label, error=str(error))
        for listener in list(self._listeners):
            if listener.on_error is not None:
                await invoke_callback(
                    listener.on_error,
                    error,
                    stack_context,
                    logger=self._logger,
                    event="stream_listener_error",
                )

    async def wait(self) -> DecodedImage:
        """Wait for the load to finish; return the image or raise its error."""
        if self._task is not None:
            await asyncio.shield(self._task)
        if self._error is not None:
            raise self._error
        if self._image is None:
            raise RuntimeError("ImageStreamCompleter finished without a result")
        return self._image

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    async def add_listener(self, listener: ImageStreamListener) -> None:
        """Subscribe *listener*; a completed result is replayed immediately."""
        self._listeners.append(listener)
        if self._image is not None:
            await invoke_callback(
                listener.on_image, self._image, True, logger=self._logger,
                event="stream_listener_error",
            )
        elif self._error is not None and listener.on_error is not None:
            await invoke_callback(
                listener.on_error, self._error, self._stack_context, logger=self._logger,
                event="stream_listener_error",
            )

    def remove_listener(self, listener: ImageStreamListener) -> None:
        for index, existing in enumerate(self._listeners):
            if existing is listener:
                del self._listeners[index]
                break
        self._maybe_abandon()

    def keep_alive(self) -> ImageStreamCompleterHandle:
        """Keep this completer from being abandoned until the handle is disposed."""
        self._keep_alive_count += 1
        return ImageStreamCompleterHandle(self)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _run(self, load: Awaitable[DecodedImage]) -> None:
        try:
            image = await load
        except Exception as exc:
            stack_context = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            await self.report_error(exc, stack_context)
            return
        await self.set_image(image)

    def _release_keep_alive(self) -> None:
        self._keep_alive_count = max(0, self._keep_alive_count - 1)
        self._maybe_abandon()

    def _maybe_abandon(self) -> None:
        if self._completed or self._listeners or self._keep_alive_count:
            return
        self._logger.debug("stream_abandoned", label=self.debug_label)
        if self._on_abandoned is not None:
            self._on_abandoned(self)
