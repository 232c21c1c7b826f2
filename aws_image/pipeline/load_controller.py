"""Per-surface load state machine.

An :class:`ImageLoadController` is what a display surface holds: it tracks
which descriptor is shown, listens to the matching shared stream, and turns
stream events into :class:`LoadState` snapshots for its observers::

    LOADING(progress) ──image──> SUCCESS(image)
            │
            └─────────error────> ERROR(error, stack_context)

Descriptor changes, reloads and visibility changes (pause/resume) are
driven by the surface; everything else follows from stream events.

Gapless mode keeps the last SUCCESS image while a replacement identity
loads, so the surface does not flash back to a placeholder.  An explicit
reload always resets to LOADING.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any

import structlog

from aws_image.models.image import DecodedImage, ImageChunkEvent, ImageRequestDescriptor
from aws_image.models.load_state import LoadState
from aws_image.pipeline.image_stream import (
    ImageStreamCompleter,
    ImageStreamCompleterHandle,
    ImageStreamListener,
)
from aws_image.pipeline.orchestrator import ImageAcquisitionPipeline
from aws_image.utils.callbacks import invoke_callback
from aws_image.utils.logging import get_logger

StateObserver = Callable[[LoadState], Any]


class ImageLoadController:
    """Drive one surface's :class:`LoadState` from the acquisition pipeline.

    Parameters
    ----------
    pipeline:
        Shared pipeline that hands out streams per descriptor identity.
    gapless:
        Keep showing the previous image while a new identity loads.
    """

    def __init__(self, pipeline: ImageAcquisitionPipeline, gapless: bool = False) -> None:
        self._pipeline = pipeline
        self._gapless = gapless
        self._descriptor: ImageRequestDescriptor | None = None
        self._completer: ImageStreamCompleter | None = None
        self._listener: ImageStreamListener | None = None
        self._keep_alive_handle: ImageStreamCompleterHandle | None = None
        self._listening = True
        self._disposed = False
        self._state = LoadState.loading()
        self._frame_number: int | None = None
        self._last_chunk: ImageChunkEvent | None = None
        self._observers: list[StateObserver] = []
        self._pending: set[asyncio.Task[Any]] = set()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def descriptor(self) -> ImageRequestDescriptor | None:
        return self._descriptor

    @property
    def frame_number(self) -> int | None:
        """Images received from the current stream, counting from 0."""
        return self._frame_number

    @property
    def gapless(self) -> bool:
        return self._gapless

    @property
    def is_listening(self) -> bool:
        return self._listening

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, callback: StateObserver) -> None:
        """Call *callback* (sync or async) with every new :class:`LoadState`."""
        if callback not in self._observers:
            self._observers.append(callback)

    def unsubscribe(self, callback: StateObserver) -> None:
        if callback in self._observers:
            self._observers.remove(callback)

    # ------------------------------------------------------------------
    # Surface-driven transitions
    # ------------------------------------------------------------------

    async def attach(self, descriptor: ImageRequestDescriptor) -> None:
        """Start showing *descriptor*."""
        await self.update(descriptor)

    async def update(self, descriptor: ImageRequestDescriptor) -> None:
        """Switch to *descriptor*.

        Nothing is reloaded when the identity is unchanged.  Turning
        ``force_refresh`` on forces a reload.
        """
        self._ensure_not_disposed()
        previous = self._descriptor
        self._descriptor = descriptor

        if previous is None:
            await self._resolve(descriptor, force_reload=False)
            return
        if previous == descriptor:
            return
        await self._resolve(
            descriptor, force_reload=descriptor.force_refresh and not previous.force_refresh
        )

    async def reload(self) -> None:
        """Evict the current image everywhere and load it again."""
        self._ensure_not_disposed()
        if self._descriptor is None:
            return
        await self._resolve(self._descriptor, force_reload=True)

    def pause(self, keep_alive: bool = True) -> None:
        """Stop listening, e.g. when the surface scrolls off-screen.

        With *keep_alive* the current stream stays in the shared cache and
        keeps loading; without it an unfinished stream may be dropped.
        """
        if not self._listening:
            return
        if keep_alive and self._keep_alive_handle is None and self._completer is not None:
            self._keep_alive_handle = self._completer.keep_alive()
        self._detach_listener()
        self._listening = False
        self._logger.debug("load_controller_paused", keep_alive=keep_alive)

    async def resume(self) -> None:
        """Listen again after :meth:`pause`; a finished result is replayed."""
        self._ensure_not_disposed()
        if self._listening:
            return
        self._listening = True
        await self._attach_listener()
        self._release_keep_alive()
        self._logger.debug("load_controller_resumed")

    def dispose(self) -> None:
        """Detach for good.  Pending evictions still run."""
        if self._disposed:
            return
        self._detach_listener()
        self._listening = False
        self._release_keep_alive()
        self._observers.clear()
        self._disposed = True

    async def drain_pending_evictions(self) -> None:
        """Wait for evictions scheduled after load errors."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Stream management
    # ------------------------------------------------------------------

    async def _resolve(self, descriptor: ImageRequestDescriptor, force_reload: bool) -> None:
        if force_reload:
            await self._pipeline.evict(descriptor)

        completer = await self._pipeline.resolve(descriptor)

        if (
            self._state.image is not None
            and not force_reload
            and completer is self._completer
        ):
            if not self._state.is_success:
                await self._set_state(LoadState.success(self._state.image))
            return

        await self._update_source_stream(completer, force_reload)

    async def _update_source_stream(
        self,
        completer: ImageStreamCompleter,
        force_reload: bool,
    ) -> None:
        if completer is self._completer:
            return

        self._detach_listener()
        self._release_keep_alive()

        self._completer = completer
        self._frame_number = None
        self._last_chunk = None
        if not self._gapless or force_reload or not self._state.is_success:
            await self._set_state(LoadState.loading())

        if self._listening:
            await self._attach_listener()

    async def _attach_listener(self) -> None:
        completer = self._completer
        if completer is None:
            return
        listener = ImageStreamListener(
            on_image=lambda image, sync: self._handle_image(completer, image, sync),
            on_chunk=lambda event: self._handle_chunk(completer, event),
            on_error=lambda error, stack: self._handle_error(completer, error, stack),
        )
        self._listener = listener
        await completer.add_listener(listener)

    def _detach_listener(self) -> None:
        if self._completer is not None and self._listener is not None:
            self._completer.remove_listener(self._listener)
        self._listener = None

    def _release_keep_alive(self) -> None:
        if self._keep_alive_handle is not None:
            self._keep_alive_handle.dispose()
            self._keep_alive_handle = None

    # ------------------------------------------------------------------
    # Stream events
    # ------------------------------------------------------------------

    async def _handle_chunk(self, completer: ImageStreamCompleter, event: ImageChunkEvent) -> None:
        if completer is not self._completer or event == self._last_chunk:
            return
        self._last_chunk = event
        if self._state.is_success:
            # Gapless: keep the old image on screen, just track progress.
            await self._set_state(self._state.model_copy(update={"progress": event}))
        else:
            await self._set_state(LoadState.loading(event))

    async def _handle_image(
        self,
        completer: ImageStreamCompleter,
        image: DecodedImage,
        synchronous_call: bool,
    ) -> None:
        if completer is not self._completer:
            self._logger.debug("load_controller_stale_image_ignored")
            return
        self._frame_number = (self._frame_number if self._frame_number is not None else -1) + 1
        await self._set_state(LoadState.success(image))

    async def _handle_error(
        self,
        completer: ImageStreamCompleter,
        error: BaseException,
        stack_context: str | None,
    ) -> None:
        if completer is not self._completer:
            self._logger.debug("load_controller_stale_error_ignored")
            return
        await self._set_state(LoadState.failure(error, stack_context))
        if self._descriptor is not None:
            self._schedule(self._pipeline.evict(self._descriptor))

    async def _set_state(self, state: LoadState) -> None:
        self._state = state
        self._logger.debug("load_state_changed", phase=state.phase.value)
        for observer in list(self._observers):
            await invoke_callback(
                observer, state, logger=self._logger, event="load_state_observer_error"
            )

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _ensure_not_disposed(self) -> None:
        if self._disposed:
            raise RuntimeError("ImageLoadController has been disposed")
