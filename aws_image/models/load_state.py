"""Load lifecycle models observed by display surfaces.

A :class:`LoadState` is a tagged variant: ``phase`` says which of the
payload fields is meaningful.

    LOADING  -> ``progress`` (may be None before the first chunk)
    SUCCESS  -> ``image``
    ERROR    -> ``error`` and ``stack_context``

Only the load controller (``aws_image.pipeline.load_controller``) creates
new states; observers receive them read-only.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from aws_image.models.image import DecodedImage, ImageChunkEvent


class LoadPhase(str, Enum):  # noqa: UP042
    """Phases of a single image load.

        LOADING -> SUCCESS
        LOADING -> ERROR

    SUCCESS and ERROR are only entered from LOADING; a reload or identity
    change goes back to LOADING (unless gapless mode keeps SUCCESS on screen).
    """

    LOADING = "LOADING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class LoadState(BaseModel):
    """Snapshot of one surface's load lifecycle."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    phase: LoadPhase
    progress: ImageChunkEvent | None = None
    image: DecodedImage | None = None
    error: BaseException | None = None
    stack_context: str | None = None

    @classmethod
    def loading(cls, progress: ImageChunkEvent | None = None) -> LoadState:
        return cls(phase=LoadPhase.LOADING, progress=progress)

    @classmethod
    def success(cls, image: DecodedImage) -> LoadState:
        return cls(phase=LoadPhase.SUCCESS, image=image)

    @classmethod
    def failure(cls, error: BaseException, stack_context: str | None = None) -> LoadState:
        return cls(phase=LoadPhase.ERROR, error=error, stack_context=stack_context)

    @property
    def is_loading(self) -> bool:
        return self.phase is LoadPhase.LOADING

    @property
    def is_success(self) -> bool:
        return self.phase is LoadPhase.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.phase is LoadPhase.ERROR
