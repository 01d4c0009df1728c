"""
High-level recognition pipeline: preprocessing, recognition, postprocessing
and assembly of the caller-facing result.

Each invocation is one linear pass through
Idle -> Preprocessing -> Recognizing -> Postprocessing -> Done, where the two
processing stages are skippable and any stage may end in Failed.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from opentelemetry import trace

from ocr_reader.config import get_settings
from ocr_reader.utils.context import new_run_id, run_context

from .engine import EngineHandle, RecognitionOutcome
from .enhance import ImageEnhancer
from .errors import (
    ErrorKind,
    ImageDecodeFailed,
    OCRReaderError,
    PostprocessingFailed,
    RecognitionFailed,
)
from .image_toolkit import AnyImage, ImageToolkit
from .ocr_config import RecognitionSettings
from .orchestrator import EngineOrchestrator
from .postprocess import TextPostprocessor

__all__ = [
    "PipelineResult",
    "PipelineStage",
    "PipelineStatus",
    "RecognitionPipeline",
    "ResultAssembler",
    "recognize_image",
]

logger = logging.getLogger("ocr-reader.pipeline")
tracer = trace.get_tracer(__name__)


class PipelineStage(str, Enum):
    IDLE = "idle"
    PREPROCESSING = "preprocessing"
    RECOGNIZING = "recognizing"
    POSTPROCESSING = "postprocessing"
    DONE = "done"
    FAILED = "failed"


class PipelineStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


_TRANSITIONS: dict[PipelineStage, frozenset] = {
    PipelineStage.IDLE: frozenset(
        {PipelineStage.PREPROCESSING, PipelineStage.RECOGNIZING, PipelineStage.FAILED}
    ),
    PipelineStage.PREPROCESSING: frozenset(
        {PipelineStage.RECOGNIZING, PipelineStage.FAILED}
    ),
    PipelineStage.RECOGNIZING: frozenset(
        {PipelineStage.POSTPROCESSING, PipelineStage.DONE, PipelineStage.FAILED}
    ),
    PipelineStage.POSTPROCESSING: frozenset({PipelineStage.DONE, PipelineStage.FAILED}),
    PipelineStage.DONE: frozenset(),
    PipelineStage.FAILED: frozenset(),
}

# Kind reported for unexpected errors, by the stage they escaped from.
_STAGE_ERRORS: dict[PipelineStage, type[OCRReaderError]] = {
    PipelineStage.IDLE: ImageDecodeFailed,
    PipelineStage.PREPROCESSING: ImageDecodeFailed,
    PipelineStage.RECOGNIZING: RecognitionFailed,
    PipelineStage.POSTPROCESSING: PostprocessingFailed,
}


@dataclass(frozen=True)
class PipelineResult:
    """Outcome returned to the caller. text is None on failure."""

    status: PipelineStatus
    text: Optional[str] = None
    confidence: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    timings_ms: dict[str, float] = field(default_factory=dict)
    stages: tuple[PipelineStage, ...] = ()
    protocol: Optional[str] = None
    image_size: Optional[tuple[int, int]] = None
    run_id: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is PipelineStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "text": self.text,
            "confidence": self.confidence,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_message": self.error_message,
            "timings_ms": dict(self.timings_ms),
            "stages": [stage.value for stage in self.stages],
            "protocol": self.protocol,
            "image_size": list(self.image_size) if self.image_size else None,
            "run_id": self.run_id,
        }


@dataclass
class RunContext:
    """
    Mutable state for a single invocation. Never shared between runs.
    """

    run_id: str
    stage: PipelineStage = PipelineStage.IDLE
    history: list[PipelineStage] = field(default_factory=list)
    timings_ms: dict[str, float] = field(default_factory=dict)
    image_size: Optional[tuple[int, int]] = None
    outcome: Optional[RecognitionOutcome] = None

    def advance(self, stage: PipelineStage) -> None:
        if stage not in _TRANSITIONS[self.stage]:
            raise RuntimeError(
                f"Illegal pipeline transition {self.stage.value} -> {stage.value}"
            )
        self.stage = stage
        self.history.append(stage)


class ResultAssembler:
    """Builds PipelineResult values; never touches upstream entities."""

    @staticmethod
    def success(ctx: RunContext, text: str) -> PipelineResult:
        outcome = ctx.outcome
        return PipelineResult(
            status=PipelineStatus.SUCCESS,
            text=text,
            confidence=outcome.confidence if outcome else None,
            timings_ms=dict(ctx.timings_ms),
            stages=tuple(ctx.history),
            protocol=outcome.protocol if outcome else None,
            image_size=ctx.image_size,
            run_id=ctx.run_id,
        )

    @staticmethod
    def failure(ctx: RunContext, error: OCRReaderError) -> PipelineResult:
        return PipelineResult(
            status=PipelineStatus.FAILURE,
            error_kind=error.kind,
            error_message=error.message,
            timings_ms=dict(ctx.timings_ms),
            stages=tuple(ctx.history),
            image_size=ctx.image_size,
            run_id=ctx.run_id,
        )


class RecognitionPipeline:
    """
    Main pipeline turning a source image into corrected text.
    """

    def __init__(
        self,
        orchestrator: EngineOrchestrator,
        enhancer: Optional[ImageEnhancer] = None,
        postprocessor: Optional[TextPostprocessor] = None,
        on_progress: Optional[Callable[[PipelineStage], Any]] = None,
        on_text_extracted: Optional[Callable[[str], Any]] = None,
    ):
        self.orchestrator = orchestrator
        self.enhancer = enhancer or ImageEnhancer()
        self.postprocessor = postprocessor or TextPostprocessor()
        self.on_progress = on_progress
        self.on_text_extracted = on_text_extracted

    async def run_bytes(
        self,
        image_bytes: bytes,
        settings: RecognitionSettings,
        max_image_size_mb: Optional[int] = None,
    ) -> PipelineResult:
        """
        Validates and decodes encoded image bytes, then runs the pipeline.
        The size limit defaults to the configured max_image_size_mb.
        """
        if max_image_size_mb is None:
            max_image_size_mb = get_settings().max_image_size_mb
        validation_error = ImageToolkit.validate_image(image_bytes, max_image_size_mb)
        if validation_error:
            ctx = RunContext(run_id=new_run_id())
            ctx.advance(PipelineStage.FAILED)
            return ResultAssembler.failure(ctx, ImageDecodeFailed(validation_error))

        try:
            image = await ImageToolkit.decode_image_async(image_bytes)
        except ImageDecodeFailed as e:
            ctx = RunContext(run_id=new_run_id())
            ctx.advance(PipelineStage.FAILED)
            return ResultAssembler.failure(ctx, e)

        return await self.run(image, settings)

    async def run(self, image: AnyImage, settings: RecognitionSettings) -> PipelineResult:
        """Runs one invocation. Failures are reported on the result, not raised."""
        ctx = RunContext(run_id=new_run_id())

        with run_context(ctx.run_id), tracer.start_as_current_span("ocr.pipeline") as span:
            span.set_attribute("ocr.run_id", ctx.run_id)
            try:
                logger.info(
                    "Pipeline started | Size: %dx%d | Language: %s",
                    image.width,
                    image.height,
                    settings.language,
                )
                result = await self._execute(ctx, image, settings)
            except OCRReaderError as e:
                result = self._fail(ctx, e)
            except Exception as e:
                error_cls = _STAGE_ERRORS.get(ctx.stage, RecognitionFailed)
                logger.exception("Unexpected failure in stage %s", ctx.stage.value)
                result = self._fail(ctx, error_cls(f"Unexpected error: {e}"))

            span.set_attribute("ocr.status", result.status.value)

        if result.succeeded:
            self._notify_text(result.text or "")
        return result

    async def _execute(
        self, ctx: RunContext, image: AnyImage, settings: RecognitionSettings
    ) -> PipelineResult:
        target = image
        if settings.enable_preprocessing:
            self._enter(ctx, PipelineStage.PREPROCESSING)
            with self._timed(ctx, PipelineStage.PREPROCESSING):
                target = await asyncio.to_thread(self.enhancer.preprocess, image, settings)
        ctx.image_size = (target.width, target.height)

        self._enter(ctx, PipelineStage.RECOGNIZING)
        with self._timed(ctx, PipelineStage.RECOGNIZING):
            ctx.outcome = await self.orchestrator.recognize(target, settings)
        text = ctx.outcome.raw_text

        if settings.enable_postprocessing:
            self._enter(ctx, PipelineStage.POSTPROCESSING)
            with self._timed(ctx, PipelineStage.POSTPROCESSING):
                text = self.postprocessor.process(text, settings)

        self._enter(ctx, PipelineStage.DONE)
        logger.info(
            "Pipeline completed | Length: %d | Confidence: %s | Protocol: %s",
            len(text),
            ctx.outcome.confidence,
            ctx.outcome.protocol,
        )
        return ResultAssembler.success(ctx, text)

    def _fail(self, ctx: RunContext, error: OCRReaderError) -> PipelineResult:
        logger.error(
            "Pipeline failed | Stage: %s | Kind: %s | Error: %s",
            ctx.stage.value,
            error.kind.value,
            error.message,
        )
        ctx.advance(PipelineStage.FAILED)
        return ResultAssembler.failure(ctx, error)

    def _enter(self, ctx: RunContext, stage: PipelineStage) -> None:
        ctx.advance(stage)
        if self.on_progress is None:
            return
        try:
            self.on_progress(stage)
        except Exception as e:
            logger.warning("Progress callback failed: %s", e)

    def _notify_text(self, text: str) -> None:
        if self.on_text_extracted is None:
            return
        try:
            self.on_text_extracted(text)
        except Exception as e:
            logger.warning("Text consumer failed: %s", e)

    @contextmanager
    def _timed(self, ctx: RunContext, stage: PipelineStage) -> Iterator[None]:
        """Records wall time of a stage and wraps it in a tracing span."""
        start = time.perf_counter()
        with tracer.start_as_current_span(f"ocr.{stage.value}"):
            try:
                yield
            finally:
                elapsed = (time.perf_counter() - start) * 1000
                ctx.timings_ms[stage.value] = round(elapsed, 3)


async def recognize_image(
    image: AnyImage,
    settings: Optional[RecognitionSettings] = None,
    handle: Optional[EngineHandle] = None,
) -> PipelineResult:
    """
    Stand-alone function running one invocation with default components.
    Settings and the engine fall back to the process configuration.
    """
    if settings is None:
        settings = get_settings().recognition_settings()
    if handle is None:
        handle = EngineHandle.detect()
    pipeline = RecognitionPipeline(EngineOrchestrator(handle))
    return await pipeline.run(image, settings)
