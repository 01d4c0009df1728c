"""
Call protocols for external recognition engines.

Engines are duck-typed capability objects. Two incompatible shapes exist:

- session-capable: ``create_session()`` returns a stateful session that is
  loaded, initialized with a language, configured, asked to ``recognize`` and
  finally released;
- stateless: ``recognize(image, language)`` does everything in one call.

Every operation is probed before it is called and any call may return either
a plain value or an awaitable. Each shape is wrapped in a RecognitionProtocol
strategy so the orchestrator never branches on engine identity.
"""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from .confidence import extract_confidence, extract_text
from .errors import EngineUnavailable, SessionInitFailed
from .image_toolkit import AnyImage
from .ocr_config import RecognitionSettings

__all__ = [
    "EngineHandle",
    "RecognitionOutcome",
    "RecognitionProtocol",
    "SessionCapable",
    "SessionProtocol",
    "StatelessCapable",
    "StatelessProtocol",
    "has_method",
    "maybe_await",
    "outcome_from_result",
]

logger = logging.getLogger("ocr-reader.engine")


class EngineSession(Protocol):
    def recognize(self, image: Any) -> Any: ...


class SessionCapable(Protocol):
    def create_session(self) -> Any: ...


class StatelessCapable(Protocol):
    def recognize(self, image: Any, language: str) -> Any: ...


@dataclass(frozen=True)
class RecognitionOutcome:
    """Raw engine output for one run. confidence is None when not reported."""

    raw_text: str
    confidence: Optional[int] = None
    protocol: str = "unknown"


def has_method(obj: Any, name: str) -> bool:
    return obj is not None and callable(getattr(obj, name, None))


async def maybe_await(value: Any) -> Any:
    """Awaits engine call results that are awaitable, passes others through."""
    if inspect.isawaitable(value):
        return await value
    return value


def outcome_from_result(result: Any, protocol: str) -> RecognitionOutcome:
    return RecognitionOutcome(
        raw_text=extract_text(result),
        confidence=extract_confidence(result),
        protocol=protocol,
    )


class RecognitionProtocol(ABC):
    """
    Strategy for driving one engine call shape.
    """

    name: str = "unknown"

    @abstractmethod
    def is_supported(self, engine: Any) -> bool:
        """True when the engine exposes the operations this protocol needs."""

    @abstractmethod
    async def run(
        self, engine: Any, image: AnyImage, settings: RecognitionSettings
    ) -> RecognitionOutcome:
        """Recognizes the image. Raises on any failure."""


class SessionProtocol(RecognitionProtocol):
    """
    Scoped session use: acquire, load, initialize, configure, recognize,
    release. Release runs on every exit path.
    """

    name = "session"
    RELEASE_METHODS = ("terminate", "release", "close")

    def is_supported(self, engine: Any) -> bool:
        return has_method(engine, "create_session")

    async def run(
        self, engine: Any, image: AnyImage, settings: RecognitionSettings
    ) -> RecognitionOutcome:
        session = await self._acquire(engine)
        try:
            await self._initialize(session, settings)
            logger.debug("Session initialized | Language: %s", settings.language)
            result = await maybe_await(session.recognize(image))
        finally:
            await self._release(session)

        return outcome_from_result(result, self.name)

    async def _acquire(self, engine: Any) -> Any:
        try:
            session = await maybe_await(engine.create_session())
        except Exception as e:
            raise SessionInitFailed(f"Could not create engine session: {e}") from e

        if session is None:
            raise SessionInitFailed("Engine returned no session")
        return session

    async def _initialize(self, session: Any, settings: RecognitionSettings) -> None:
        if not has_method(session, "recognize"):
            raise SessionInitFailed("Session exposes no recognize operation")

        try:
            if has_method(session, "load"):
                await maybe_await(session.load())
            if has_method(session, "load_language"):
                await maybe_await(session.load_language(settings.language))
            if has_method(session, "initialize"):
                await maybe_await(session.initialize(settings.language))
            if has_method(session, "set_parameters"):
                await maybe_await(session.set_parameters(settings.engine_parameters()))
        except Exception as e:
            raise SessionInitFailed(
                f"Session initialization failed: {e}",
                details={"language": settings.language},
            ) from e

    async def _release(self, session: Any) -> None:
        for method in self.RELEASE_METHODS:
            if not has_method(session, method):
                continue
            try:
                await maybe_await(getattr(session, method)())
            except Exception as e:
                logger.warning("Session release via %s failed: %s", method, e)
            return

        logger.debug("Session exposes no release operation")


class StatelessProtocol(RecognitionProtocol):
    """Single call taking the image and the language code."""

    name = "stateless"

    def is_supported(self, engine: Any) -> bool:
        return has_method(engine, "recognize")

    async def run(
        self, engine: Any, image: AnyImage, settings: RecognitionSettings
    ) -> RecognitionOutcome:
        result = await maybe_await(engine.recognize(image, settings.language))
        return outcome_from_result(result, self.name)


class EngineHandle:
    """
    Explicit reference to the recognition engine, injected into the
    orchestrator. Either wraps an engine object directly or a loader (plain or
    async) that is called on first use; concurrent callers share one load.
    """

    def __init__(
        self,
        engine: Any = None,
        loader: Optional[Callable[[], Any]] = None,
    ):
        self._engine = engine
        self._loader = loader
        self._load_task: Optional[asyncio.Future] = None

    @classmethod
    def from_loader(cls, loader: Callable[[], Any]) -> "EngineHandle":
        return cls(loader=loader)

    @classmethod
    def detect(cls, tesseract_cmd: Optional[str] = None) -> "EngineHandle":
        """
        Handle around the bundled Tesseract adapter, empty if unusable.
        The binary path defaults to the configured tesseract_cmd.
        """
        from ocr_reader.config import get_settings
        from ocr_reader.utils.capabilities import CapabilityProvider

        from .tesseract_engine import TesseractEngine

        if tesseract_cmd is None:
            tesseract_cmd = get_settings().tesseract_cmd
        engine = TesseractEngine(tesseract_cmd=tesseract_cmd)
        if CapabilityProvider.is_tesseract_available():
            return cls(engine)
        return cls()

    @property
    def is_available(self) -> bool:
        return self._engine is not None

    def set_engine(self, engine: Any) -> None:
        """Publishes an engine the caller finished loading."""
        self._engine = engine

    async def resolve(self) -> Any:
        """
        Returns the engine or raises EngineUnavailable. A failed load is
        forgotten so the next invocation calls the loader again.
        """
        if self._engine is None and self._loader is not None:
            try:
                if self._load_task is None:
                    self._load_task = asyncio.ensure_future(maybe_await(self._loader()))
                self._engine = await asyncio.shield(self._load_task)
            except Exception as e:
                self._load_task = None
                logger.warning("Engine loader failed: %s", e)
                raise EngineUnavailable(f"Recognition engine failed to load: {e}") from e

        if self._engine is None:
            raise EngineUnavailable("No recognition engine is loaded")
        return self._engine
