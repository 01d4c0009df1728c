"""
Drives the recognition engine through its available call protocols.
"""

import logging
from collections.abc import Sequence
from typing import Optional

from .engine import (
    EngineHandle,
    RecognitionOutcome,
    RecognitionProtocol,
    SessionProtocol,
    StatelessProtocol,
)
from .errors import RecognitionFailed, SessionInitFailed
from .image_toolkit import AnyImage
from .ocr_config import RecognitionSettings

__all__ = ["EngineOrchestrator"]

logger = logging.getLogger("ocr-reader.orchestrator")


class EngineOrchestrator:
    """
    Tries each supported protocol in order (session first, then stateless)
    and returns the first outcome. Errors from one protocol trigger the next;
    when none succeeds, RecognitionFailed carries the last underlying error.
    Recognition is never retried within a protocol.
    """

    def __init__(
        self,
        handle: EngineHandle,
        protocols: Optional[Sequence[RecognitionProtocol]] = None,
    ):
        self.handle = handle
        self.protocols: list[RecognitionProtocol] = list(
            protocols or (SessionProtocol(), StatelessProtocol())
        )

    async def recognize(
        self, image: AnyImage, settings: RecognitionSettings
    ) -> RecognitionOutcome:
        """Raises EngineUnavailable or RecognitionFailed."""
        engine = await self.handle.resolve()

        last_error: Optional[BaseException] = None
        attempted: list[str] = []

        for protocol in self.protocols:
            if not protocol.is_supported(engine):
                logger.debug("Protocol %s not supported by engine", protocol.name)
                continue

            attempted.append(protocol.name)
            try:
                outcome = await protocol.run(engine, image, settings)
            except SessionInitFailed as e:
                last_error = e
                logger.warning(
                    "Session initialization failed, falling back | Error: %s", e
                )
                continue
            except Exception as e:
                last_error = e
                logger.warning(
                    "Protocol %s failed, trying next | Error: %s", protocol.name, e
                )
                continue

            logger.info(
                "Recognition completed | Protocol: %s | Length: %d | Confidence: %s",
                outcome.protocol,
                len(outcome.raw_text),
                outcome.confidence,
            )
            return outcome

        if not attempted:
            raise RecognitionFailed(
                "Engine exposes no supported recognition protocol",
                details={"protocols": [p.name for p in self.protocols]},
            )

        raise RecognitionFailed(
            f"All recognition protocols failed: {last_error}",
            cause=last_error,
            details={"attempted": attempted},
        )
