"""
Error hierarchy for the recognition pipeline.
Every failure the pipeline can report maps to exactly one ErrorKind.
"""

from enum import Enum
from typing import Any, Optional

__all__ = [
    "ErrorKind",
    "OCRReaderError",
    "InvalidSettings",
    "EngineUnavailable",
    "ImageDecodeFailed",
    "SessionInitFailed",
    "RecognitionFailed",
    "PostprocessingFailed",
]


class ErrorKind(str, Enum):
    """Terminal error kinds reported on a failed PipelineResult."""

    INVALID_SETTINGS = "InvalidSettings"
    ENGINE_UNAVAILABLE = "EngineUnavailable"
    IMAGE_DECODE_FAILED = "ImageDecodeFailed"
    SESSION_INIT_FAILED = "SessionInitFailed"
    RECOGNITION_FAILED = "RecognitionFailed"
    POSTPROCESSING_FAILED = "PostprocessingFailed"


class OCRReaderError(Exception):
    """Base class for pipeline errors."""

    kind: ErrorKind = ErrorKind.RECOGNITION_FAILED

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidSettings(OCRReaderError):
    """Raised when a RecognitionSettings value fails validation."""

    kind = ErrorKind.INVALID_SETTINGS


class EngineUnavailable(OCRReaderError):
    """Raised when no recognition engine is loaded or reachable."""

    kind = ErrorKind.ENGINE_UNAVAILABLE


class ImageDecodeFailed(OCRReaderError):
    """Raised when the source image cannot be interpreted."""

    kind = ErrorKind.IMAGE_DECODE_FAILED


class SessionInitFailed(OCRReaderError):
    """
    Raised when an engine session cannot be acquired or initialized.
    Recovered by the orchestrator through the stateless protocol.
    """

    kind = ErrorKind.SESSION_INIT_FAILED


class RecognitionFailed(OCRReaderError):
    """Raised when every recognition protocol is unavailable or failed."""

    kind = ErrorKind.RECOGNITION_FAILED

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.cause = cause


class PostprocessingFailed(OCRReaderError):
    """Raised when the correction rules fail or do not converge."""

    kind = ErrorKind.POSTPROCESSING_FAILED
