"""
OCR reader: image preprocessing, engine orchestration and rule-based text
correction for Tesseract-style recognition engines.
"""

from .modules.engine import (
    EngineHandle,
    RecognitionOutcome,
    RecognitionProtocol,
    SessionProtocol,
    StatelessProtocol,
)
from .modules.enhance import ImageEnhancer
from .modules.errors import (
    EngineUnavailable,
    ErrorKind,
    ImageDecodeFailed,
    InvalidSettings,
    OCRReaderError,
    PostprocessingFailed,
    RecognitionFailed,
    SessionInitFailed,
)
from .modules.image_toolkit import ImageToolkit, ProcessedImage, SourceImage
from .modules.ocr_config import (
    LANGUAGE_OPTIONS,
    PRESETS,
    EngineMode,
    RecognitionSettings,
    SegmentationMode,
)
from .modules.orchestrator import EngineOrchestrator
from .modules.pipeline import (
    PipelineResult,
    PipelineStage,
    PipelineStatus,
    RecognitionPipeline,
    recognize_image,
)
from .modules.postprocess import CorrectionRule, TextPostprocessor

__version__ = "0.1.0"

__all__ = [
    "CorrectionRule",
    "EngineHandle",
    "EngineMode",
    "EngineOrchestrator",
    "EngineUnavailable",
    "ErrorKind",
    "ImageDecodeFailed",
    "ImageEnhancer",
    "ImageToolkit",
    "InvalidSettings",
    "LANGUAGE_OPTIONS",
    "OCRReaderError",
    "PRESETS",
    "PipelineResult",
    "PipelineStage",
    "PipelineStatus",
    "PostprocessingFailed",
    "ProcessedImage",
    "RecognitionFailed",
    "RecognitionOutcome",
    "RecognitionPipeline",
    "RecognitionProtocol",
    "RecognitionSettings",
    "SegmentationMode",
    "SessionInitFailed",
    "SessionProtocol",
    "SourceImage",
    "StatelessProtocol",
    "TextPostprocessor",
    "recognize_image",
    "__version__",
]
