"""
Configuration models for a single recognition run.
"""

from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import InvalidSettings

__all__ = [
    "EngineMode",
    "LANGUAGE_OPTIONS",
    "PRESETS",
    "RecognitionSettings",
    "SegmentationMode",
]


class SegmentationMode(IntEnum):
    """Page segmentation modes understood by Tesseract-style engines."""

    OSD_ONLY = 0
    AUTO_WITH_OSD = 1
    AUTO = 3
    SINGLE_COLUMN = 4
    SINGLE_BLOCK = 6
    SINGLE_LINE = 7
    SINGLE_WORD = 8
    SINGLE_CHAR = 10
    SPARSE_TEXT = 11
    RAW_LINE = 13

    @property
    def label(self) -> str:
        return _SEGMENTATION_LABELS[self]


_SEGMENTATION_LABELS = {
    SegmentationMode.OSD_ONLY: "Orientation and script detection only",
    SegmentationMode.AUTO_WITH_OSD: "Automatic page segmentation with OSD",
    SegmentationMode.AUTO: "Fully automatic page segmentation",
    SegmentationMode.SINGLE_COLUMN: "Single column of variable-size text",
    SegmentationMode.SINGLE_BLOCK: "Uniform block of text",
    SegmentationMode.SINGLE_LINE: "Single text line",
    SegmentationMode.SINGLE_WORD: "Single word",
    SegmentationMode.SINGLE_CHAR: "Single character",
    SegmentationMode.SPARSE_TEXT: "Sparse text",
    SegmentationMode.RAW_LINE: "Raw line, no text ordering",
}


class EngineMode(IntEnum):
    """Recognition strategies selectable on the engine."""

    LEGACY = 0
    LSTM = 1
    LEGACY_LSTM = 2
    DEFAULT = 3


LANGUAGE_OPTIONS: dict[str, str] = {
    "jpn+eng": "Japanese + English",
    "jpn": "Japanese",
    "eng": "English",
    "chi_sim+eng": "Chinese (Simplified) + English",
    "kor+eng": "Korean + English",
}

# Field overrides layered onto the defaults.
PRESETS: dict[str, dict[str, Any]] = {
    "document": {
        "segmentation_mode": int(SegmentationMode.SINGLE_BLOCK),
        "target_resolution": 300,
        "contrast": 120,
        "brightness": 110,
    },
    "handwriting": {
        "segmentation_mode": int(SegmentationMode.RAW_LINE),
        "target_resolution": 400,
        "contrast": 140,
        "brightness": 105,
    },
    "screenshot": {
        "segmentation_mode": int(SegmentationMode.AUTO),
        "target_resolution": 200,
        "contrast": 110,
        "brightness": 100,
    },
    "low_quality_scan": {
        "segmentation_mode": int(SegmentationMode.SINGLE_BLOCK),
        "target_resolution": 400,
        "contrast": 150,
        "brightness": 115,
        "enable_preprocessing": True,
    },
}


class RecognitionSettings(BaseModel):
    """
    Immutable description of how one recognition run behaves.

    Attributes:
        language: Engine language code, '+' joins several (e.g. "jpn+eng").
        segmentation_mode: How the page is partitioned into text regions.
        engine_mode: Underlying recognition strategy.
        target_resolution: Dots per inch used to decide upscaling.
        contrast: Contrast percentage, 100 leaves the image unchanged.
        brightness: Brightness percentage, 100 leaves the image unchanged.
        enable_preprocessing: Run the image preprocessor.
        enable_postprocessing: Run the text postprocessor.
        allowed_characters: Character whitelist, empty means unrestricted.
        denied_characters: Character blacklist, empty means unrestricted.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    language: str = "jpn+eng"
    segmentation_mode: int = int(SegmentationMode.SINGLE_BLOCK)
    engine_mode: int = int(EngineMode.DEFAULT)
    target_resolution: int = 300
    contrast: int = 100
    brightness: int = 100
    enable_preprocessing: bool = True
    enable_postprocessing: bool = True
    allowed_characters: str = ""
    denied_characters: str = ""

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise InvalidSettings(
                f"Invalid recognition settings: {e}",
                details={"errors": e.errors(include_url=False)},
            ) from e

    @field_validator("target_resolution")
    @classmethod
    def _check_target_resolution(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"target_resolution must be > 0, got {value}")
        return value

    @classmethod
    def from_preset(cls, name: str, **overrides: Any) -> "RecognitionSettings":
        """Builds settings from a named preset plus optional field overrides."""
        try:
            preset = PRESETS[name]
        except KeyError:
            raise InvalidSettings(
                f"Unknown preset {name!r}",
                details={"available": sorted(PRESETS)},
            ) from None
        return cls(**{**preset, **overrides})

    def with_overrides(self, **changes: Any) -> "RecognitionSettings":
        """Returns a new, re-validated settings value with the given changes."""
        return type(self)(**{**self.model_dump(), **changes})

    @property
    def languages(self) -> list[str]:
        return [code for code in self.language.split("+") if code]

    def engine_parameters(self) -> dict[str, str]:
        """Per-run parameters pushed into an engine session."""
        return {
            "tessedit_pageseg_mode": str(self.segmentation_mode),
            "tessedit_ocr_engine_mode": str(self.engine_mode),
            "tessedit_char_whitelist": self.allowed_characters,
            "tessedit_char_blacklist": self.denied_characters,
            "user_defined_dpi": str(self.target_resolution),
        }
