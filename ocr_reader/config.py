"""
Process-level configuration for the OCR reader.

Settings are read from ``OCR_READER_*`` environment variables (and an optional
``.env`` file) using Pydantic BaseSettings, with LRU caching of the loaded
instance.
"""

import logging
from functools import lru_cache
from typing import Optional

from opentelemetry import trace
from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ocr_reader.modules.ocr_config import RecognitionSettings

logger = logging.getLogger("ocr-reader.config")
tracer = trace.get_tracer(__name__)


class Settings(BaseSettings):
    """
    Application settings for the OCR reader.

    Attributes:
        app_name: Name of the application.
        version: Application version.
        environment: Deployment environment (development or production).
        log_level: Root log level name.
        json_logs: Emit structured JSON log lines instead of plain text.
        default_language: Language code used when none is given.
        default_preset: Optional preset layered onto the defaults.
        max_image_size_mb: Upper bound for encoded image payloads.
        tesseract_cmd: Optional path to the Tesseract binary.
        sentry_dsn: Optional Sentry DSN for error reporting.
    """

    app_name: str = "OCR Reader"
    version: str = "0.1.0"
    environment: str = "development"

    log_level: str = "INFO"
    json_logs: bool = True

    default_language: str = "jpn+eng"
    default_preset: Optional[str] = None
    max_image_size_mb: int = 10

    tesseract_cmd: Optional[str] = None

    # Monitoring

    sentry_dsn: Optional[str] = Field(None, repr=False)

    model_config = SettingsConfigDict(
        env_prefix="OCR_READER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_limits(self):
        if self.max_image_size_mb <= 0:
            raise ValueError("max_image_size_mb must be positive")
        if logging.getLevelName(self.log_level.upper()) not in (
            logging.DEBUG,
            logging.INFO,
            logging.WARNING,
            logging.ERROR,
            logging.CRITICAL,
        ):
            raise ValueError(f"Unknown log level: {self.log_level}")
        return self

    def recognition_settings(self) -> RecognitionSettings:
        """Default per-run settings: configured preset, then default language."""
        if self.default_preset:
            return RecognitionSettings.from_preset(
                self.default_preset, language=self.default_language
            )
        return RecognitionSettings(language=self.default_language)


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the application settings.
    """
    with tracer.start_as_current_span("config.load_settings"):
        logger.info("Loading settings from environment and .env file")
        try:
            return Settings()  # type: ignore[call-arg]
        except ValidationError as e:
            logger.error("Settings validation error: %s", e)
            raise
