import logging
from typing import Any, Optional

import sentry_sdk
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from .custom_logging import setup_logging


def init_monitoring(settings: Any, integrations: Optional[list[Any]] = None, **kwargs):
    """
    Unified initialization for logging, Sentry and tracing.

    Args:
        settings: Settings object exposing log_level, json_logs, sentry_dsn
            and environment.
        integrations: Optional list of Sentry integrations to add.
        **kwargs: Additional parameters for sentry_sdk.init (e.g., release).
    """
    setup_logging(
        level=logging.getLevelName(settings.log_level.upper()),
        json_logs=settings.json_logs,
    )
    logger = logging.getLogger("ocr-reader.init")

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            integrations=list(integrations or []),
            traces_sample_rate=1.0 if settings.environment != "production" else 0.1,
            **kwargs,
        )
        logger.info("Sentry SDK initialized | Environment: %s", settings.environment)
    else:
        logger.info("Sentry DSN not configured, skipping SDK initialization")

    if not isinstance(trace.get_tracer_provider(), TracerProvider):
        tracer_provider = TracerProvider()
        trace.set_tracer_provider(tracer_provider)
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        logger.info("OpenTelemetry SDK initialized with ConsoleSpanExporter")
