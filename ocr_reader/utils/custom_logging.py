"""
Named custom_logging to avoid shadowing the standard library logging module.
"""

import logging
import sys

from pythonjsonlogger.json import JsonFormatter

from .context import RunContextFilter

NOISY_LOGGERS = ("pytesseract", "PIL", "opentelemetry")


def setup_logging(level=logging.INFO, json_logs: bool = True):
    """
    Configures structured JSON logging for the application.
    Plain text output is used when json_logs is False.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RunContextFilter())

    fmt = "%(asctime)s %(name)s %(levelname)s %(message)s %(run_id)s"
    if json_logs:
        formatter: logging.Formatter = JsonFormatter(
            fmt=fmt, datefmt="%Y-%m-%dT%H:%M:%S"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s (%(run_id)s): %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    # Remove existing handlers to avoid duplicate logs
    for h in root_logger.handlers[:]:
        root_logger.removeHandler(h)

    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
