"""Run identifiers carried through log records of one pipeline invocation."""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional

_run_id: ContextVar[Optional[str]] = ContextVar("ocr_reader_run_id", default=None)

NO_RUN = "no-run"


def new_run_id() -> str:
    return uuid.uuid4().hex


def get_run_id() -> str:
    """Run ID of the active invocation, or a placeholder outside of one."""
    return _run_id.get() or NO_RUN


@contextmanager
def run_context(run_id: str) -> Iterator[str]:
    token = _run_id.set(run_id)
    try:
        yield run_id
    finally:
        _run_id.reset(token)


class RunContextFilter(logging.Filter):
    """Stamps every record with the active run ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = get_run_id()
        return True
