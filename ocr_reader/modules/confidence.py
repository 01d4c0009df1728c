"""
Extraction of text and confidence from structured engine results.
"""

import math
from collections.abc import Mapping
from numbers import Real
from typing import Any, Optional

__all__ = ["extract_confidence", "extract_text", "normalize_confidence"]

_MISSING = object()


def _field(obj: Any, name: str) -> Any:
    """Reads a field from either a mapping or an attribute object."""
    if obj is None:
        return _MISSING
    if isinstance(obj, Mapping):
        return obj.get(name, _MISSING)
    return getattr(obj, name, _MISSING)


def normalize_confidence(value: Any) -> Optional[int]:
    """
    Rounds an engine-reported confidence half-up into [0, 100].
    Non-numeric, boolean and NaN values mean the engine reported nothing.
    """
    if isinstance(value, bool) or not isinstance(value, Real):
        return None

    as_float = float(value)
    if math.isnan(as_float):
        return None

    clamped = min(100.0, max(0.0, as_float))
    return int(math.floor(clamped + 0.5))


def extract_text(result: Any) -> str:
    """Text from result.data.text, falling back to result.text."""
    for container in (_field(result, "data"), result):
        if container is _MISSING:
            continue
        text = _field(container, "text")
        if isinstance(text, str) and text:
            return text
    return ""


def extract_confidence(result: Any) -> Optional[int]:
    """Confidence from result.data.confidence, falling back to result.confidence."""
    for container in (_field(result, "data"), result):
        if container is _MISSING:
            continue
        confidence = normalize_confidence(_field(container, "confidence"))
        if confidence is not None:
            return confidence
    return None
