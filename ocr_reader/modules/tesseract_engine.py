"""
Tesseract adapter exposing both engine call shapes on top of pytesseract.
"""

import asyncio
import logging
import shlex
from collections.abc import Mapping
from typing import Any, Optional

import numpy as np
import pytesseract  # type: ignore

from .image_toolkit import ImageToolkit, SourceImage

__all__ = ["TesseractEngine", "TesseractSession", "build_config"]

logger = logging.getLogger("ocr-reader.tesseract")

# Parameters Tesseract takes as command-line flags instead of -c variables.
_CLI_FLAGS = {
    "tessedit_ocr_engine_mode": "--oem",
    "tessedit_pageseg_mode": "--psm",
    "user_defined_dpi": "--dpi",
}


def build_config(parameters: Mapping[str, Any]) -> str:
    """
    Translates session parameters into a Tesseract config string.
    Empty values are left out so engine defaults apply.
    """
    flags = []
    for name, flag in _CLI_FLAGS.items():
        value = parameters.get(name)
        if value not in (None, ""):
            flags.append(f"{flag} {value}")

    for name, value in parameters.items():
        if name in _CLI_FLAGS or value in (None, ""):
            continue
        flags.append(f"-c {shlex.quote(f'{name}={value}')}")

    return " ".join(flags)


def assemble_text(data: dict) -> str:
    """
    Rebuilds text from image_to_data output: words on a line joined by
    spaces, lines by newlines, blocks by blank lines.
    """
    blocks: dict = {}

    for i, raw in enumerate(data["text"]):
        word = str(raw).strip()
        if not word:
            continue

        key = (data["par_num"][i], data["line_num"][i])
        blocks.setdefault(data["block_num"][i], {}).setdefault(key, []).append(word)

    result_blocks = []
    for block_num in sorted(blocks):
        lines = blocks[block_num]
        result_blocks.append("\n".join(" ".join(lines[key]) for key in sorted(lines)))

    return "\n\n".join(result_blocks)


def mean_confidence(data: dict) -> Optional[float]:
    """Average word confidence; -1 marks non-word rows and is ignored."""
    confidences = []
    for raw, conf in zip(data["text"], data["conf"]):
        if not str(raw).strip():
            continue
        try:
            value = float(conf)
        except (TypeError, ValueError):
            continue
        if value >= 0:
            confidences.append(value)

    if not confidences:
        return None
    return sum(confidences) / len(confidences)


class TesseractSession:
    """
    Stateful session: remembers language and pushed parameters until
    terminated.
    """

    def __init__(self, engine: "TesseractEngine"):
        self._engine = engine
        self.language: Optional[str] = None
        self.parameters: dict[str, Any] = {}
        self.terminated = False

    def load_language(self, language: str) -> None:
        available = self._engine.available_languages()
        missing = [code for code in language.split("+") if code and code not in available]
        if missing:
            raise ValueError(f"Tesseract language data not installed: {', '.join(missing)}")

    def initialize(self, language: str) -> None:
        self.language = language

    def set_parameters(self, parameters: Mapping[str, Any]) -> None:
        self.parameters.update(parameters)

    async def recognize(self, image: Any) -> dict[str, Any]:
        if self.terminated:
            raise RuntimeError("Session already terminated")
        if self.language is None:
            raise RuntimeError("Session used before initialize()")
        return await self._engine.run(image, self.language, build_config(self.parameters))

    def terminate(self) -> None:
        self.terminated = True


class TesseractEngine:
    """
    Recognition engine backed by the Tesseract binary.
    """

    def __init__(self, tesseract_cmd: Optional[str] = None, timeout: int = 0):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.tesseract_cmd = pytesseract.pytesseract.tesseract_cmd
        self.timeout = timeout
        self._languages: Optional[set[str]] = None

    def create_session(self) -> TesseractSession:
        return TesseractSession(self)

    async def recognize(self, image: Any, language: str) -> dict[str, Any]:
        return await self.run(image, language, "")

    def available_languages(self) -> set[str]:
        if self._languages is None:
            self._languages = set(pytesseract.get_languages(config=""))
        return self._languages

    async def run(self, image: Any, language: str, config: str) -> dict[str, Any]:
        """Runs image_to_data in a worker thread."""
        pixels = image if isinstance(image, np.ndarray) else self._to_pixels(image)

        logger.debug("Running Tesseract | Language: %s | Config: %s", language, config)
        data = await asyncio.to_thread(
            pytesseract.image_to_data,
            pixels,
            lang=language,
            config=config,
            output_type=pytesseract.Output.DICT,
            timeout=self.timeout,
        )

        return {"data": {"text": assemble_text(data), "confidence": mean_confidence(data)}}

    @staticmethod
    def _to_pixels(image: Any) -> np.ndarray:
        if isinstance(image, SourceImage):
            return ImageToolkit.to_rgb(image)
        raise TypeError(f"Unsupported image type: {type(image).__name__}")
