"""
Image buffers handed through the pipeline and the helpers that decode,
validate and encode them.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

# pylint: disable=no-member
import cv2
import numpy as np

from .errors import ImageDecodeFailed

__all__ = ["ImageToolkit", "ProcessedImage", "SourceImage"]

logger = logging.getLogger("ocr-reader.image-toolkit")

RGBA_CHANNELS = 4


@dataclass(frozen=True)
class SourceImage:
    """Decoded RGBA pixel buffer, 4 bytes per pixel, row-major."""

    data: bytes
    width: int
    height: int
    channels: int = RGBA_CHANNELS

    def __post_init__(self) -> None:
        if self.channels != RGBA_CHANNELS:
            raise ImageDecodeFailed(
                f"Expected {RGBA_CHANNELS} channels (RGBA), got {self.channels}"
            )
        if self.width <= 0 or self.height <= 0:
            raise ImageDecodeFailed(
                f"Invalid image dimensions {self.width}x{self.height}"
            )
        expected = self.width * self.height * self.channels
        if len(self.data) != expected:
            raise ImageDecodeFailed(
                f"Buffer holds {len(self.data)} bytes, expected {expected}",
                details={"width": self.width, "height": self.height},
            )

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def to_array(self) -> np.ndarray:
        """Read-only (height, width, 4) view over the buffer."""
        arr = np.frombuffer(self.data, dtype=np.uint8)
        return arr.reshape(self.height, self.width, self.channels)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "SourceImage":
        if arr.ndim != 3 or arr.shape[2] != RGBA_CHANNELS:
            raise ImageDecodeFailed(f"Expected an RGBA array, got shape {arr.shape}")
        height, width = arr.shape[:2]
        return cls(
            data=np.ascontiguousarray(arr, dtype=np.uint8).tobytes(),
            width=width,
            height=height,
        )


@dataclass(frozen=True)
class ProcessedImage(SourceImage):
    """Output of the preprocessor; may be larger than its source."""

    scale_factor: float = 1.0

    @classmethod
    def from_array(
        cls, arr: np.ndarray, scale_factor: float = 1.0
    ) -> "ProcessedImage":
        if arr.ndim != 3 or arr.shape[2] != RGBA_CHANNELS:
            raise ImageDecodeFailed(f"Expected an RGBA array, got shape {arr.shape}")
        height, width = arr.shape[:2]
        return cls(
            data=np.ascontiguousarray(arr, dtype=np.uint8).tobytes(),
            width=width,
            height=height,
            scale_factor=scale_factor,
        )


AnyImage = Union[SourceImage, ProcessedImage]


class ImageToolkit:
    @staticmethod
    def validate_image(image_bytes: bytes, max_size_mb: int = 10) -> Optional[str]:
        """
        Validates encoded image content and size.
        """
        if not image_bytes:
            return "Empty image content"

        if len(image_bytes) > max_size_mb * 1024 * 1024:
            return f"Image size exceeds {max_size_mb}MB limit"

        return None

    @staticmethod
    def decode_image(image_bytes: bytes) -> SourceImage:
        """
        Decodes encoded image bytes (PNG, JPEG, ...) into an RGBA SourceImage.
        Synchronous helper for use within threads.
        """
        nparr = np.frombuffer(image_bytes, np.uint8)
        try:
            img = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED)
        except cv2.error as e:
            logger.error("Error decoding image: %s", e)
            raise ImageDecodeFailed(f"Could not decode image: {e}") from e

        if img is None:
            logger.error("Failed to decode image bytes.")
            raise ImageDecodeFailed("Corrupted or unsupported image format")

        if img.dtype != np.uint8:
            img = cv2.convertScaleAbs(img, alpha=255.0 / float(np.iinfo(img.dtype).max))

        if img.ndim == 2:
            rgba = cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
        elif img.shape[2] == 3:
            rgba = cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
        elif img.shape[2] == 4:
            rgba = cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
        else:
            raise ImageDecodeFailed(f"Unsupported channel count: {img.shape[2]}")

        return SourceImage.from_array(rgba)

    @staticmethod
    async def decode_image_async(image_bytes: bytes) -> SourceImage:
        """
        Asynchronously decodes image bytes.
        """
        return await asyncio.to_thread(ImageToolkit.decode_image, image_bytes)

    @staticmethod
    def to_rgb(image: AnyImage) -> np.ndarray:
        """Drops the alpha channel, as most engines expect RGB input."""
        return cv2.cvtColor(image.to_array().copy(), cv2.COLOR_RGBA2RGB)

    @staticmethod
    def encode_png(image: AnyImage) -> bytes:
        """
        Encodes a pixel buffer as PNG, e.g. for previewing a processed image.
        """
        bgra = cv2.cvtColor(image.to_array().copy(), cv2.COLOR_RGBA2BGRA)
        success, buf = cv2.imencode(".png", bgra)
        if not success:
            raise ImageDecodeFailed("Could not encode image as PNG")
        return buf.tobytes()
