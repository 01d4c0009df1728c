"""
Image enhancement for recognition: upscaling, brightness, contrast,
grayscale and binarization.
Provides the ImageEnhancer class and functional wrappers for the individual steps.
"""

import math

import cv2
import numpy as np

from .image_toolkit import AnyImage, ProcessedImage
from .ocr_config import RecognitionSettings

BASE_RESOLUTION = 150.0
NEUTRAL_LEVEL = 100
MAX_CONTRAST_LEVEL = 258
MID_GRAY = 128.0
BINARY_THRESHOLD = 128
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ImageEnhancer:
    """
    Handles image preprocessing for recognition.
    Steps run in a fixed order: scale, brightness, contrast, grayscale, binarize.
    """

    @staticmethod
    def scale_factor(target_resolution: int) -> float:
        """
        Upscale factor relative to a 150 DPI baseline; never downscales.
        """
        return max(1.0, target_resolution / BASE_RESOLUTION)

    @staticmethod
    def upscale(img: np.ndarray, factor: float) -> np.ndarray:
        """
        Resizes with bicubic interpolation to keep glyph edges smooth.
        """
        if factor == 1.0:
            return img
        height, width = img.shape[:2]
        return cv2.resize(
            img,
            (_round_half_up(width * factor), _round_half_up(height * factor)),
            interpolation=cv2.INTER_CUBIC,
        )

    @staticmethod
    def adjust_brightness(rgb: np.ndarray, brightness: int) -> np.ndarray:
        """
        Shifts every channel by (brightness - 100), clamped to [0, 255].
        """
        offset = brightness - NEUTRAL_LEVEL
        return np.clip(rgb.astype(np.float64) + offset, 0.0, 255.0)

    @staticmethod
    def contrast_factor(contrast: int) -> float:
        """
        Classic 259/255 contrast curve, evaluated on the level (contrast - 100).
        The level is capped at 258 so the denominator never reaches zero.
        """
        level = min(contrast - NEUTRAL_LEVEL, MAX_CONTRAST_LEVEL)
        return (259.0 * (level + 255.0)) / (255.0 * (259.0 - level))

    @staticmethod
    def adjust_contrast(rgb: np.ndarray, contrast: int) -> np.ndarray:
        """
        Stretches channels around mid-gray, clamped to [0, 255].
        Values stay fractional until the grayscale step.
        """
        factor = ImageEnhancer.contrast_factor(contrast)
        stretched = factor * (rgb.astype(np.float64) - MID_GRAY) + MID_GRAY
        return np.clip(stretched, 0.0, 255.0)

    @staticmethod
    def to_luma(rgb: np.ndarray) -> np.ndarray:
        """
        Rec. 601 luma, rounded half-up to an integer.
        """
        luma = rgb.astype(np.float64) @ LUMA_WEIGHTS
        return np.floor(luma + 0.5)

    @staticmethod
    def binarize(luma: np.ndarray) -> np.ndarray:
        """
        255 where luma is strictly above the threshold, 0 elsewhere.
        """
        return np.where(luma > BINARY_THRESHOLD, 255, 0).astype(np.uint8)

    def preprocess(
        self, image: AnyImage, settings: RecognitionSettings
    ) -> AnyImage:
        """
        Runs the full transform. Returns the input untouched when
        preprocessing is disabled.
        """
        if not settings.enable_preprocessing:
            return image

        factor = self.scale_factor(settings.target_resolution)
        rgba = self.upscale(image.to_array().copy(), factor)

        rgb = rgba[..., :3]
        rgb = self.adjust_brightness(rgb, settings.brightness)
        rgb = self.adjust_contrast(rgb, settings.contrast)
        binary = self.binarize(self.to_luma(rgb))

        out = np.empty_like(rgba)
        out[..., 0] = binary
        out[..., 1] = binary
        out[..., 2] = binary
        out[..., 3] = rgba[..., 3]

        return ProcessedImage.from_array(out, scale_factor=factor)


# Functional interface
def scale_factor(target_resolution: int) -> float:
    """Wrapper for ImageEnhancer.scale_factor"""
    return ImageEnhancer.scale_factor(target_resolution)


def adjust_brightness(rgb: np.ndarray, brightness: int) -> np.ndarray:
    """Wrapper for ImageEnhancer.adjust_brightness"""
    return ImageEnhancer.adjust_brightness(rgb, brightness)


def adjust_contrast(rgb: np.ndarray, contrast: int) -> np.ndarray:
    """Wrapper for ImageEnhancer.adjust_contrast"""
    return ImageEnhancer.adjust_contrast(rgb, contrast)


def preprocess(image: AnyImage, settings: RecognitionSettings) -> AnyImage:
    """Wrapper for ImageEnhancer.preprocess"""
    return ImageEnhancer().preprocess(image, settings)
