import asyncio

import cv2
import numpy as np
import pytest

from ocr_reader.modules.errors import ImageDecodeFailed
from ocr_reader.modules.image_toolkit import ImageToolkit, ProcessedImage, SourceImage


def _png_bytes(arr: np.ndarray) -> bytes:
    success, buf = cv2.imencode(".png", arr)
    assert success
    return buf.tobytes()


def test_source_image_rejects_mismatched_buffer():
    with pytest.raises(ImageDecodeFailed) as excinfo:
        SourceImage(data=b"\x00" * 10, width=2, height=2)
    assert excinfo.value.details == {"width": 2, "height": 2}


@pytest.mark.parametrize("width, height", [(0, 2), (2, 0), (-1, 4)])
def test_source_image_rejects_bad_dimensions(width, height):
    with pytest.raises(ImageDecodeFailed):
        SourceImage(data=b"", width=width, height=height)


def test_source_image_requires_rgba():
    with pytest.raises(ImageDecodeFailed):
        SourceImage(data=b"\x00" * 12, width=2, height=2, channels=3)


def test_array_view_is_read_only(image):
    arr = image.to_array()
    assert arr.shape == (3, 4, 4)
    assert not arr.flags.writeable


def test_processed_image_keeps_scale_factor():
    arr = np.zeros((2, 2, 4), dtype=np.uint8)
    processed = ProcessedImage.from_array(arr, scale_factor=2.5)
    assert processed.scale_factor == 2.5
    assert processed.size == (2, 2)


def test_validate_image():
    assert ImageToolkit.validate_image(b"") == "Empty image content"
    assert ImageToolkit.validate_image(b"x" * (1024 * 1024 + 1), max_size_mb=1) == (
        "Image size exceeds 1MB limit"
    )
    assert ImageToolkit.validate_image(b"x" * 100) is None


def test_decode_color_png_to_rgba():
    bgr = np.zeros((5, 7, 3), dtype=np.uint8)
    bgr[...] = (10, 20, 30)

    decoded = ImageToolkit.decode_image(_png_bytes(bgr))

    assert decoded.size == (7, 5)
    assert decoded.to_array()[0, 0].tolist() == [30, 20, 10, 255]


def test_decode_grayscale_png():
    gray = np.full((3, 3), 90, dtype=np.uint8)
    decoded = ImageToolkit.decode_image(_png_bytes(gray))
    assert decoded.to_array()[1, 1].tolist() == [90, 90, 90, 255]


def test_decode_keeps_alpha():
    bgra = np.zeros((2, 2, 4), dtype=np.uint8)
    bgra[...] = (0, 0, 255, 40)
    decoded = ImageToolkit.decode_image(_png_bytes(bgra))
    assert decoded.to_array()[0, 1].tolist() == [255, 0, 0, 40]


def test_decode_rejects_garbage():
    with pytest.raises(ImageDecodeFailed, match="Corrupted or unsupported"):
        ImageToolkit.decode_image(b"not an image")


def test_decode_image_async(image):
    decoded = asyncio.run(ImageToolkit.decode_image_async(ImageToolkit.encode_png(image)))
    assert decoded.data == image.data


def test_to_rgb_drops_alpha(image):
    rgb = ImageToolkit.to_rgb(image)
    assert rgb.shape == (3, 4, 3)
    assert rgb[0, 0].tolist() == [200, 120, 40]
