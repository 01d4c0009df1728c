import os

import numpy as np
import pytest

from ocr_reader.modules.image_toolkit import SourceImage
from ocr_reader.tests.fakes import make_image

# Keep settings independent from the developer's environment
os.environ.setdefault("OCR_READER_ENVIRONMENT", "development")


@pytest.fixture
def image():
    return make_image()


@pytest.fixture
def gradient_image():
    arr = np.zeros((8, 16, 4), dtype=np.uint8)
    arr[..., 0] = np.arange(16, dtype=np.uint8) * 16
    arr[..., 1] = np.arange(8, dtype=np.uint8)[:, None] * 32
    arr[..., 2] = 77
    arr[..., 3] = np.arange(16, dtype=np.uint8) * 8
    return SourceImage.from_array(arr)
