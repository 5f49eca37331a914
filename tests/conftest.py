"""Shared test configuration and fixtures.

Provides a scoped temporary directory, fake recognition collaborators and
synthetic screenshots, so the pipeline can be exercised without a
Tesseract installation.
"""

import io
import threading
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
import pytest

from bfvocr.config import reset_config
from bfvocr.ocr.preprocessor import ImagePreprocessor
from bfvocr.tempdir import TempDirectory

SCREEN_WIDTH = 960
SCREEN_HEIGHT = 540


class FakeEngine:
    """Recognition engine returning canned text and recording its inputs."""

    def __init__(self, text: str = "", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: list[Path] = []
        self.initialize_calls = 0
        self._lock = threading.Lock()

    def initialize(self) -> None:
        self.initialize_calls += 1

    def recognize(self, image_path: Union[str, Path]) -> str:
        with self._lock:
            self.calls.append(Path(image_path))
        if self.error is not None:
            raise self.error
        return self.text


class FakeTessdataProvider:
    """Language data provider serving bytes from memory."""

    def __init__(self, data: bytes = b"fake traineddata", language: str = "eng"):
        self.data = data
        self.language = language
        self.open_count = 0
        self._lock = threading.Lock()

    def open_stream(self):
        with self._lock:
            self.open_count += 1
        return io.BytesIO(self.data)

    def describe(self) -> str:
        return "in-memory test data"


def make_screenshot(
    text: Optional[str] = "#77665",
    width: int = SCREEN_WIDTH,
    height: int = SCREEN_HEIGHT,
) -> np.ndarray:
    """Dark UI-like BGR image with light text in the upper-left corner."""
    image = np.full((height, width, 3), 30, dtype=np.uint8)
    # A brighter panel, so the background is not uniform
    image[height // 2:, width // 2:] = (70, 60, 50)
    if text:
        cv2.putText(
            image, text, (20, 60), cv2.FONT_HERSHEY_SIMPLEX, 1.2,
            (235, 235, 235), 2, cv2.LINE_AA,
        )
    return image


@pytest.fixture(autouse=True)
def _fresh_config():
    """Each test sees configuration freshly loaded from the environment."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_dir(tmp_path: Path):
    with TempDirectory(prefix="bfvocr-test-", base_dir=tmp_path) as directory:
        yield directory


@pytest.fixture
def preprocessor(temp_dir: TempDirectory) -> ImagePreprocessor:
    return ImagePreprocessor(temp_dir)


@pytest.fixture
def screenshot() -> np.ndarray:
    return make_screenshot()


@pytest.fixture
def black_image() -> np.ndarray:
    return np.zeros((SCREEN_HEIGHT, SCREEN_WIDTH, 3), dtype=np.uint8)


@pytest.fixture
def screenshot_file(tmp_path: Path, screenshot: np.ndarray) -> Path:
    path = tmp_path / "bfv_server_77665.png"
    assert cv2.imwrite(str(path), screenshot)
    return path
