"""
Image preprocessing module for server number OCR.

Isolates the upper-left region where the server number is drawn and
prepares it for Tesseract:
- Region of interest crop
- Grayscale conversion
- Inversion (light-on-dark UI text becomes dark-on-light)
- Adaptive thresholding
- Upscaling
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Union

import cv2
import numpy as np
from PIL import Image

from bfvocr.constants import (
    ADAPTIVE_THRESHOLD_BLOCK_SIZE,
    ADAPTIVE_THRESHOLD_CONSTANT,
    ADAPTIVE_THRESHOLD_MAX_VALUE,
    MEMORY_IMAGE_PREFIX,
    PROCESSED_IMAGE_SUFFIX,
    ROI_HEIGHT_FACTOR,
    ROI_WIDTH_FACTOR,
    SCALE_FACTOR,
)
from bfvocr.exceptions import InvalidInputError, PreprocessingError
from bfvocr.tempdir import TempDirectory

logger = logging.getLogger(__name__)

ImageInput = Union[str, Path, bytes, Image.Image, np.ndarray]


@dataclass
class PreprocessingResult:
    """Result of image preprocessing."""
    path: Path
    original_size: tuple[int, int]
    roi_size: tuple[int, int]
    processed_size: tuple[int, int]
    messages: list[str] = field(default_factory=list)


class ImagePreprocessor:
    """
    Prepares screenshots for server number recognition.

    Every step uses fixed parameters, so the same input always produces
    the same raster. Prepared images are written to the shared temporary
    directory and left there for its cleanup sweep.
    """

    def __init__(self, temp_dir: TempDirectory):
        """
        Initialize the image preprocessor.

        Args:
            temp_dir: Directory receiving the prepared images
        """
        self.temp_dir = temp_dir

    def preprocess(self, image_input: ImageInput) -> PreprocessingResult:
        """
        Preprocess an image and save the result for OCR.

        Args:
            image_input: Image as file path, encoded bytes, PIL Image, or numpy array

        Returns:
            PreprocessingResult pointing to the prepared image file

        Raises:
            InvalidInputError: If the image is missing, undecodable, or too small to crop
            PreprocessingError: If any later step fails
        """
        start = time.perf_counter()
        source = self.load_image(image_input)
        messages = []

        roi = self.crop_region_of_interest(source)
        messages.append(f"Cropped region of interest to {roi.shape[1]}x{roi.shape[0]}")

        try:
            prepared = self._transform(roi, messages)
            path = self._save(prepared, self._base_name(image_input))
        except PreprocessingError:
            raise
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.error(f"Error during image preprocessing (after {elapsed_ms:.0f} ms): {e}")
            raise PreprocessingError("Failed to preprocess image") from e

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"Image preprocessing completed in {elapsed_ms:.0f} ms: {path}")

        return PreprocessingResult(
            path=path,
            original_size=(source.shape[1], source.shape[0]),
            roi_size=(roi.shape[1], roi.shape[0]),
            processed_size=(prepared.shape[1], prepared.shape[0]),
            messages=messages,
        )

    def prepare(self, image: np.ndarray) -> np.ndarray:
        """Run the crop and transform steps on a decoded image, without saving."""
        image = self._validate_array(image)
        return self._transform(self.crop_region_of_interest(image), [])

    def load_image(self, image_input: ImageInput) -> np.ndarray:
        """Decode any supported input into an OpenCV array."""
        if image_input is None:
            raise InvalidInputError("Image cannot be None")

        if isinstance(image_input, np.ndarray):
            return self._validate_array(image_input)

        if isinstance(image_input, Image.Image):
            # Encode and decode through one codec so every bitmap type is handled alike
            buffer = BytesIO()
            try:
                image_input.save(buffer, format="PNG")
            except (OSError, ValueError) as e:
                raise InvalidInputError(f"Failed to encode in-memory image: {e}") from e
            return self._decode_bytes(buffer.getvalue(), "in-memory image")

        if isinstance(image_input, (bytes, bytearray)):
            return self._decode_bytes(bytes(image_input), "image bytes")

        if isinstance(image_input, (str, Path)):
            path = Path(image_input)
            if not path.is_file():
                raise InvalidInputError(f"Image file does not exist: {path}")
            cv_image = cv2.imread(str(path), cv2.IMREAD_COLOR)
            if cv_image is None or cv_image.size == 0:
                raise InvalidInputError(f"Failed to load image: {path}")
            logger.debug(f"Processing image: {path}")
            return cv_image

        raise InvalidInputError(f"Unsupported image input type: {type(image_input)}")

    def crop_region_of_interest(self, image: np.ndarray) -> np.ndarray:
        """Keep the upper-left region where the server number is drawn."""
        height, width = image.shape[:2]
        roi_width = width // ROI_WIDTH_FACTOR
        roi_height = height // ROI_HEIGHT_FACTOR
        if roi_width == 0 or roi_height == 0:
            raise InvalidInputError(
                f"Image too small for region of interest: {width}x{height}"
            )
        return image[0:roi_height, 0:roi_width]

    def _transform(self, roi: np.ndarray, messages: list) -> np.ndarray:
        gray = self._to_grayscale(roi)
        messages.append("Converted to grayscale")

        inverted = cv2.bitwise_not(gray)
        messages.append("Inverted colors")
        logger.debug("Inverted image colors")

        binary = self._apply_threshold(inverted)
        messages.append("Applied adaptive thresholding")

        scaled = self._scale(binary)
        messages.append(f"Scaled by {SCALE_FACTOR}x")
        return scaled

    def _to_grayscale(self, image: np.ndarray) -> np.ndarray:
        if image.ndim == 2:
            return image
        channels = image.shape[2]
        if channels == 1:
            return np.ascontiguousarray(image[:, :, 0])
        if channels == 4:
            gray = cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        else:
            gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        logger.debug("Converted image to grayscale")
        return gray

    def _apply_threshold(self, gray: np.ndarray) -> np.ndarray:
        """Binarize against local brightness; the UI background is uneven."""
        binary = cv2.adaptiveThreshold(
            gray,
            ADAPTIVE_THRESHOLD_MAX_VALUE,
            cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
            cv2.THRESH_BINARY,
            ADAPTIVE_THRESHOLD_BLOCK_SIZE,
            ADAPTIVE_THRESHOLD_CONSTANT,
        )
        logger.debug("Applied adaptive thresholding")
        return binary

    def _scale(self, image: np.ndarray) -> np.ndarray:
        """Upscale so small glyphs get enough pixels for segmentation."""
        scaled = cv2.resize(
            image, None, fx=SCALE_FACTOR, fy=SCALE_FACTOR, interpolation=cv2.INTER_CUBIC
        )
        logger.debug(f"Scaled image by factor of {SCALE_FACTOR}")
        return scaled

    def _save(self, image: np.ndarray, base_name: str) -> Path:
        path = self.temp_dir.create_file(
            prefix=f"{base_name}-{uuid.uuid4().hex[:8]}-",
            suffix=PROCESSED_IMAGE_SUFFIX,
        )
        if not cv2.imwrite(str(path), image):
            raise PreprocessingError(f"Failed to write processed image: {path}")
        logger.debug(f"Saved processed image to: {path}")
        return path

    def _decode_bytes(self, data: bytes, label: str) -> np.ndarray:
        if not data:
            raise InvalidInputError(f"Failed to decode {label}: no data")
        cv_image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
        if cv_image is None or cv_image.size == 0:
            raise InvalidInputError(f"Failed to decode {label}")
        logger.debug(f"Processing {label}")
        return cv_image

    @staticmethod
    def _validate_array(image: np.ndarray) -> np.ndarray:
        if image is None or image.size == 0:
            raise InvalidInputError("Image array is empty")
        if image.ndim not in (2, 3) or (image.ndim == 3 and image.shape[2] not in (1, 3, 4)):
            raise InvalidInputError(f"Unsupported image array shape: {image.shape}")
        if image.dtype != np.uint8:
            raise InvalidInputError(f"Unsupported image array dtype: {image.dtype}")
        return image

    @staticmethod
    def _base_name(image_input: ImageInput) -> str:
        if isinstance(image_input, (str, Path)):
            return Path(image_input).stem or MEMORY_IMAGE_PREFIX
        return MEMORY_IMAGE_PREFIX


def preprocess_image(image_input: ImageInput, temp_dir: TempDirectory) -> PreprocessingResult:
    """
    Convenience function to preprocess an image.

    Args:
        image_input: Image as file path, bytes, PIL Image, or numpy array
        temp_dir: Directory receiving the prepared image

    Returns:
        PreprocessingResult with the prepared image path
    """
    preprocessor = ImagePreprocessor(temp_dir)
    return preprocessor.preprocess(image_input)
