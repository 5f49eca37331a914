"""
Server number extraction service.

Composes preprocessing, recognition and parsing into the two caller-facing
entry points:
- extract_server_number: returns the number or raises a typed error
- try_extract_server_number: returns the number or None
"""

import contextlib
import logging
from pathlib import Path
from typing import Iterator, Optional

from bfvocr.config import AppConfig, get_config
from bfvocr.exceptions import (
    BFVOcrError,
    InvalidInputError,
    ProcessingError,
)
from bfvocr.ocr.extractor import RecognitionEngine, TessdataProvider, TesseractEngine
from bfvocr.ocr.parser import ServerNumberParser
from bfvocr.ocr.preprocessor import ImageInput, ImagePreprocessor
from bfvocr.tempdir import TempDirectory

logger = logging.getLogger(__name__)


class ServerNumberService:
    """
    Extracts Battlefield V server numbers from screenshots.

    Collaborators are passed in, so tests can substitute a fake recognition
    engine. When a temporary directory is given, the service owns it and
    removes it on close().
    """

    def __init__(
        self,
        preprocessor: ImagePreprocessor,
        engine: RecognitionEngine,
        parser: Optional[ServerNumberParser] = None,
        temp_dir: Optional[TempDirectory] = None,
    ):
        """
        Initialize the service and set up the recognition engine.

        Args:
            preprocessor: Prepares images for recognition
            engine: Turns prepared images into text
            parser: Validates recognized text (default parser if not provided)
            temp_dir: Temporary directory to close with the service

        Raises:
            ConfigurationError: If the engine cannot be set up
        """
        self.preprocessor = preprocessor
        self.engine = engine
        self.parser = parser or ServerNumberParser()
        self.temp_dir = temp_dir
        self._closed = False

        initialize = getattr(engine, "initialize", None)
        if callable(initialize):
            initialize()
        logger.debug("ServerNumberService initialized")

    def extract_server_number(self, image: ImageInput) -> str:
        """
        Extract the server number shown in a screenshot.

        Args:
            image: Image file path, encoded bytes, PIL Image, or numpy array

        Returns:
            The server number digits, without '#'

        Raises:
            InvalidInputError: If the image is missing or unreadable
            ServerNumberNotFoundError: If the screenshot shows no valid server number
            ProcessingError: If preprocessing or recognition fails
        """
        self._check_input(image)

        try:
            prepared = self.preprocessor.preprocess(image)
            ocr_text = self.engine.recognize(prepared.path)
            server_number = self.parser.parse(ocr_text)
        except BFVOcrError as e:
            logger.error(f"Server number extraction failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Unexpected error during server number extraction: {e}")
            raise ProcessingError("Failed to extract server number") from e

        logger.info(f"Extracted server number: {server_number}")
        return server_number

    def try_extract_server_number(self, image: Optional[ImageInput]) -> Optional[str]:
        """Best-effort variant of extract_server_number: any failure gives None."""
        if image is None:
            return None
        try:
            return self.extract_server_number(image)
        except Exception as e:
            logger.debug(f"Failed to extract server number from {self._describe(image)}: {e}")
            return None

    def extract_from_text(self, ocr_text: Optional[str]) -> str:
        """Validate already recognized text and return the server number digits."""
        return self.parser.parse(ocr_text)

    def close(self) -> None:
        """Release the temporary directory. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        if self.temp_dir is not None:
            self.temp_dir.close()
        logger.debug("ServerNumberService closed")

    shutdown = close

    def __enter__(self) -> "ServerNumberService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @staticmethod
    def _check_input(image: Optional[ImageInput]) -> None:
        if image is None:
            raise InvalidInputError("Image cannot be None")
        if isinstance(image, (str, Path)) and not Path(image).exists():
            raise InvalidInputError(f"Image file does not exist: {image}")

    @staticmethod
    def _describe(image: ImageInput) -> str:
        if isinstance(image, (str, Path)):
            return str(image)
        return f"in-memory {type(image).__name__}"


def create_service(
    config: Optional[AppConfig] = None,
    tessdata_provider: Optional[TessdataProvider] = None,
    engine: Optional[RecognitionEngine] = None,
) -> ServerNumberService:
    """
    Build a service with its own temporary directory.

    Args:
        config: Application configuration (global configuration if not provided)
        tessdata_provider: Language data source for the default Tesseract engine
        engine: Recognition engine replacing the default Tesseract engine

    Returns:
        A ready service; close it (or use it as a context manager) when done
    """
    config = config or get_config()
    temp_dir = TempDirectory(prefix=config.temp_dir_prefix)
    try:
        if engine is None:
            engine = TesseractEngine(temp_dir, config.tesseract, tessdata_provider)
        return ServerNumberService(
            preprocessor=ImagePreprocessor(temp_dir),
            engine=engine,
            temp_dir=temp_dir,
        )
    except BaseException:
        temp_dir.close()
        raise


@contextlib.contextmanager
def open_service(
    config: Optional[AppConfig] = None,
    tessdata_provider: Optional[TessdataProvider] = None,
    engine: Optional[RecognitionEngine] = None,
) -> Iterator[ServerNumberService]:
    """Context manager around create_service() that always closes the service."""
    service = create_service(config, tessdata_provider, engine)
    try:
        yield service
    finally:
        service.close()
