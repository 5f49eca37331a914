"""
OCR extraction module using Tesseract.

Handles text recognition on prepared images with:
- Tesseract OCR integration through pytesseract
- Language data copied once into the service's temporary directory
- Digit-only recognition settings (whitelist, page segmentation, DPI)
"""

import logging
import os
import shutil
import threading
from importlib import resources
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union

import pytesseract

from bfvocr.config import TesseractConfig, get_config
from bfvocr.constants import TEMP_TESSDATA_DIR, TESSDATA_FILE_EXTENSION, TESSDATA_RESOURCE_DIR
from bfvocr.exceptions import ConfigurationError, RecognitionError
from bfvocr.tempdir import TempDirectory

logger = logging.getLogger(__name__)


class RecognitionEngine(Protocol):
    """Anything that turns a prepared image file into text."""

    def recognize(self, image_path: Union[str, Path]) -> str:
        ...


class TessdataProvider(Protocol):
    """Source of the trained language data for one language."""

    language: str

    def open_stream(self) -> BinaryIO:
        ...

    def describe(self) -> str:
        ...


class PackageTessdataProvider:
    """Reads ``tessdata/<language>.traineddata`` shipped inside the package."""

    def __init__(self, language: str = "eng", package: str = "bfvocr"):
        self.language = language
        self.package = package

    @property
    def resource_name(self) -> str:
        return f"{TESSDATA_RESOURCE_DIR}/{self.language}{TESSDATA_FILE_EXTENSION}"

    def _resource(self):
        return resources.files(self.package).joinpath(TESSDATA_RESOURCE_DIR).joinpath(
            f"{self.language}{TESSDATA_FILE_EXTENSION}"
        )

    def exists(self) -> bool:
        try:
            return self._resource().is_file()
        except (ModuleNotFoundError, OSError):
            return False

    def open_stream(self) -> BinaryIO:
        if not self.exists():
            raise ConfigurationError(f"Missing OCR resource: {self.resource_name}")
        return self._resource().open("rb")

    def describe(self) -> str:
        return f"package resource {self.package}/{self.resource_name}"


class FileTessdataProvider:
    """Reads a traineddata file from disk."""

    def __init__(self, path: Union[str, Path], language: Optional[str] = None):
        self.path = Path(path)
        self.language = language or self.path.name.split(".")[0]

    def open_stream(self) -> BinaryIO:
        if not self.path.is_file():
            raise ConfigurationError(f"Missing OCR resource: {self.path}")
        try:
            return open(self.path, "rb")
        except OSError as e:
            raise ConfigurationError(f"Cannot read OCR resource {self.path}: {e}") from e

    def describe(self) -> str:
        return str(self.path)


class SystemTessdataProvider(FileTessdataProvider):
    """Locates the language data of a system-wide Tesseract installation."""

    COMMON_TESSDATA_DIRS = [
        "/usr/share/tesseract-ocr/5/tessdata",  # Debian/Ubuntu, Tesseract 5
        "/usr/share/tesseract-ocr/4.00/tessdata",  # Debian/Ubuntu, Tesseract 4
        "/usr/share/tessdata",  # Fedora/Arch
        "/usr/local/share/tessdata",  # macOS Homebrew
        "/opt/homebrew/share/tessdata",  # macOS M1/M2 Homebrew
        r"C:\Program Files\Tesseract-OCR\tessdata",  # Windows
    ]

    def __init__(self, language: str = "eng"):
        path = self.find_traineddata(language)
        if path is None:
            raise ConfigurationError(
                f"No {language}{TESSDATA_FILE_EXTENSION} found. Set BFVOCR_TESSDATA_PATH "
                "or install the Tesseract language data."
            )
        super().__init__(path, language)

    @classmethod
    def find_traineddata(cls, language: str) -> Optional[Path]:
        """Search TESSDATA_PREFIX, then common installation paths."""
        filename = f"{language}{TESSDATA_FILE_EXTENSION}"
        candidates = []

        prefix = os.getenv("TESSDATA_PREFIX")
        if prefix:
            candidates.append(Path(prefix))
            candidates.append(Path(prefix) / "tessdata")

        candidates.extend(Path(p) for p in cls.COMMON_TESSDATA_DIRS)

        for directory in candidates:
            path = directory / filename
            if path.is_file():
                return path
        return None


def default_tessdata_provider(config: TesseractConfig) -> TessdataProvider:
    """
    Pick the language data source for a configuration.

    An explicit data path wins, then data bundled in the package, then a
    system installation.
    """
    if config.data_path:
        data_path = Path(config.data_path)
        if data_path.is_dir():
            data_path = data_path / config.traineddata_name
        return FileTessdataProvider(data_path, config.language)

    packaged = PackageTessdataProvider(config.language)
    if packaged.exists():
        return packaged

    return SystemTessdataProvider(config.language)


class TesseractEngine:
    """
    Recognizes text on prepared images with Tesseract.

    Setup (copying the language data and resolving the binary) happens once,
    on first use or an explicit initialize() call, under a lock.
    """

    def __init__(
        self,
        temp_dir: TempDirectory,
        tesseract_config: Optional[TesseractConfig] = None,
        tessdata_provider: Optional[TessdataProvider] = None,
    ):
        """
        Initialize the engine without touching the filesystem.

        Args:
            temp_dir: Directory receiving the copied language data
            tesseract_config: Tesseract configuration (uses default if not provided)
            tessdata_provider: Language data source (derived from config if not provided)
        """
        self.config = tesseract_config or get_config().tesseract
        self.temp_dir = temp_dir
        self._tessdata_provider = tessdata_provider
        self._tessdata_dir: Optional[Path] = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._tessdata_dir is not None

    @property
    def tessdata_dir(self) -> Optional[Path]:
        return self._tessdata_dir

    def initialize(self) -> Path:
        """
        Prepare Tesseract for use. Later calls return the cached result.

        Returns:
            Directory passed to Tesseract as its data path

        Raises:
            ConfigurationError: If the language data or directory cannot be set up
        """
        if self._tessdata_dir is not None:
            return self._tessdata_dir
        with self._lock:
            if self._tessdata_dir is None:
                self._tessdata_dir = self._setup()
        return self._tessdata_dir

    def _setup(self) -> Path:
        provider = self._tessdata_provider or default_tessdata_provider(self.config)
        if provider.language != self.config.language:
            raise ConfigurationError(
                f"Language data is for '{provider.language}', "
                f"configuration expects '{self.config.language}'"
            )

        tessdata_dir = self.temp_dir.create_directory(TEMP_TESSDATA_DIR)
        target = tessdata_dir / self.config.traineddata_name

        logger.debug(f"Extracting tessdata file to temporary directory: {target}")
        try:
            with provider.open_stream() as source, open(target, "wb") as destination:
                shutil.copyfileobj(source, destination)
        except OSError as e:
            logger.error(f"Failed to set up Tesseract: {e}")
            raise ConfigurationError(f"OCR configuration error: {e}") from e

        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd

        logger.debug(f"Tesseract configured successfully with datapath: {tessdata_dir}")
        return tessdata_dir

    def build_config_string(self) -> str:
        """Tesseract command-line options for digit recognition."""
        return self.config.get_config_string(str(self.initialize()))

    def recognize(self, image_path: Union[str, Path]) -> str:
        """
        Run Tesseract on a prepared image.

        Args:
            image_path: Path to the prepared image

        Returns:
            Recognized text, stripped of surrounding whitespace

        Raises:
            RecognitionError: If Tesseract is missing or fails
        """
        custom_config = self.build_config_string()
        try:
            text = pytesseract.image_to_string(
                str(image_path),
                lang=self.config.language,
                config=custom_config,
            )
        except pytesseract.TesseractNotFoundError as e:
            logger.error(f"Tesseract not found: {e}")
            raise RecognitionError(f"Tesseract not found: {e}") from e
        except (pytesseract.TesseractError, OSError, RuntimeError) as e:
            logger.error(f"OCR extraction failed: {e}")
            raise RecognitionError("OCR processing error") from e

        text = text.strip()
        logger.info(f"Raw OCR result: {text!r}")
        return text
