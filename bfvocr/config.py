"""
Configuration module for BFV server number OCR.

Handles Tesseract settings (data path, language, engine and page
segmentation modes, character whitelist, DPI) and application-wide
settings, loaded once from the environment or a .env file.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from bfvocr.constants import TEMP_DIR_PREFIX, TESSDATA_FILE_EXTENSION
from bfvocr.exceptions import ConfigurationError

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

ENV_PREFIX = "BFVOCR_"


def _env_int(name: str, default: int) -> int:
    """Read an integer setting, rejecting malformed values."""
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got '{raw}'") from e


def _env_str(name: str, default: Optional[str]) -> Optional[str]:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


@dataclass
class TesseractConfig:
    """Configuration for Tesseract OCR engine."""
    tesseract_cmd: Optional[str] = None
    data_path: Optional[str] = None  # Directory holding <language>.traineddata
    language: str = "eng"
    oem: int = 1  # OCR Engine Mode: 1 = LSTM only
    psm: int = 6  # Page Segmentation Mode: 6 = Assume uniform block of text
    char_whitelist: str = "#0123456789"
    dpi: int = 300

    def get_config_string(self, tessdata_dir: Optional[str] = None) -> str:
        """Generate Tesseract configuration string."""
        parts = []
        if tessdata_dir:
            parts.append(f'--tessdata-dir "{tessdata_dir}"')
        parts.append(f"--oem {self.oem} --psm {self.psm} --dpi {self.dpi}")
        if self.char_whitelist:
            parts.append(f"-c tessedit_char_whitelist={self.char_whitelist}")
        return " ".join(parts)

    @classmethod
    def from_env(cls) -> "TesseractConfig":
        """Build a configuration from BFVOCR_* environment variables."""
        defaults = cls()
        return cls(
            tesseract_cmd=_env_str("TESSERACT_CMD", defaults.tesseract_cmd),
            data_path=_env_str("TESSDATA_PATH", defaults.data_path),
            language=_env_str("LANGUAGE", defaults.language),
            oem=_env_int("OEM", defaults.oem),
            psm=_env_int("PSM", defaults.psm),
            char_whitelist=_env_str("CHAR_WHITELIST", defaults.char_whitelist),
            dpi=_env_int("DPI", defaults.dpi),
        )

    @property
    def traineddata_name(self) -> str:
        return f"{self.language}{TESSDATA_FILE_EXTENSION}"

    @staticmethod
    def find_tesseract() -> Optional[str]:
        """Attempt to find Tesseract installation."""
        # Check common installation paths
        common_paths = [
            "/usr/local/bin/tesseract",  # macOS Homebrew
            "/opt/homebrew/bin/tesseract",  # macOS M1/M2 Homebrew
            "/usr/bin/tesseract",  # Linux
            r"C:\Program Files\Tesseract-OCR\tesseract.exe",  # Windows
            r"C:\Program Files (x86)\Tesseract-OCR\tesseract.exe",  # Windows x86
        ]

        # First check if tesseract is in PATH
        tesseract_path = shutil.which("tesseract")
        if tesseract_path:
            return tesseract_path

        for path in common_paths:
            if Path(path).exists():
                return path

        return None

    @staticmethod
    def validate_installation() -> tuple[bool, str]:
        """
        Validate Tesseract installation.

        Returns:
            Tuple of (is_valid, message)
        """
        tesseract_path = TesseractConfig.find_tesseract()

        if not tesseract_path:
            return False, (
                "Tesseract OCR is not installed or not found in PATH.\n\n"
                "Installation instructions:\n"
                "• macOS: brew install tesseract\n"
                "• Ubuntu/Debian: sudo apt install tesseract-ocr\n"
                "• Windows: Download from https://github.com/UB-Mannheim/tesseract/wiki\n"
            )

        try:
            result = subprocess.run(
                [tesseract_path, "--version"],
                capture_output=True,
                text=True,
                timeout=10
            )
            if result.returncode == 0:
                version_info = result.stdout.split('\n')[0]
                return True, f"Tesseract found: {version_info}"
            else:
                return False, f"Tesseract found but returned error: {result.stderr}"
        except subprocess.TimeoutExpired:
            return False, "Tesseract command timed out"
        except OSError as e:
            return False, f"Error validating Tesseract: {str(e)}"


@dataclass
class AppConfig:
    """Main application configuration."""
    tesseract: TesseractConfig = field(default_factory=TesseractConfig)
    log_level: str = "INFO"
    temp_dir_prefix: str = TEMP_DIR_PREFIX

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            tesseract=TesseractConfig.from_env(),
            log_level=(_env_str("LOG_LEVEL", "INFO") or "INFO").upper(),
            temp_dir_prefix=_env_str("TEMP_DIR_PREFIX", TEMP_DIR_PREFIX),
        )


def validate_system_requirements() -> dict:
    """
    Validate all system requirements on startup.

    Returns:
        Dictionary with validation results for each requirement.
    """
    from bfvocr.ocr.extractor import default_tessdata_provider

    results = {}

    # Check Tesseract
    tesseract_valid, tesseract_msg = TesseractConfig.validate_installation()
    tesseract_path = TesseractConfig.find_tesseract()
    version = None
    if tesseract_valid:
        version = tesseract_msg.replace("Tesseract found: ", "")

    results["tesseract"] = {
        "installed": tesseract_valid,
        "message": tesseract_msg,
        "path": tesseract_path,
        "version": version,
    }

    # Check language data
    config = get_config()
    try:
        provider = default_tessdata_provider(config.tesseract)
        results["tessdata"] = {
            "available": True,
            "language": config.tesseract.language,
            "source": provider.describe(),
        }
    except ConfigurationError as e:
        results["tessdata"] = {
            "available": False,
            "language": config.tesseract.language,
            "message": str(e),
        }

    # Check Python dependencies
    try:
        import cv2
        import mss
        import numpy
        import PIL
        import pytesseract
        results["python_deps"] = {
            "installed": True,
            "message": "All Python dependencies installed"
        }
    except ImportError as e:
        results["python_deps"] = {
            "installed": False,
            "message": f"Missing Python dependency: {e.name}"
        }

    return results


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
        # Auto-detect Tesseract path
        if not _config.tesseract.tesseract_cmd:
            tesseract_path = TesseractConfig.find_tesseract()
            if tesseract_path:
                _config.tesseract.tesseract_cmd = tesseract_path
        logger.debug(f"Loaded configuration: {_config}")
    return _config


def update_config(**kwargs) -> AppConfig:
    """Update configuration with new values."""
    config = get_config()
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, value)
        elif hasattr(config.tesseract, key):
            setattr(config.tesseract, key, value)
        else:
            raise ConfigurationError(f"Unknown configuration key: {key}")
    return config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() reloads it."""
    global _config
    _config = None
