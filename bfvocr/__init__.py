"""
BFV OCR - Battlefield V server number extraction from screenshots.

This package provides functionality for:
- Preprocessing screenshots for digit recognition
- Tesseract OCR with a digit-only configuration
- Validating recognized text into a server number
"""

from bfvocr.exceptions import (
    BFVOcrError,
    ConfigurationError,
    InvalidInputError,
    PreprocessingError,
    ProcessingError,
    RecognitionError,
    ServerNumberNotFoundError,
)
from bfvocr.service import ServerNumberService, create_service, open_service

__version__ = "0.1.0"
__author__ = "BFV OCR"

__all__ = [
    "BFVOcrError",
    "ConfigurationError",
    "InvalidInputError",
    "PreprocessingError",
    "ProcessingError",
    "RecognitionError",
    "ServerNumberNotFoundError",
    "ServerNumberService",
    "create_service",
    "open_service",
]
