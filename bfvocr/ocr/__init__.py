"""OCR module for image preprocessing, text recognition and server number parsing."""

from .preprocessor import ImagePreprocessor
from .extractor import TesseractEngine
from .parser import ServerNumberParser, remove_hash_symbol

__all__ = ["ImagePreprocessor", "TesseractEngine", "ServerNumberParser", "remove_hash_symbol"]
