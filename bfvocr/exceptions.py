"""
Exception hierarchy for server number extraction.

Callers can tell a bad call (InvalidInputError) apart from a screenshot that
simply shows no server number (ServerNumberNotFoundError). Every other
failure is a ProcessingError carrying the underlying cause.
"""


class BFVOcrError(Exception):
    """Base exception for all bfvocr errors."""
    pass


class InvalidInputError(BFVOcrError, ValueError):
    """Missing image, nonexistent file, or undecodable image data."""
    pass


class ServerNumberNotFoundError(BFVOcrError, ValueError):
    """Raised when recognized text holds no valid server number.

    This is an expected outcome, e.g. a screenshot taken outside the
    server browser.

    Args:
        message: Human-readable explanation.
        raw_text: The recognized text that was rejected, if available.
    """

    def __init__(self, message: str = "No valid server number found", raw_text: str = "") -> None:
        self.raw_text = raw_text
        super().__init__(message)


class ConfigurationError(BFVOcrError):
    """Setup failure: missing tessdata, unusable temp directory, bad settings."""
    pass


class ProcessingError(BFVOcrError):
    """Generic failure while turning an image into a server number."""
    pass


class PreprocessingError(ProcessingError):
    """Failure while cropping, converting, thresholding, scaling or saving."""
    pass


class RecognitionError(ProcessingError):
    """The OCR engine failed on a prepared image."""
    pass
