"""
Server number parser for recognized text.

Turns raw Tesseract output into a validated server number:
- Plausibility gate rejecting text that cannot come from the server browser
- Strict pattern match, then a noise-tolerant fallback
- Per-candidate context checks (isolated line, near the top of the screen)
"""

import logging
import re
from typing import Optional

from bfvocr.constants import (
    FLEXIBLE_SERVER_REGEX,
    MAX_HASH_SYMBOLS,
    MAX_LEADING_LINES,
    MAX_LINE_NOISE,
    MAX_NUMERIC_SEQUENCES,
    MAX_OCR_TEXT_LENGTH,
    NON_SCREEN_KEYWORDS,
    SERVER_NUMBER_REGEX,
    SHORT_SERVER_NUMBER_REGEX,
    SHORT_TEXT_LENGTH,
    VALID_SERVER_NUMBER_FORMAT,
)
from bfvocr.exceptions import ServerNumberNotFoundError

logger = logging.getLogger(__name__)


class ServerNumberParser:
    """
    Extracts a server number from OCR text.

    Tesseract often returns other numbers from the screen (player counts,
    pings, version strings) that look like '#ddd'. Candidates are only
    accepted when their surroundings match how the server number is drawn.
    """

    SERVER_PATTERN = re.compile(SERVER_NUMBER_REGEX)
    FLEXIBLE_PATTERN = re.compile(FLEXIBLE_SERVER_REGEX)
    VALID_FORMAT_PATTERN = re.compile(VALID_SERVER_NUMBER_FORMAT)
    SHORT_PATTERN = re.compile(SHORT_SERVER_NUMBER_REGEX)
    NUMERIC_SEQUENCE_PATTERN = re.compile(r"\d+")

    def find_server_number(self, ocr_text: Optional[str]) -> Optional[str]:
        """
        Find the server number in recognized text.

        Args:
            ocr_text: Raw OCR output, possibly empty

        Returns:
            The number including its '#' prefix, or None
        """
        if ocr_text is None or not ocr_text.strip():
            return None

        if not self.is_plausible_screen_text(ocr_text):
            logger.debug("OCR text does not appear to be from a BFV screenshot")
            return None

        match = self.SERVER_PATTERN.search(ocr_text)
        if match:
            candidate = match.group()
            if self.validate_candidate(candidate, ocr_text):
                logger.debug(f"Number found with standard pattern: {candidate}")
                return candidate
            logger.debug(f"Rejected candidate from standard pattern: {candidate}")

        match = self.FLEXIBLE_PATTERN.search(ocr_text)
        if match:
            candidate = match.group(1)
            if self.validate_candidate(candidate, ocr_text):
                logger.debug(f"Number found with flexible pattern: {candidate}")
                return candidate
            logger.debug(f"Rejected candidate from flexible pattern: {candidate}")

        logger.debug("No valid server number found in OCR text")
        return None

    def extract_server_number(self, ocr_text: Optional[str]) -> str:
        """
        Like find_server_number, but raise when nothing is found.

        Raises:
            ServerNumberNotFoundError: If no candidate survives validation
        """
        server_number = self.find_server_number(ocr_text)
        if server_number is None:
            raise ServerNumberNotFoundError(raw_text=ocr_text or "")
        return server_number

    def parse(self, ocr_text: Optional[str]) -> str:
        """Extract the server number and return its bare digits."""
        return remove_hash_symbol(self.extract_server_number(ocr_text))

    def is_plausible_screen_text(self, ocr_text: str) -> bool:
        """Reject text that is too long, too numeric, or clearly not from the game."""
        # Short, unambiguous inputs skip the remaining checks
        if (
            len(ocr_text.strip()) < SHORT_TEXT_LENGTH
            and "#" in ocr_text
            and self.SHORT_PATTERN.search(ocr_text)
        ):
            return True

        if len(ocr_text) > MAX_OCR_TEXT_LENGTH:
            logger.debug(f"OCR text too long: {len(ocr_text)} characters")
            return False

        numeric_sequences = self.count_numeric_sequences(ocr_text)
        if numeric_sequences > MAX_NUMERIC_SEQUENCES:
            logger.debug(f"Too many numeric sequences: {numeric_sequences}")
            return False

        hash_count = ocr_text.count("#")
        if hash_count > MAX_HASH_SYMBOLS:
            logger.debug(f"Too many # symbols: {hash_count}")
            return False

        lower_text = ocr_text.lower()
        if any(keyword in lower_text for keyword in NON_SCREEN_KEYWORDS):
            logger.debug("Text contains keywords not typical for BFV screenshots")
            return False

        return True

    def validate_candidate(self, candidate: str, full_text: str) -> bool:
        """Check a '#ddd' candidate against its context in the full text."""
        if not self.VALID_FORMAT_PATTERN.match(candidate):
            return False

        if full_text.strip() == candidate:
            return True

        if len(full_text) < SHORT_TEXT_LENGTH and candidate in full_text:
            return True

        lines = full_text.split("\n")

        # The number usually sits alone on its line
        for line in lines:
            trimmed = line.strip()
            if trimmed == candidate or (
                candidate in trimmed and len(trimmed) <= len(candidate) + MAX_LINE_NOISE
            ):
                return True

        if not any(candidate in line for line in lines[:MAX_LEADING_LINES]):
            logger.debug("Server number not found in first few lines")
            return False

        return True

    def count_numeric_sequences(self, text: str) -> int:
        """Count maximal runs of digits."""
        return len(self.NUMERIC_SEQUENCE_PATTERN.findall(text))


def remove_hash_symbol(server_number: Optional[str]) -> Optional[str]:
    """Strip '#' characters; values without one are returned unchanged."""
    if server_number is None or "#" not in server_number:
        return server_number
    return server_number.replace("#", "")


_default_parser = ServerNumberParser()


def find_server_number(ocr_text: Optional[str]) -> Optional[str]:
    return _default_parser.find_server_number(ocr_text)


def extract_server_number(ocr_text: Optional[str]) -> str:
    return _default_parser.extract_server_number(ocr_text)


def parse_server_number(ocr_text: Optional[str]) -> str:
    return _default_parser.parse(ocr_text)
