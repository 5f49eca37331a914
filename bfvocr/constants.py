"""
Fixed values for the server number extraction pipeline.

Tuned for Battlefield V server browser screenshots:
- Region of interest and raster transform parameters
- Temporary file naming
- Server number patterns and plausibility limits
"""

# ---------------------------------------------------------------------------
# Image preprocessing
# ---------------------------------------------------------------------------

# The server number always renders in the upper-left part of the screen.
ROI_WIDTH_FACTOR = 2   # keep the left half
ROI_HEIGHT_FACTOR = 3  # keep the top third

# Must be odd.
ADAPTIVE_THRESHOLD_BLOCK_SIZE = 11
ADAPTIVE_THRESHOLD_CONSTANT = 2
ADAPTIVE_THRESHOLD_MAX_VALUE = 255

SCALE_FACTOR = 2.0

PROCESSED_IMAGE_SUFFIX = "_processed.png"
MEMORY_IMAGE_PREFIX = "memory-image"

# ---------------------------------------------------------------------------
# Tesseract resources
# ---------------------------------------------------------------------------

TESSDATA_RESOURCE_DIR = "tessdata"
TESSDATA_FILE_EXTENSION = ".traineddata"
TEMP_TESSDATA_DIR = "tessdata"
TEMP_DIR_PREFIX = "bfvocr-"

# ---------------------------------------------------------------------------
# Server number validation
# ---------------------------------------------------------------------------

# '#' + 3-5 digits, bounded by whitespace or the ends of the text.
SERVER_NUMBER_REGEX = r"(?<!\S)#\d{3,5}(?!\S)"

# Fallback when OCR noise sits right before the number. Group 1 is the number.
FLEXIBLE_SERVER_REGEX = r".*?(#\d{3,5})(?:\s|$|[^\d])"

VALID_SERVER_NUMBER_FORMAT = r"^#\d{3,5}$"

SHORT_SERVER_NUMBER_REGEX = r"#\d{3,5}"

MAX_OCR_TEXT_LENGTH = 500
MAX_NUMERIC_SEQUENCES = 20
MAX_HASH_SYMBOLS = 5

# Below this length a text containing '#ddd' is accepted as-is.
SHORT_TEXT_LENGTH = 50

# Extra characters tolerated on the line holding the number.
MAX_LINE_NOISE = 3

# The number renders near the top of the screen.
MAX_LEADING_LINES = 5

NON_SCREEN_KEYWORDS = ("error", "lorem", "ipsum", "http")
