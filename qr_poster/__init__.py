"""QR Art Poster: compose QR codes with AI-generated poster backgrounds."""

__version__ = "1.0.0"

# Shared constants
CANVAS_WIDTH = 600
CANVAS_HEIGHT = 800  # 3:4 portrait poster
QR_SIZE_MIN = 100
QR_SIZE_MAX = 400
FALLBACK_QR_PAYLOAD = "https://google.com"
MAX_QR_DATA_BYTES = 1273  # Byte-mode capacity of QR version 40 at EC level H
