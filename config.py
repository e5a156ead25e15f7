"""Settings shared by the extraction engine, the CLI and the server."""

from pathlib import Path

# --- Paths ---
ROOT_DIR = Path(__file__).parent
DATA_DIR = ROOT_DIR / "data"
OUTPUT_FILE = ROOT_DIR / "products.json"

# --- Extraction ---
MAX_IMAGES = 6
# Rendered images smaller than this on either side are icons/decorations
MIN_IMAGE_SIDE = 200
# Heuristic title candidates must be longer than this
MIN_TITLE_LENGTH = 3

# --- Change detection ---
# Quiet period after the last content mutation before re-extracting (seconds)
DEBOUNCE_SECONDS = 0.3

# --- Message actions ---
ACTION_GET_PRODUCT = "getProduct"
ACTION_PRODUCT_UPDATED = "productUpdated"
ACTION_PING = "__ping__"

# --- HTTP ---
FETCH_TIMEOUT = 15.0
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
ALLOWED_ORIGINS = ["http://localhost:3000"]
# Pages outside these schemes (browser-internal pages etc.) are never extracted
ALLOWED_URL_SCHEMES = ("http", "https", "file")
