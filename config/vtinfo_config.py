"""Configuration constants for the VTInfo (iDIG) finder iframe"""

IFRAME_URL = "https://finder.vtinfo.com/finder/web/v2/iframe"
SEARCH_URL = "https://finder.vtinfo.com/finder/web/v2/iframe/search"

DEFAULT_PAGESIZE = "50"
DEFAULT_ON_PREM = "Restaurants and Bars"
DEFAULT_OFF_PREM = "Retail Stores"
SEARCH_RADIUS_MILES = "100"
THEME_VERSION = "3"

# Retry settings
MAX_ATTEMPTS = 5
BACKOFF_BASE = 0.5   # seconds
BACKOFF_MAX = 6.0    # seconds
MAX_RETRY_AFTER = 10.0

# Pacing: base + stable hash spread per brand and request (milliseconds)
PACING_BASE_MS = 350
PACING_SPREAD_MS = 400

# Minimum gap between any two VTInfo requests across all brands (seconds)
MIN_REQUEST_GAP = 0.9

# Stop sweeping once this many unique stores are collected
MAX_LOCATIONS = 100

RATE_LIMIT_MARKERS = (
    "429 too many requests",
    "you have sent too many requests",
    "rate limit",
)

ORIGIN = "https://finder.vtinfo.com"


def get_headers(referer):
    """Headers the finder expects on iframe and search requests"""
    return {
        "Accept": "text/html,application/xhtml+xml,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Origin": ORIGIN,
        "Referer": referer,
    }
