"""Configuration constants for the Destini (lets.shop) locator"""

BOOTSTRAP_URL_TEMPLATE = "https://lets.shop/locators/{alpha}/{locator}/{locator}.json"
DEFAULT_KNOX_URL = "https://hlc7l6v5w6.execute-api.us-west-2.amazonaws.com/prod/"

DEFAULT_RADIUS = 100
DEFAULT_MAX_STORES = 100
DEFAULT_TEXT_STYLE = "RESPECTCASINGPASSED"
CATEGORY_LEVEL = 2

# Linked scripts probed for locator ids when the page markup has none
MAX_SCRIPT_PROBES = 24
SCRIPT_HINTS = ("/_nuxt/", "locator", "where-to-buy", "lets.shop")

# Gate shared by every brand using the Knox API
MIN_REQUEST_GAP = 0.5
