"""Configuration constants for the StoreRocket widget"""

API_URL_TEMPLATE = "https://storerocket.io/api/user/{account}/locations"

# Linked scripts probed for the account id when the page itself has none
MAX_SCRIPT_PROBES = 4
SCRIPT_HINTS = ("storerocket", "store-locator", "locator")
