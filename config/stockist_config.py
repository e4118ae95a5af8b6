"""Configuration constants for the Stockist widget"""

WIDGET_URL_TEMPLATE = (
    "https://stockist.co/api/v1/{tag}/widget.js?callback=_stockistConfigCallback_{tag}"
)
SEARCH_URL_TEMPLATE = "https://stockist.co/api/v1/{tag}/locations/search"

# Used when the widget config does not name a map center or radius
DEFAULT_LATITUDE = 39.828175
DEFAULT_LONGITUDE = -98.5795
DEFAULT_DISTANCE = 50000
PER_PAGE = 10000
