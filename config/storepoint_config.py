"""Configuration constants for the Storepoint widget"""

API_URL_TEMPLATE = "https://api.storepoint.co/v2/{widget_id}/locations"
