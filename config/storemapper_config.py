"""Configuration constants for the Storemapper widget"""

API_URL = "https://storemapper.co/api/stores"
