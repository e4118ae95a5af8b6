"""Configuration constants for the Locally.com widget"""

API_URL = "https://api.locally.com/stores/json"
TAKE = 10000  # one page holds every store of a company
