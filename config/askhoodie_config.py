"""Configuration constants for the AskHoodie where-to-buy embed"""

SEARCH_URL = "https://www.askhoodie.com/api/search"
INDEX_NAME = "all_PRODUCTS_V2"
AROUND_RADIUS_METERS = 2500000
HITS_PER_PAGE = 1000

# Paging guards
MAX_PAGES = 25
MAX_EMPTY_PAGES = 2
EMPTY_PAGE_STOP_AT = 4

# Search centers (lat, lng): US center plus four population regions
CENTERS = [
    (39.8283, -98.5795),
    (44.9778, -93.2650),
    (34.0522, -118.2437),
    (40.7128, -74.0060),
    (29.7604, -95.3698),
]

ATTRIBUTES = [
    "MASTER_D_ID",
    "MASTER_D_NAME",
    "MASTER_D_ADDRESS",
    "MASTER_D_CITY",
    "MASTER_D_STATE",
    "MASTER_D_ZIP",
    "MASTER_D_COUNTRY",
    "MASTER_D_PHONE",
    "DISPENSARY_NAME",
    "FULL_ADDRESS",
    "D_CITY",
    "D_STATE",
    "D_ZIP",
    "D_COUNTRY",
    "PHONE",
    "_geoloc",
]

# Gate shared by every brand using AskHoodie
MIN_REQUEST_GAP = 0.5
