"""Configuration constants for the BeverageFinder embed"""

MAP_URL = "https://beveragefinder.net/users/beveragefinder-map.php"
SEARCH_URL = "https://beveragefinder.net/users/embed-search.php"
DEFAULT_ZIP = "10001"
SEARCH_MILES = "100"
