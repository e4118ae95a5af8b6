"""Configuration constants for the Agile Store Locator WordPress plugin"""

ACTION = "asl_load_stores"
DEFAULT_LANG = ""
DEFAULT_LOAD_ALL = "1"
DEFAULT_LAYOUT = "0"

# admin-ajax answers intermittently under load; seconds slept before each attempt
ATTEMPT_DELAYS = (0.0, 0.3, 0.9)
