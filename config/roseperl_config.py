"""Configuration constants for the Roseperl where-to-buy locator"""

WTB_URL_PATTERN = r"https://cdn\.roseperl\.com/storelocator-prod/wtb/[^\"'\s]+"
PAYLOAD_VARIABLE = "SCASLWtb"
