"""Brand registry, locator URL resolution and collection runs"""

from .brands import Brand, ConfigError, Settings, load_config, select_brands, validate_config
from .discovery import LOCATOR_PATHS, resolve_locator_url
from .runner import BrandOutcome, RunSummary, collect_brand_locations, run_collect_locations

__all__ = [
    'Brand',
    'BrandOutcome',
    'ConfigError',
    'LOCATOR_PATHS',
    'RunSummary',
    'Settings',
    'collect_brand_locations',
    'load_config',
    'resolve_locator_url',
    'run_collect_locations',
    'select_brands',
    'validate_config',
]
