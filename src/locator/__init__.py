"""Store locator discovery: adapters, strategy chain, trust gate and identity"""

from .types import FetchContext, RawLocation
from .identity import location_key, normalize_key_part
from .trust import TrustDecision, TrustRejected, evaluate_trust, validate_trust
from .dedup import dedupe_by_coordinates
from .grid import STRATEGIC_US_POINTS, GeoGridSearch, GridConfig, GridPoint, generate_grid
from .orchestrator import StrategyResult, fetch_store_locations, run_strategies

__all__ = [
    'FetchContext',
    'GeoGridSearch',
    'GridConfig',
    'GridPoint',
    'RawLocation',
    'STRATEGIC_US_POINTS',
    'StrategyResult',
    'TrustDecision',
    'TrustRejected',
    'dedupe_by_coordinates',
    'evaluate_trust',
    'fetch_store_locations',
    'generate_grid',
    'location_key',
    'normalize_key_part',
    'run_strategies',
    'validate_trust',
]
