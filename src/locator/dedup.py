"""Coordinate-based merge of overlapping geo-grid results."""

from typing import Iterable, List, Set, Tuple

from src.locator.types import RawLocation
from src.shared.constants import GRID

__all__ = [
    'coordinate_key',
    'dedupe_by_coordinates',
]


def coordinate_key(lat: float, lng: float, precision: int = GRID.DEDUP_PRECISION) -> Tuple[float, float]:
    """Rounded (lat, lng) pair used as the merge key.

    Normalizes -0.0 to 0.0 so the two spellings of zero agree.
    """
    return (round(lat, precision) + 0.0, round(lng, precision) + 0.0)


def dedupe_by_coordinates(
    locations: Iterable[RawLocation],
    precision: int = GRID.DEDUP_PRECISION,
) -> List[RawLocation]:
    """Keep the first record seen per rounded coordinate pair.

    Records without coordinates cannot be merged this way and are kept
    as they are.

    Examples:
        (33.12340, -80.12340) and (33.12341, -80.12340) collapse into one;
        (33.1234, -80.1234) and (34.0, -81.0) stay distinct.
    """
    seen: Set[Tuple[float, float]] = set()
    merged = []
    for location in locations:
        if not location.has_coordinates():
            merged.append(location)
            continue
        key = coordinate_key(location.latitude, location.longitude, precision)
        if key in seen:
            continue
        seen.add(key)
        merged.append(location)
    return merged
