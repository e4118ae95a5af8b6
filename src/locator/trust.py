"""Trust gate run on a scrape before it may touch stored locations.

An empty batch is always rejected: reconciling it would deactivate every
stored location of the brand. Named providers are trusted as they are.
Generic scanners (JSON-LD and embedded JSON) match unrelated data often
enough that their batches must be large enough and mostly well-formed.
"""

from typing import FrozenSet, List, Optional

from src.locator.types import RawLocation
from src.shared.constants import TRUST

__all__ = [
    'HIGH_CONFIDENCE_SOURCES',
    'LOW_CONFIDENCE_SOURCES',
    'TrustDecision',
    'TrustRejected',
    'evaluate_trust',
    'has_minimum_shape',
    'validate_trust',
]


HIGH_CONFIDENCE_SOURCES: FrozenSet[str] = frozenset({
    'locally',
    'storemapper',
    'stockist',
    'storepoint',
    'roseperl',
    'vtinfo',
    'askhoodie',
    'beveragefinder',
    'storerocket',
    'agile_store_locator',
    'destini',
})

LOW_CONFIDENCE_SOURCES: FrozenSet[str] = frozenset({
    'jsonld',
    'json_embed',
})


class TrustRejected(Exception):
    """A scrape batch is not trustworthy enough to persist."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class TrustDecision:
    """Accept/reject outcome of the trust gate.

    Attributes:
        accepted: True if the batch may be persisted
        reason: Human-readable rejection reason (empty when accepted)
        source: Locator source the decision was made for
    """

    def __init__(self, accepted: bool, reason: str = "", source: Optional[str] = None):
        self.accepted = accepted
        self.reason = reason
        self.source = source

    def __repr__(self) -> str:
        if self.accepted:
            return f"TrustDecision(accepted, source={self.source!r})"
        return f"TrustDecision(rejected, reason={self.reason!r})"


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def has_minimum_shape(location: RawLocation) -> bool:
    """A name plus a street address, city+state, or coordinates."""
    if not _present(location.name):
        return False
    return (
        _present(location.address_line1)
        or (_present(location.city) and _present(location.state))
        or location.has_coordinates()
    )


def evaluate_trust(
    locations: List[RawLocation],
    min_records: int = TRUST.MIN_RECORDS,
    min_quality_ratio: float = TRUST.MIN_QUALITY_RATIO,
) -> TrustDecision:
    """Decide whether a batch may be persisted."""
    if not locations:
        return TrustDecision(False, "scrape returned zero locations")

    sources = {location.locator_source for location in locations}
    if len(sources) > 1:
        return TrustDecision(False, f"mixed locator sources {sorted(sources)}")
    source = sources.pop()

    if source in HIGH_CONFIDENCE_SOURCES:
        return TrustDecision(True, source=source)

    if source in LOW_CONFIDENCE_SOURCES:
        quality = sum(1 for location in locations if has_minimum_shape(location))
        ratio = quality / len(locations)
        if len(locations) >= min_records and ratio >= min_quality_ratio:
            return TrustDecision(True, source=source)
        return TrustDecision(
            False,
            f"{source} scrape below trust threshold "
            f"(count={len(locations)}, quality_ratio={ratio:.2f})",
            source=source,
        )

    return TrustDecision(False, f"unknown locator source '{source}'", source=source)


def validate_trust(locations: List[RawLocation]) -> None:
    """Raise TrustRejected unless the batch passes the trust gate."""
    decision = evaluate_trust(locations)
    if not decision.accepted:
        raise TrustRejected(decision.reason)
