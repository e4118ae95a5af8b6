"""Centralized constants for the store locator collector.

This module provides frozen dataclass-based configuration groups for the
magic numbers used throughout the codebase. Provider-specific numbers
(endpoint URLs, pacing for one API) live in config/<provider>_config.py;
the values here are shared by every adapter and by the pipeline.

Usage:
    from src.shared.constants import HTTP, RETRY, TRUST

    timeout = HTTP.TIMEOUT
    attempts = RETRY.MAX_ATTEMPTS
"""

from dataclasses import dataclass

__all__ = [
    'DISCOVERY',
    'DiscoveryDefaults',
    'GATE',
    'GateDefaults',
    'GRID',
    'GridDefaults',
    'HTTP',
    'HttpDefaults',
    'LOGGING',
    'LoggingDefaults',
    'RETRY',
    'RetryDefaults',
    'TRUST',
    'TrustDefaults',
    'WORKERS',
    'WorkerDefaults',
]


@dataclass(frozen=True)
class HttpDefaults:
    """HTTP request configuration defaults.

    The timeout and user agent can be overridden in config/locations.yaml
    or through SCRAPER_* environment variables.
    """

    TIMEOUT: int = 30
    """Request timeout in seconds."""

    USER_AGENT: str = "StoreLocatorCollector/1.0 (+https://example.com/bot)"
    """Default user agent sent with every request."""

    BROWSER_USER_AGENT: str = (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )
    """Fallback user agent used when a locator page refuses the default one."""

    MAX_ERROR_BODY: int = 200
    """Characters of a failed response body kept on the FetchError."""


@dataclass(frozen=True)
class RetryDefaults:
    """Retry and backoff settings for transient HTTP failures."""

    MAX_ATTEMPTS: int = 3
    """Total attempts (first try included) before the last error is raised."""

    BASE_DELAY: float = 0.5
    """Delay in seconds before the second attempt."""

    MAX_DELAY: float = 8.0
    """Upper bound in seconds for a single backoff sleep."""

    JITTER: float = 0.25
    """Relative jitter applied to each backoff sleep (+/- 25%)."""

    MAX_RETRY_AFTER: float = 60.0
    """Largest Retry-After value in seconds that is honoured."""


@dataclass(frozen=True)
class GateDefaults:
    """Pacing between requests to the same third-party API."""

    MIN_GAP: float = 0.25
    """Default minimum seconds between two requests sharing one gate."""

    INTER_REQUEST_MIN: float = 0.2
    """Lower bound of the per-call delay between grid queries."""

    INTER_REQUEST_MAX: float = 0.6
    """Upper bound of the per-call delay between grid queries."""


@dataclass(frozen=True)
class GridDefaults:
    """Geo-grid generation and coordinate dedup settings."""

    MILES_PER_DEGREE_LAT: float = 69.0
    """Approximate miles per degree of latitude."""

    DEDUP_PRECISION: int = 4
    """Decimal places used to merge coordinates (about 11 meters)."""

    STORE_PRECISION: int = 6
    """Decimal places coordinates are rounded to when persisted."""


@dataclass(frozen=True)
class TrustDefaults:
    """Acceptance thresholds for low-confidence locator sources."""

    MIN_RECORDS: int = 5
    """Minimum batch size for a generic scan to be trusted."""

    MIN_QUALITY_RATIO: float = 0.80
    """Minimum share of records carrying an address, city+state or coordinates."""


@dataclass(frozen=True)
class WorkerDefaults:
    """Brand worker pool configuration."""

    MAX_CONCURRENT_BRANDS: int = 4
    """Default number of brands collected in parallel."""

    MAX_CONCURRENT_LIMIT: int = 32
    """Upper bound accepted from configuration."""


@dataclass(frozen=True)
class DiscoveryDefaults:
    """Locator URL auto-discovery settings."""

    PROBE_TIMEOUT: int = 5
    """Timeout in seconds for each HEAD probe."""


@dataclass(frozen=True)
class LoggingDefaults:
    """Logging configuration."""

    MAX_BYTES: int = 10 * 1024 * 1024
    """Maximum log file size before rotation (10MB)."""

    BACKUP_COUNT: int = 5
    """Number of rotated log files to keep."""

    DEFAULT_LOG_FILE: str = "logs/locations.log"
    """Log file used when none is configured."""


# Singleton instances for easy import
HTTP = HttpDefaults()
RETRY = RetryDefaults()
GATE = GateDefaults()
GRID = GridDefaults()
TRUST = TrustDefaults()
WORKERS = WorkerDefaults()
DISCOVERY = DiscoveryDefaults()
LOGGING = LoggingDefaults()
