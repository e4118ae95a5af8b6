"""Shared utilities for the locator adapters and the collection pipeline"""

from .constants import (
    DISCOVERY,
    GATE,
    GRID,
    HTTP,
    LOGGING,
    RETRY,
    TRUST,
    WORKERS,
)

from .http import (
    FetchCancelled,
    FetchError,
    create_session,
    fetch_html,
    fetch_json,
    get_headers,
    head_ok,
    log_safe,
    parse_retry_after,
    post_form,
    post_json,
    sanitize_url,
)

from .retry import (
    compute_backoff,
    is_retriable,
    sleep_or_cancel,
    with_retry,
)

from .concurrency import (
    GateRegistry,
    RequestGate,
)

from .delays import (
    random_delay,
    stable_pacing_ms,
)

from .logging_config import setup_logging

from .sentry_integration import (
    capture_brand_error,
    init_sentry,
)

__all__ = [
    # Constants
    'DISCOVERY',
    'GATE',
    'GRID',
    'HTTP',
    'LOGGING',
    'RETRY',
    'TRUST',
    'WORKERS',
    # HTTP
    'FetchCancelled',
    'FetchError',
    'create_session',
    'fetch_html',
    'fetch_json',
    'get_headers',
    'head_ok',
    'log_safe',
    'parse_retry_after',
    'post_form',
    'post_json',
    'sanitize_url',
    # Retry
    'compute_backoff',
    'is_retriable',
    'sleep_or_cancel',
    'with_retry',
    # Request pacing
    'GateRegistry',
    'RequestGate',
    'random_delay',
    'stable_pacing_ms',
    # Logging and error reporting
    'capture_brand_error',
    'init_sentry',
    'setup_logging',
]
