"""Sentry.io integration for error monitoring.

This module initializes the Sentry SDK for the collector and reports
per-brand failures with the brand as a tag. Provider tokens, nonces and
CSRF values are scrubbed from everything that is sent.

Usage:
    from src.shared.sentry_integration import init_sentry, capture_brand_error

    # Initialize at application startup (run.py)
    init_sentry()

    # Capture errors with brand context
    capture_brand_error(exception, brand="green-leaf", extra={"url": url})
"""

import logging
import os
import re
from typing import Any, Dict, Optional

import sentry_sdk

__all__ = [
    'add_breadcrumb',
    'capture_brand_error',
    'flush',
    'init_sentry',
    'is_initialized',
    'scrub_sensitive_data',
    'set_brand_context',
]

_sentry_initialized = False

logger = logging.getLogger(__name__)

_SENSITIVE_QUERY = re.compile(
    r"(token|nonce|csrftoken|key|api[_-]?key|password|secret|company_id|custid|uuid)=[^&\s\"']+",
    re.IGNORECASE,
)
_URL_CREDENTIALS = re.compile(r"://[^:/\s]+:[^@/\s]+@")


def init_sentry(
    dsn: Optional[str] = None,
    environment: Optional[str] = None,
    release: Optional[str] = None,
    traces_sample_rate: Optional[float] = None,
) -> bool:
    """Initialize Sentry SDK with project configuration.

    Args:
        dsn: Sentry DSN (defaults to SENTRY_DSN env var)
        environment: Environment name (defaults to SENTRY_ENVIRONMENT or 'development')
        release: Release version (defaults to SENTRY_RELEASE)
        traces_sample_rate: Performance monitoring sample rate (0.0 to 1.0)

    Returns:
        True if Sentry was initialized, False if disabled
    """
    global _sentry_initialized

    if _sentry_initialized:
        return True

    dsn = dsn or os.getenv("SENTRY_DSN", "")
    if not dsn:
        logger.debug("SENTRY_DSN not set, Sentry disabled")
        return False

    environment = environment or os.getenv("SENTRY_ENVIRONMENT", "development")
    release = release or os.getenv("SENTRY_RELEASE")
    if traces_sample_rate is None:
        try:
            traces_sample_rate = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.0"))
        except ValueError:
            traces_sample_rate = 0.0

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            release=release,
            traces_sample_rate=traces_sample_rate,
            before_send=_before_send,
            send_default_pii=False,
            attach_stacktrace=True,
            max_breadcrumbs=50,
        )
    except Exception as e:  # pylint: disable=broad-except
        logger.warning(f"Failed to initialize Sentry: {e}")
        return False

    sentry_sdk.set_tag("project", "store-locator-collector")
    _sentry_initialized = True
    logger.info(f"Sentry initialized (environment={environment}, release={release})")
    return True


def is_initialized() -> bool:
    return _sentry_initialized


def scrub_sensitive_data(text: Any) -> Any:
    """Remove credentials and provider tokens from text."""
    if not isinstance(text, str):
        return text
    text = _URL_CREDENTIALS.sub("://[REDACTED]@", text)
    return _SENSITIVE_QUERY.sub(lambda m: f"{m.group(1)}=[REDACTED]", text)


def _before_send(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Scrub exception messages and breadcrumbs before sending."""
    for exception in event.get("exception", {}).get("values", []):
        if "value" in exception:
            exception["value"] = scrub_sensitive_data(exception["value"])

    for breadcrumb in event.get("breadcrumbs", {}).get("values", []):
        if "message" in breadcrumb:
            breadcrumb["message"] = scrub_sensitive_data(breadcrumb["message"])

    return event


def set_brand_context(brand: str) -> None:
    """Tag subsequent events with the brand being collected."""
    if _sentry_initialized:
        sentry_sdk.set_tag("brand", brand)
        sentry_sdk.set_context("collector", {"brand": brand})


def capture_brand_error(
    exception: BaseException,
    brand: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """Capture an exception with brand context.

    Args:
        exception: The exception to capture
        brand: Brand slug for context
        extra: Additional context data (e.g., locator URL, source)

    Returns:
        Sentry event ID if captured, None otherwise
    """
    if not _sentry_initialized:
        return None

    with sentry_sdk.new_scope() as scope:
        if brand:
            scope.set_tag("brand", brand)
        if extra:
            scope.set_context(
                "collector_context",
                {key: scrub_sensitive_data(value) for key, value in extra.items()},
            )
        return sentry_sdk.capture_exception(exception)


def add_breadcrumb(
    message: str,
    category: str = "collector",
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
) -> None:
    """Add a breadcrumb (e.g. which adapter matched) for debugging context."""
    if _sentry_initialized:
        sentry_sdk.add_breadcrumb(
            message=scrub_sensitive_data(message),
            category=category,
            level=level,
            data=data,
        )


def flush(timeout: float = 2.0) -> None:
    """Flush pending events to Sentry before exit."""
    if _sentry_initialized:
        sentry_sdk.flush(timeout=timeout)
