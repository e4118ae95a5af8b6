"""Brand registry and run settings loaded from config/locations.yaml.

Example:
    settings:
      request_timeout_secs: 30
      max_concurrent_brands: 4
    brands:
      - id: 1
        slug: cann
        name: Cann
        domain: drinkcann.com
        store_locator_url: https://drinkcann.com/pages/store-locator

Environment variables override the YAML settings (LOCATIONS_DB_PATH,
SCRAPER_USER_AGENT, SCRAPER_REQUEST_TIMEOUT_SECS,
SCRAPER_MAX_CONCURRENT_BRANDS).
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

import yaml

from src.shared.constants import HTTP, LOGGING, WORKERS

__all__ = [
    'Brand',
    'ConfigError',
    'DEFAULT_CONFIG_PATH',
    'DEFAULT_DB_PATH',
    'Settings',
    'apply_env_overrides',
    'load_config',
    'load_config_file',
    'parse_brands',
    'parse_settings',
    'select_brands',
    'validate_config',
]

DEFAULT_CONFIG_PATH = "config/locations.yaml"
DEFAULT_DB_PATH = "data/locations.db"


class ConfigError(Exception):
    """Configuration file is missing, unreadable or invalid."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass(frozen=True)
class Brand:
    """A tracked brand and where its locator lives."""
    id: int
    slug: str
    name: str
    domain: Optional[str] = None
    store_locator_url: Optional[str] = None
    enabled: bool = True


@dataclass(frozen=True)
class Settings:
    request_timeout_secs: float = HTTP.TIMEOUT
    user_agent: str = HTTP.USER_AGENT
    max_concurrent_brands: int = WORKERS.MAX_CONCURRENT_BRANDS
    database_path: str = DEFAULT_DB_PATH
    log_file: Optional[str] = LOGGING.DEFAULT_LOG_FILE


def load_config_file(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Read the YAML file.

    Raises:
        ConfigError: If the file is missing or not valid YAML
    """
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError([f"Configuration file not found: {config_path}"])
    except yaml.YAMLError as e:
        raise ConfigError([f"Invalid YAML syntax in config file: {e}"])
    # Handle empty YAML files (safe_load returns None)
    return config if config is not None else {}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Any) -> List[str]:
    """Check a loaded configuration for errors.

    Returns:
        List of validation errors (empty if config is valid)
    """
    if not config:
        return ["Configuration file is empty"]
    if not isinstance(config, dict):
        return ["Configuration must be a dictionary"]

    errors = []
    settings = config.get('settings', {})
    if settings is None:
        settings = {}
    if not isinstance(settings, dict):
        errors.append("'settings' must be a dictionary")
    else:
        for field in ('request_timeout_secs', 'max_concurrent_brands'):
            if field in settings:
                value = settings[field]
                if not _is_number(value) or value <= 0:
                    errors.append(f"Setting '{field}' must be a positive number")
        for field in ('user_agent', 'database_path', 'log_file'):
            if field in settings and settings[field] is not None and not isinstance(settings[field], str):
                errors.append(f"Setting '{field}' must be a string")

    if 'brands' not in config:
        errors.append("Missing required 'brands' section")
        return errors
    brands = config['brands']
    if not isinstance(brands, list):
        errors.append("'brands' must be a list")
        return errors

    seen_ids = set()
    seen_slugs = set()
    for index, brand in enumerate(brands):
        if not isinstance(brand, dict):
            errors.append(f"Brand #{index + 1}: configuration must be a dictionary")
            continue
        prefix = f"Brand '{brand.get('slug', f'#{index + 1}')}'"

        brand_id = brand.get('id')
        if not isinstance(brand_id, int) or isinstance(brand_id, bool) or brand_id <= 0:
            errors.append(f"{prefix}: 'id' must be a positive integer")
        elif brand_id in seen_ids:
            errors.append(f"{prefix}: duplicate id {brand_id}")
        else:
            seen_ids.add(brand_id)

        slug = brand.get('slug')
        if not isinstance(slug, str) or not slug.strip():
            errors.append(f"{prefix}: missing 'slug' field")
        elif slug.strip() in seen_slugs:
            errors.append(f"{prefix}: duplicate slug")
        else:
            seen_slugs.add(slug.strip())

        if 'name' in brand and not isinstance(brand['name'], str):
            errors.append(f"{prefix}: 'name' must be a string")

        url = brand.get('store_locator_url')
        if url is not None and (not isinstance(url, str) or not url.startswith(('http://', 'https://'))):
            errors.append(f"{prefix}: 'store_locator_url' must be a valid HTTP/HTTPS URL")

        domain = brand.get('domain')
        if domain is not None and (not isinstance(domain, str) or not domain.strip() or '/' in domain):
            errors.append(f"{prefix}: 'domain' must be a bare host name such as example.com")

        if 'enabled' in brand and not isinstance(brand['enabled'], bool):
            errors.append(f"{prefix}: 'enabled' must be true or false")

    return errors


def parse_settings(config: Dict[str, Any]) -> Settings:
    raw = config.get('settings') or {}
    defaults = Settings()
    return Settings(
        request_timeout_secs=raw.get('request_timeout_secs', defaults.request_timeout_secs),
        user_agent=raw.get('user_agent') or defaults.user_agent,
        max_concurrent_brands=int(raw.get('max_concurrent_brands', defaults.max_concurrent_brands)),
        database_path=raw.get('database_path') or defaults.database_path,
        log_file=raw.get('log_file', defaults.log_file),
    )


def parse_brands(config: Dict[str, Any]) -> List[Brand]:
    brands = []
    for entry in config.get('brands') or []:
        brands.append(Brand(
            id=entry['id'],
            slug=entry['slug'].strip(),
            name=entry.get('name') or entry['slug'],
            domain=(entry.get('domain') or '').strip() or None,
            store_locator_url=(entry.get('store_locator_url') or '').strip() or None,
            enabled=entry.get('enabled', True),
        ))
    return brands


def _env_number(name: str, cast, current):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return current
    try:
        value = cast(raw)
    except ValueError:
        logging.warning(f"Ignoring {name}={raw!r}: not a number")
        return current
    if value <= 0:
        logging.warning(f"Ignoring {name}={raw!r}: must be positive")
        return current
    return value


def apply_env_overrides(settings: Settings) -> Settings:
    """Environment variables take precedence over the YAML settings."""
    return replace(
        settings,
        database_path=os.getenv('LOCATIONS_DB_PATH') or settings.database_path,
        user_agent=os.getenv('SCRAPER_USER_AGENT') or settings.user_agent,
        request_timeout_secs=_env_number(
            'SCRAPER_REQUEST_TIMEOUT_SECS', float, settings.request_timeout_secs
        ),
        max_concurrent_brands=_env_number(
            'SCRAPER_MAX_CONCURRENT_BRANDS', int, settings.max_concurrent_brands
        ),
    )


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Tuple[Settings, List[Brand]]:
    """Load, validate and parse the configuration file.

    Raises:
        ConfigError: With every validation error found
    """
    config = load_config_file(config_path)
    errors = validate_config(config)
    if errors:
        raise ConfigError(errors)
    return apply_env_overrides(parse_settings(config)), parse_brands(config)


def select_brands(brands: List[Brand], slug: Optional[str] = None) -> List[Brand]:
    """Enabled brands, or the single brand named by ``slug``.

    Raises:
        ValueError: If ``slug`` names no configured brand
    """
    if slug is None:
        return [brand for brand in brands if brand.enabled]
    for brand in brands:
        if brand.slug == slug:
            return [brand]
    raise ValueError(f"Unknown brand: {slug}. Available: {[b.slug for b in brands]}")
