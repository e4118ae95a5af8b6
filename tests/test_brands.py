"""Tests for brand configuration loading and validation."""

import logging

import pytest

from src.pipeline.brands import (
    Brand,
    ConfigError,
    Settings,
    apply_env_overrides,
    load_config,
    load_config_file,
    parse_brands,
    parse_settings,
    select_brands,
    validate_config,
)

VALID_YAML = """
settings:
  request_timeout_secs: 12
  max_concurrent_brands: 2
  database_path: /tmp/locations-test.db
brands:
  - id: 1
    slug: cann
    name: Cann
    store_locator_url: https://drinkcann.com/pages/store-locator
  - id: 2
    slug: wynk
    domain: drinkwynk.com
    enabled: false
"""


@pytest.fixture
def clean_env(monkeypatch):
    for name in ('LOCATIONS_DB_PATH', 'SCRAPER_USER_AGENT',
                 'SCRAPER_REQUEST_TIMEOUT_SECS', 'SCRAPER_MAX_CONCURRENT_BRANDS'):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "locations.yaml"
    path.write_text(VALID_YAML)
    return str(path)


class TestLoadConfigFile:

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_config_file(str(tmp_path / "nope.yaml"))
        assert "not found" in exc_info.value.errors[0]

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("brands: [unclosed")
        with pytest.raises(ConfigError) as exc_info:
            load_config_file(str(path))
        assert "Invalid YAML" in exc_info.value.errors[0]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config_file(str(path)) == {}


class TestValidateConfig:

    def test_valid(self, config_file):
        assert validate_config(load_config_file(config_file)) == []

    def test_empty(self):
        assert validate_config({}) == ["Configuration file is empty"]

    def test_missing_brands(self):
        assert "Missing required 'brands' section" in validate_config({"settings": {}})

    def test_brands_must_be_list(self):
        assert "'brands' must be a list" in validate_config({"brands": {"cann": 1}})

    def test_duplicates(self):
        errors = validate_config({"brands": [
            {"id": 1, "slug": "cann"},
            {"id": 1, "slug": "cann"},
        ]})
        assert any("duplicate id 1" in e for e in errors)
        assert any("duplicate slug" in e for e in errors)

    def test_padded_duplicate_slug(self):
        """Slugs are trimmed when parsed, so padding cannot hide a duplicate."""
        errors = validate_config({"brands": [
            {"id": 1, "slug": " cann "},
            {"id": 2, "slug": "cann"},
        ]})
        assert errors == ["Brand 'cann': duplicate slug"]

    @pytest.mark.parametrize("brand, message", [
        ({"id": 0, "slug": "x"}, "'id' must be a positive integer"),
        ({"id": True, "slug": "x"}, "'id' must be a positive integer"),
        ({"id": 1}, "missing 'slug'"),
        ({"id": 1, "slug": "x", "store_locator_url": "ftp://x"}, "valid HTTP/HTTPS URL"),
        ({"id": 1, "slug": "x", "domain": "x.com/stores"}, "bare host name"),
        ({"id": 1, "slug": "x", "enabled": "yes"}, "'enabled' must be true or false"),
        ({"id": 1, "slug": "x", "name": 5}, "'name' must be a string"),
    ])
    def test_brand_errors(self, brand, message):
        errors = validate_config({"brands": [brand]})
        assert any(message in e for e in errors), errors

    @pytest.mark.parametrize("settings", [
        {"request_timeout_secs": 0},
        {"max_concurrent_brands": -1},
        {"request_timeout_secs": "fast"},
        {"database_path": 5},
    ])
    def test_settings_errors(self, settings):
        assert validate_config({"settings": settings, "brands": []})


class TestParse:

    def test_settings(self, config_file):
        settings = parse_settings(load_config_file(config_file))
        assert settings.request_timeout_secs == 12
        assert settings.max_concurrent_brands == 2
        assert "StoreLocatorCollector" in settings.user_agent

    def test_settings_defaults(self):
        assert parse_settings({"brands": []}) == Settings()

    def test_brands(self, config_file):
        cann, wynk = parse_brands(load_config_file(config_file))
        assert cann == Brand(1, "cann", "Cann", None, "https://drinkcann.com/pages/store-locator", True)
        assert wynk.name == "wynk"
        assert wynk.domain == "drinkwynk.com"
        assert wynk.enabled is False


class TestEnvOverrides:

    def test_overrides_win(self, clean_env):
        clean_env.setenv('LOCATIONS_DB_PATH', '/data/override.db')
        clean_env.setenv('SCRAPER_USER_AGENT', 'Agent/9')
        clean_env.setenv('SCRAPER_REQUEST_TIMEOUT_SECS', '7.5')
        clean_env.setenv('SCRAPER_MAX_CONCURRENT_BRANDS', '8')

        settings = apply_env_overrides(Settings())

        assert settings.database_path == '/data/override.db'
        assert settings.user_agent == 'Agent/9'
        assert settings.request_timeout_secs == 7.5
        assert settings.max_concurrent_brands == 8

    @pytest.mark.parametrize("value", ["abc", "0", "-3"])
    def test_invalid_numbers_ignored(self, clean_env, caplog, value):
        clean_env.setenv('SCRAPER_MAX_CONCURRENT_BRANDS', value)
        with caplog.at_level(logging.WARNING):
            settings = apply_env_overrides(Settings(max_concurrent_brands=3))
        assert settings.max_concurrent_brands == 3
        assert any("SCRAPER_MAX_CONCURRENT_BRANDS" in r.message for r in caplog.records)

    def test_load_config_applies_overrides(self, clean_env, config_file):
        clean_env.setenv('SCRAPER_REQUEST_TIMEOUT_SECS', '3')
        settings, brands = load_config(config_file)
        assert settings.request_timeout_secs == 3.0
        assert len(brands) == 2

    def test_load_config_invalid(self, clean_env, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("brands:\n  - slug: nameless\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(str(path))
        assert exc_info.value.errors


class TestSelectBrands:

    BRANDS = [Brand(1, "cann", "Cann"), Brand(2, "wynk", "Wynk", enabled=False)]

    def test_enabled_only(self):
        assert [b.slug for b in select_brands(self.BRANDS)] == ["cann"]

    def test_slug_selects_even_disabled(self):
        assert [b.slug for b in select_brands(self.BRANDS, "wynk")] == ["wynk"]

    def test_unknown_slug(self):
        with pytest.raises(ValueError):
            select_brands(self.BRANDS, "nope")


def test_shipped_config_is_valid():
    from pathlib import Path
    path = Path(__file__).parent.parent / "config" / "locations.yaml"
    assert validate_config(load_config_file(str(path))) == []
