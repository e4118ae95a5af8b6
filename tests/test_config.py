"""Tests for provider config module lookup."""

import pytest

from config import CONFIG_MODULES, get_config
from src.locator.adapters import ADAPTER_REGISTRY


def test_every_provider_adapter_has_config():
    generic = {'jsonld', 'json_embed'}
    assert set(CONFIG_MODULES) == set(ADAPTER_REGISTRY) - generic


@pytest.mark.parametrize("provider", sorted(CONFIG_MODULES))
def test_get_config_imports_module(provider):
    module = get_config(provider)
    assert module.__name__ == CONFIG_MODULES[provider]


def test_unknown_provider():
    with pytest.raises(ValueError, match="Unknown locator provider"):
        get_config('walmart')


def test_vtinfo_headers_carry_referer():
    headers = get_config('vtinfo').get_headers("https://brand.example.com/pages/store-locator")
    assert headers["Referer"] == "https://brand.example.com/pages/store-locator"
    assert headers["Origin"] == "https://finder.vtinfo.com"
