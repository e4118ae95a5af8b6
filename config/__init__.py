"""Configuration module for locator providers"""

from typing import Dict
import importlib

# Mapping of locator source names to their config modules
CONFIG_MODULES: Dict[str, str] = {
    'locally': 'config.locally_config',
    'storemapper': 'config.storemapper_config',
    'stockist': 'config.stockist_config',
    'storepoint': 'config.storepoint_config',
    'roseperl': 'config.roseperl_config',
    'vtinfo': 'config.vtinfo_config',
    'askhoodie': 'config.askhoodie_config',
    'beveragefinder': 'config.beveragefinder_config',
    'storerocket': 'config.storerocket_config',
    'agile_store_locator': 'config.agile_store_locator_config',
    'destini': 'config.destini_config',
}


def get_config(provider: str):
    """Get configuration module for a locator provider"""
    if provider not in CONFIG_MODULES:
        raise ValueError(f"Unknown locator provider: {provider}")
    return importlib.import_module(CONFIG_MODULES[provider])


__all__ = ['get_config', 'CONFIG_MODULES']
