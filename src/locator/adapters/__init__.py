"""Locator adapter registry.

Order matters: the orchestrator tries adapters in registry order and the
first one that detects and returns records wins. Platform-specific
adapters come first, the generic structured-data adapters last.
"""

import importlib
from typing import Dict, List

from src.locator.adapters.base import LocatorAdapter

# Registry of available adapters, in strategy order
ADAPTER_REGISTRY: Dict[str, str] = {
    'locally': 'src.locator.adapters.locally:LocallyAdapter',
    'storemapper': 'src.locator.adapters.storemapper:StoremapperAdapter',
    'stockist': 'src.locator.adapters.stockist:StockistAdapter',
    'storepoint': 'src.locator.adapters.storepoint:StorepointAdapter',
    'roseperl': 'src.locator.adapters.roseperl:RoseperlAdapter',
    'vtinfo': 'src.locator.adapters.vtinfo:VtinfoAdapter',
    'askhoodie': 'src.locator.adapters.askhoodie:AskHoodieAdapter',
    'beveragefinder': 'src.locator.adapters.beveragefinder:BeverageFinderAdapter',
    'storerocket': 'src.locator.adapters.storerocket:StoreRocketAdapter',
    'agile_store_locator': 'src.locator.adapters.agile_store_locator:AgileStoreLocatorAdapter',
    'destini': 'src.locator.adapters.destini:DestiniAdapter',
    'jsonld': 'src.locator.adapters.jsonld:JsonLdAdapter',
    'json_embed': 'src.locator.adapters.json_embed:JsonEmbedAdapter',
}


def get_available_adapters() -> List[str]:
    """Names of all registered adapters, in strategy order"""
    return list(ADAPTER_REGISTRY.keys())


def get_adapter(name: str) -> LocatorAdapter:
    """Import and instantiate one adapter by locator source name"""
    if name not in ADAPTER_REGISTRY:
        raise ValueError(f"Unknown locator adapter: {name}. Available: {get_available_adapters()}")
    module_path, class_name = ADAPTER_REGISTRY[name].split(':')
    module = importlib.import_module(module_path)
    return getattr(module, class_name)()


def default_adapters() -> List[LocatorAdapter]:
    """Fresh instances of every registered adapter, in strategy order"""
    return [get_adapter(name) for name in ADAPTER_REGISTRY]


__all__ = [
    'ADAPTER_REGISTRY',
    'LocatorAdapter',
    'default_adapters',
    'get_adapter',
    'get_available_adapters',
]
