"""Catalog adapter factory.

Provides get_catalog() / set_catalog() to swap implementations. The
in-memory catalogue is the default; CATALOG_ADAPTER selects another.
"""

import os

from ordering.catalog.port import CatalogPort

_current_catalog: CatalogPort | None = None


def get_catalog() -> CatalogPort:
    """Return the configured catalogue adapter (singleton)."""
    global _current_catalog
    if _current_catalog is None:
        adapter = os.environ.get("CATALOG_ADAPTER", "memory")
        if adapter == "memory":
            from ordering.catalog.memory import InMemoryCatalog

            _current_catalog = InMemoryCatalog()
        else:
            raise ValueError(f"Unknown catalog adapter: {adapter}")
    return _current_catalog


def set_catalog(catalog: CatalogPort) -> None:
    """Override the active catalogue adapter (useful for tests)."""
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    """Reset the catalogue singleton (useful for testing)."""
    global _current_catalog
    _current_catalog = None
