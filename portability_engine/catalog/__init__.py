"""
Static catalogs for the Portability Engine.
"""

from portability_engine.catalog.loader import (
    CatalogLoader,
    FormatDescriptor,
    DEFAULT_CATALOG_DIR,
)
from portability_engine.catalog.components import ComponentCatalog

__all__ = [
    "CatalogLoader",
    "FormatDescriptor",
    "DEFAULT_CATALOG_DIR",
    "ComponentCatalog",
]
