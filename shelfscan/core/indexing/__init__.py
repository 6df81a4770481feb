# Path: shelfscan/core/indexing/__init__.py
# Purpose: Package initializer for index maintenance and catalog import.
# Layer: core/indexing.
# Details: Exposes the IndexMaintainer drain loop and the CatalogImporter bulk loader.

from .catalog import CatalogImporter, ImportReport
from .maintainer import DrainState, IndexMaintainer

__all__ = ["CatalogImporter", "DrainState", "ImportReport", "IndexMaintainer"]
