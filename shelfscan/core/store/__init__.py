# Path: shelfscan/core/store/__init__.py
# Purpose: Package initializer for the document store.
# Layer: core/store.
# Details: Exposes the SQLite document store, conditional patches, and change subscriptions.

from .changes import ChangeSubscription
from .document_store import DocumentStore, Patch, json_path

__all__ = ["ChangeSubscription", "DocumentStore", "Patch", "json_path"]
