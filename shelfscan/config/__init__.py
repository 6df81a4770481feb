# Path: shelfscan/config/__init__.py
# Purpose: Package initializer for configuration module.
# Layer: config.
# Details: Exposes settings models for application-wide configuration.

from .settings import (
    AppSettings,
    CaptureSettings,
    EmbedderSettings,
    IndexSettings,
    SearchSettings,
    SyncEndpoint,
    SyncSettings,
)

__all__ = [
    "AppSettings",
    "CaptureSettings",
    "EmbedderSettings",
    "IndexSettings",
    "SearchSettings",
    "SyncEndpoint",
    "SyncSettings",
]
