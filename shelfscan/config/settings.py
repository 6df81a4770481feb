# Path: shelfscan/config/settings.py
# Purpose: Provide typed application configuration models.
# Layer: config.
# Details: Centralizes settings for embedders, search thresholds, indexing batches, capture, and sync.

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator


class EmbedderSettings(BaseModel):
    """Settings describing which embedder implementation to use and how to feed it."""

    name: str = Field(default="feature_print", description="Identifier of the embedder implementation.")
    dim: int = Field(default=768, description="Length of every feature embedding.")
    target_size: int = Field(default=100, description="Side of the square canvas images are letterboxed into.")
    salient_margin: int = Field(default=16, description="Pixels added around salient regions before cropping.")


class SearchSettings(BaseModel):
    """Operating points of the image and text search paths."""

    candidate_count: int = Field(default=10, description="Nearest-neighbor candidates requested per vector query.")
    product_max_distance: float = Field(default=0.25, description="Maximum cosine distance for product matches.")
    face_max_distance: float = Field(default=0.1, description="Exclusive cosine distance bound for face matches.")
    relative_distance_factor: float = Field(
        default=1.40, description="Candidates farther than this multiple of the best distance are dropped."
    )
    zoom_factors: List[float] = Field(default_factory=lambda: [1.0, 2.0], description="Zoom levels for product search.")
    max_workers: int = Field(default=3, description="Worker threads used to fan out the image search paths.")


class IndexSettings(BaseModel):
    """Settings for the background vector index maintenance."""

    batch_size: int = Field(default=10, description="Stale entries processed per committed batch.")
    max_workers: int = Field(default=2, description="Indexes that may drain in parallel.")


class CaptureSettings(BaseModel):
    """Settings for the camera frame pipeline."""

    capture_interval: float = Field(default=0.2, description="Minimum seconds between accepted frames.")


class SyncEndpoint(BaseModel):
    """Replication endpoint owned by the external sync collaborator."""

    url: str = Field(description="WebSocket URL of the replication endpoint.")
    username: Optional[str] = Field(default=None, description="Basic auth user name.")
    password: Optional[str] = Field(default=None, description="Basic auth password.")

    @field_validator("url")
    @classmethod
    def _require_websocket_scheme(cls, value: str) -> str:
        if urlparse(value).scheme not in {"ws", "wss"}:
            raise ValueError("Sync endpoint URL must use the ws or wss scheme.")
        return value

    @property
    def has_credentials(self) -> bool:
        """Return True when both user name and password are configured."""

        return self.username is not None and self.password is not None


class SyncSettings(BaseModel):
    """Settings for the optional replication channel."""

    endpoint: Optional[SyncEndpoint] = Field(default=None, description="Endpoint to pull catalog changes from.")


class AppSettings(BaseModel):
    """Top-level application settings shared across services and interfaces."""

    database_path: str = Field(default="storage/shelfscan.sqlite3", description="Path to the document store file.")
    catalog_folder: Path = Field(default=Path("storage/catalog"), description="Folder holding catalog images.")
    log_level: str = Field(default="INFO", description="Verbosity level for application logs.")
    api_enabled: bool = Field(default=False, description="Flag indicating if the HTTP API should be initialized.")
    embedder: EmbedderSettings = Field(default_factory=EmbedderSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    indexing: IndexSettings = Field(default_factory=IndexSettings)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)

    @classmethod
    def from_env(cls) -> "AppSettings":
        """Instantiate settings, applying SHELFSCAN_* environment overrides when present."""

        settings = cls()
        env = os.environ
        if "SHELFSCAN_DATABASE_PATH" in env:
            settings.database_path = env["SHELFSCAN_DATABASE_PATH"]
        if "SHELFSCAN_CATALOG_FOLDER" in env:
            settings.catalog_folder = Path(env["SHELFSCAN_CATALOG_FOLDER"])
        if "SHELFSCAN_LOG_LEVEL" in env:
            settings.log_level = env["SHELFSCAN_LOG_LEVEL"]
        if env.get("SHELFSCAN_SYNC_URL"):
            settings.sync.endpoint = SyncEndpoint(
                url=env["SHELFSCAN_SYNC_URL"],
                username=env.get("SHELFSCAN_SYNC_USERNAME"),
                password=env.get("SHELFSCAN_SYNC_PASSWORD"),
            )
        return settings


__all__ = [
    "AppSettings",
    "CaptureSettings",
    "EmbedderSettings",
    "IndexSettings",
    "SearchSettings",
    "SyncEndpoint",
    "SyncSettings",
]
