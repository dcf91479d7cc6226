from __future__ import annotations

from .config import apply_env_overrides, load_config
from .config_schema import AppConfig
from .download import (
    AssetDownloader,
    AssetOutcome,
    BatchOutcome,
    BatchSession,
    BatchStatus,
    DirectorySink,
    batch_filename,
)
from .errors import (
    AssetFetchError,
    ConfigError,
    NormalizationError,
    ResolutionError,
    StorageError,
)
from .extract import extract_url
from .normalize import normalize
from .post import Author, Media, Post
from .resolver import PostResolver, resolve

__all__ = [
    "AppConfig",
    "AssetDownloader",
    "AssetFetchError",
    "AssetOutcome",
    "Author",
    "BatchOutcome",
    "BatchSession",
    "BatchStatus",
    "ConfigError",
    "DirectorySink",
    "Media",
    "NormalizationError",
    "Post",
    "PostResolver",
    "ResolutionError",
    "StorageError",
    "apply_env_overrides",
    "batch_filename",
    "extract_url",
    "load_config",
    "normalize",
    "resolve",
]
