from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class StorageError(RuntimeError):
    """Raised when reading or writing settings in SQLite fails."""


class ResolutionError(RuntimeError):
    """Raised when the resolver service call fails or returns a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NormalizationError(RuntimeError):
    """Raised when a resolver payload is not a JSON object or array."""


class AssetFetchError(RuntimeError):
    """Raised when a media asset cannot be fetched or saved."""

    def __init__(self, message: str, *, url: str) -> None:
        super().__init__(message)
        self.url = url
