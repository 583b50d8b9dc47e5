"""Core building blocks shared across the package."""

from .errors import (
    CacheInvalidated,
    DocVaultError,
    EntryExpired,
    FetchFailure,
    ParseFailure,
    StorageFailure,
    VersionMismatch,
)

__all__ = [
    "DocVaultError",
    "FetchFailure",
    "ParseFailure",
    "StorageFailure",
    "CacheInvalidated",
    "VersionMismatch",
    "EntryExpired",
]
