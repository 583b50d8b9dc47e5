"""
Error types raised by the cache and ingestion layers.

Fetch, parse and storage failures are caught per document by the
ingestion pipeline and recorded on the failed LoadResult; the
invalidation signals never leave the cache store.
"""


class DocVaultError(Exception):
    """Base class for all docvault errors."""


class FetchFailure(DocVaultError):
    """Source bytes for a document could not be obtained."""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Failed to fetch {location}: {reason}")


class ParseFailure(DocVaultError):
    """Bytes could not be turned into text, or the text is empty."""

    def __init__(self, document_id: str, reason: str):
        self.document_id = document_id
        self.reason = reason
        super().__init__(f"Failed to parse {document_id}: {reason}")


class StorageFailure(DocVaultError):
    """The cache backend failed to read or write."""

    def __init__(self, operation: str, key: str, reason: str):
        self.operation = operation
        self.key = key
        self.reason = reason
        super().__init__(f"Cache {operation} failed for '{key}': {reason}")


class CacheInvalidated(DocVaultError):
    """A stored entry is physically present but logically absent."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)


class VersionMismatch(CacheInvalidated):
    """Stored version differs from the expected one."""

    def __init__(self, key: str, stored: str, expected: str):
        super().__init__(key)
        self.stored = stored
        self.expected = expected
        self.args = (f"Version mismatch for '{key}': {stored} != {expected}",)


class EntryExpired(CacheInvalidated):
    """Stored entry outlived the cache ttl."""

    def __init__(self, key: str, age: float, ttl: float):
        super().__init__(key)
        self.age = age
        self.ttl = ttl
        self.args = (f"Entry '{key}' expired ({age:.0f}s > {ttl:.0f}s)",)
