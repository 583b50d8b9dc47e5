"""Cache entry record and payload fingerprinting."""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Optional


def serialize_payload(payload: Any) -> str:
    """Canonical JSON form of a payload (stable key order, UTF-8 text)."""
    return json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def compute_checksum(payload: Any) -> str:
    """SHA-256 hex digest of the canonical payload serialization."""
    return hashlib.sha256(serialize_payload(payload).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CacheEntry:
    """A versioned, checksummed snapshot of a named resource."""

    key: str
    payload: Any
    version: str
    checksum: str
    created_at: float
    last_accessed: Optional[float] = None
    size: int = 0

    def age(self, now: float) -> float:
        return now - self.created_at

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "version": self.version,
            "checksum": self.checksum,
            "created_at": self.created_at,
            "last_accessed": self.last_accessed,
            "size": self.size,
        }
