"""Data types shared by the cache and ingestion layers."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class TagKind(str, Enum):
    PAGE = "page"
    ARTICLE = "article"


@dataclass(frozen=True)
class StructuralTag:
    """Page number or article label attached to a page or chunk."""

    kind: TagKind
    value: Union[int, str]

    @property
    def marker(self) -> str:
        return f"[{self.kind.name}_{self.value}]"

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> "StructuralTag":
        return cls(kind=TagKind(data["kind"]), value=data["value"])


@dataclass(frozen=True)
class Chunk:
    """A contiguous, addressable span of a document's text."""

    id: str
    content: str
    source_document: str
    sequence_index: int
    structural_tag: Optional[StructuralTag] = None

    @property
    def size(self) -> int:
        return len(self.content)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "source_document": self.source_document,
            "sequence_index": self.sequence_index,
            "structural_tag": self.structural_tag.to_dict() if self.structural_tag else None,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Chunk":
        tag = data.get("structural_tag")
        return cls(
            id=data["id"],
            content=data["content"],
            source_document=data["source_document"],
            sequence_index=data["sequence_index"],
            structural_tag=StructuralTag.from_dict(tag) if tag else None,
        )
