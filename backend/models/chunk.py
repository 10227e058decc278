"""Chunk data models."""
from dataclasses import dataclass, asdict
from typing import Any, Dict


@dataclass(frozen=True)
class Chunk:
    """An addressable, titled span of a document's text."""
    id: str  # "chunk-preamble", "chunk-article-{i}" or "chunk-{offset}"
    title: str
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chunk":
        return cls(id=data["id"], title=data["title"], content=data["content"])


@dataclass
class ScoredChunk:
    """Chunk with its term-presence score for a single question."""
    chunk: Chunk
    score: int
