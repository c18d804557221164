# specialist_agent/memory/backend.py
"""
Storage strategy shared by the two vector index backends.

Both implementations satisfy the same add/search contract, so the
VectorIndex picks one at startup and never checks which it holds again.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from specialist_agent.memory.schemas import SearchResult


class VectorRecord(BaseModel):
    """A stored (text, embedding, metadata) triple."""

    id: str
    content: str
    embedding: List[float]
    metadata: Dict[str, Any] = Field(default_factory=dict)


class VectorBackend(ABC):

    name: str = "abstract"

    @abstractmethod
    def add(self, records: List[VectorRecord]) -> None:
        """Append records. Records are never updated in place."""

    @abstractmethod
    def search(self, embedding: List[float], k: int) -> List[SearchResult]:
        """Top-k records by descending cosine similarity."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored records."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every record."""

    def connect(self) -> None:
        """Verify the backing store is reachable. Optional."""

    def close(self) -> None:
        """Release resources / flush state. Optional."""
