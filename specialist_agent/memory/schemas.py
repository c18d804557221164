# specialist_agent/memory/schemas.py
"""
Domain records flowing through the pipeline.

loader → Document → chunker → Chunk → vector index → SearchResult
conversation manager → Message
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentType(str, Enum):
    TEXT = "text"
    PDF = "pdf"
    DOCX = "docx"
    MARKDOWN = "markdown"


class Document(BaseModel):
    """A loaded source document. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    content: str
    source: str
    title: str
    type: DocumentType = DocumentType.TEXT
    pages: Optional[int] = None


class Chunk(BaseModel):
    """A bounded substring of a Document, tagged with its position."""

    model_config = ConfigDict(frozen=True)

    content: str
    source: str
    title: str
    type: DocumentType = DocumentType.TEXT
    chunk_index: int = 0
    original_doc_index: int = 0

    def record_metadata(self) -> Dict[str, Any]:
        """Metadata stored next to the embedding."""
        return {
            "source": self.source or "unknown",
            "title": self.title or "untitled",
            "chunk_index": self.chunk_index,
        }


class SearchResult(BaseModel):
    """One similarity search hit."""

    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    similarity: float
    distance: float


class SourceReference(BaseModel):
    """Citation returned with an answer and stored on assistant messages."""

    source: str
    title: str
    similarity: float


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    """One conversation turn. Append-only inside its session."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def sources(self) -> List[Dict[str, Any]]:
        return self.metadata.get("sources", [])
