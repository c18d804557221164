# specialist_agent/models.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from specialist_agent.config import SESSION_MAX_AGE_HOURS


class APIModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# QUERY
# ============================================================

class QueryRequest(APIModel):
    """Question about the indexed documents, optionally within a session."""
    question: Optional[str] = None
    session_id: Optional[str] = None


class SourceInfo(APIModel):
    source: str
    title: str
    similarity: float


class QueryResponse(APIModel):
    answer: str
    sources: List[SourceInfo]
    session_id: Optional[str] = None


# ============================================================
# CONVERSATION
# ============================================================

class ContextConfig(APIModel):
    max_context_length: int
    max_tokens: int
    active_conversations: Optional[int] = None


class ContextConfigRequest(APIModel):
    """New context window bounds. Both must be positive."""
    max_context_length: int
    max_tokens: int


class ConversationStartResponse(APIModel):
    session_id: str
    message: str = "Conversation started"
    config: ContextConfig


class ConfigUpdateResponse(APIModel):
    message: str = "Configuration updated successfully"
    config: ContextConfig


class MessageInfo(APIModel):
    id: str
    role: str
    content: str
    timestamp: datetime
    sources: List[Dict[str, Any]] = Field(default_factory=list)


class ConversationStats(APIModel):
    message_count: int
    created_at: datetime
    last_accessed: datetime
    estimated_tokens: int


class ConversationHistoryResponse(APIModel):
    """Messages of a session (no system preamble). stats is null for unknown ids."""
    session_id: str
    messages: List[MessageInfo]
    stats: Optional[ConversationStats] = None


class StatusResponse(APIModel):
    message: str
    session_id: Optional[str] = None


class CleanupRequest(APIModel):
    max_age_hours: float = Field(SESSION_MAX_AGE_HOURS, gt=0)


class CleanupResponse(APIModel):
    message: str
    removed: int


# ============================================================
# INGESTION
# ============================================================

class SkippedFileResponse(APIModel):
    source: str
    reason: str


class IngestResponse(APIModel):
    message: str = "Documents ingested successfully"
    source: str
    documents_loaded: int
    chunks_created: int
    processed_files: List[str]
    skipped_files: List[SkippedFileResponse]


# ============================================================
# SYSTEM
# ============================================================

class HealthResponse(APIModel):
    """Health check response."""
    status: str
    backend: str
    collection: str
    total_vectors: int
    active_conversations: int
