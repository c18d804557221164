# specialist_agent/config.py
"""
Configuration for the Specialist Agent RAG service.

This file centralizes all tunable parameters for the retrieval pipeline.
Every value can be overridden through an environment variable (or a .env file)
without code modifications.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, default))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, default))


# ========== DOCUMENT PROCESSING ==========

# Chunk configuration (characters, not words)
CHUNK_SIZE = _env_int("CHUNK_SIZE", 500)
CHUNK_OVERLAP = _env_int("CHUNK_OVERLAP", 100)  # shared tail between neighbours

# File upload limits
MAX_FILE_SIZE_MB = _env_int("MAX_FILE_SIZE_MB", 10)
MAX_FILES_PER_REQUEST = _env_int("MAX_FILES_PER_REQUEST", 10)
ALLOWED_FILE_EXTENSIONS = [".txt", ".md", ".pdf", ".docx"]

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "storage/uploads")


# ========== EMBEDDING CONFIGURATION ==========

# Any OpenAI-compatible endpoint works (e.g. Ollama at http://localhost:11434/v1)
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL") or None

EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")

# Small batches keep memory flat on constrained embedding backends
EMBED_BATCH_SIZE = _env_int("EMBED_BATCH_SIZE", 5)

EMBEDDING_TIMEOUT_SECONDS = _env_float("EMBEDDING_TIMEOUT_SECONDS", 60.0)


# ========== VECTOR INDEX CONFIGURATION ==========

# "auto" tries Qdrant first and falls back to the local store,
# "qdrant" and "local" force a backend.
VECTOR_BACKEND = os.getenv("VECTOR_BACKEND", "auto").lower()

QDRANT_URL = os.getenv("QDRANT_URL", "http://localhost:6333")
QDRANT_API_KEY = os.getenv("QDRANT_API_KEY") or None
QDRANT_TIMEOUT_SECONDS = _env_float("QDRANT_TIMEOUT_SECONDS", 10.0)

COLLECTION_NAME = os.getenv("COLLECTION_NAME", "specialist-agent")

# Snapshot of the in-process fallback store
VECTOR_STORAGE_PATH = os.getenv("VECTOR_STORAGE_PATH", "vector_storage.json")


# ========== RETRIEVAL CONFIGURATION ==========

TOP_K = _env_int("TOP_K", 5)  # Number of chunks to retrieve per question


# ========== CONVERSATION CONTEXT ==========

CONTEXT_WINDOW_LENGTH = _env_int("CONTEXT_WINDOW_LENGTH", 10)  # messages
CONTEXT_MAX_TOKENS = _env_int("CONTEXT_MAX_TOKENS", 4000)  # estimated tokens

# Rolling summary injected into prompts
SUMMARY_MESSAGE_COUNT = 5
SUMMARY_CONTENT_CHARS = 100

SESSION_MAX_AGE_HOURS = _env_int("SESSION_MAX_AGE_HOURS", 24)


# ========== LLM CONFIGURATION ==========

CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")

CHAT_TEMPERATURE = _env_float("CHAT_TEMPERATURE", 0.2)
CHAT_MAX_TOKENS = _env_int("CHAT_MAX_TOKENS", 800)
CHAT_TIMEOUT_SECONDS = _env_float("CHAT_TIMEOUT_SECONDS", 120.0)


# ========== OBSERVABILITY ==========

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")
METRICS_PATH = os.getenv("METRICS_PATH", "storage/metrics.json")


# ========== DESIGN TRADE-OFFS (DOCUMENTED) ==========

"""
TRADE-OFF DECISIONS:

1. CHUNK_SIZE = 500 characters, CHUNK_OVERLAP = 100:
   - Smaller chunks keep memory low on local embedding models
   - 100 characters of overlap keeps a sentence straddling a cut retrievable

2. EMBED_BATCH_SIZE = 5:
   - Requests run in parallel inside a batch, batches run one after another
   - Never submits the whole corpus as one concurrent burst

3. Local fallback store (brute-force cosine + JSON snapshot):
   - Trade-off: exact results, zero infrastructure
   - Limitation: linear scan, whole snapshot rewritten on every addition

4. Conversation memory bounded twice:
   - CONTEXT_WINDOW_LENGTH caps message count
   - CONTEXT_MAX_TOKENS caps the chars/4 token estimate (floor of 2 messages)
"""
