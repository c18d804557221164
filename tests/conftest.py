# tests/conftest.py
import re
import threading
import zlib
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from specialist_agent.exceptions import EmbeddingError, LLMError
from specialist_agent.main import create_app
from specialist_agent.memory.conversation import ConversationContextManager
from specialist_agent.memory.store import VectorIndex
from specialist_agent.observability.metrics import MetricsTracker
from specialist_agent.observability.posthog_client import PostHogClient
from specialist_agent.services import ServiceContainer


FAKE_DIMENSION = 256


class FakeEmbedder:
    """
    Deterministic bag-of-words embedder.

    Each lowercase word bumps one of FAKE_DIMENSION buckets, so texts
    sharing words have positive cosine similarity.
    """

    def __init__(self, dimension: int = FAKE_DIMENSION):
        self.dimension = dimension
        self.calls = []
        self.fail = False
        self._lock = threading.Lock()

    def embed(self, text):

        with self._lock:
            self.calls.append(text)

        if self.fail:
            raise EmbeddingError("embedding service down")

        vector = [0.0] * self.dimension

        for word in re.findall(r"[a-z]+", text.lower()):
            vector[zlib.crc32(word.encode()) % self.dimension] += 1.0

        return vector

    def embed_batch(self, texts):
        return [self.embed(t) for t in texts]


class FakeLLM:
    """Chat gateway stand-in that records prompts."""

    def __init__(self, answer: str = "Cats and dogs are both mammals."):
        self.answer = answer
        self.prompts = []
        self.error = None

    def generate(self, prompt):

        self.prompts.append(prompt)

        if self.error is not None:
            raise self.error

        return self.answer


class FakeClock:
    """Manually advanced UTC clock for age-based behaviour."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def failing_llm():
    llm = FakeLLM()
    llm.error = LLMError("chat service down")
    return llm


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage_path(tmp_path):
    """Snapshot location isolated per test."""
    return str(tmp_path / "vector_storage.json")


@pytest.fixture
def index(embedder, storage_path):
    """Initialized local-backend vector index."""
    index = VectorIndex(embedder, mode="local", storage_path=storage_path)
    index.initialize()
    return index


@pytest.fixture
def conversations(clock):
    return ConversationContextManager(clock=clock)


@pytest.fixture
def services(embedder, index, conversations, llm, monkeypatch):
    """
    Service container wired entirely with in-process fakes.
    """
    monkeypatch.delenv("POSTHOG_API_KEY", raising=False)

    return ServiceContainer(
        embedder=embedder,
        index=index,
        conversations=conversations,
        llm_client=llm,
        metrics=MetricsTracker(path=None),
        posthog=PostHogClient(),
        configure_logging=False,
    )


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr("specialist_agent.api.routes.UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def client(services, upload_dir):
    """
    FastAPI test client.

    Used as a context manager so startup and shutdown events run.
    """
    with TestClient(create_app(services)) as test_client:
        yield test_client


@pytest.fixture
def lenient_client(services, upload_dir):
    """
    Test client that returns 500 responses instead of re-raising.
    """
    app = create_app(services)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
