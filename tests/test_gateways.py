# tests/test_gateways.py
import threading
import time
from types import SimpleNamespace

import httpx
import openai
import pytest

from specialist_agent.exceptions import EmbeddingError, LLMError, UpstreamTimeoutError
from specialist_agent.llm.client import LLMClient
from specialist_agent.memory.embedder import Embedder


def timeout_error():
    return openai.APITimeoutError(request=httpx.Request("POST", "http://localhost/v1"))


class FakeEmbeddingsAPI:
    """Mimics client.embeddings with an in-flight counter."""

    def __init__(self, delay=0.0):
        self.delay = delay
        self.inputs = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.error = None
        self._lock = threading.Lock()

    def create(self, model, input, timeout=None):

        with self._lock:
            self.inputs.append(input)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)

        try:
            time.sleep(self.delay)

            if self.error is not None:
                raise self.error

            return SimpleNamespace(data=[SimpleNamespace(embedding=[float(len(input)), 1.0])])

        finally:
            with self._lock:
                self.in_flight -= 1


class FakeChatAPI:

    def __init__(self, content=" The answer. "):
        self.content = content
        self.requests = []
        self.error = None

    def create(self, **kwargs):

        self.requests.append(kwargs)

        if self.error is not None:
            raise self.error

        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))]
        )


@pytest.fixture
def embeddings_api():
    return FakeEmbeddingsAPI()


@pytest.fixture
def gateway(embeddings_api):
    return Embedder(client=SimpleNamespace(embeddings=embeddings_api), model="test-embed", batch_size=5)


class TestEmbedder:
    """Embedding gateway batching and error mapping."""

    def test_embed_single(self, gateway, embeddings_api):
        assert gateway.embed("abc") == [3.0, 1.0]
        assert embeddings_api.inputs == ["abc"]

    def test_batch_preserves_order(self, gateway):
        texts = ["a" * n for n in range(1, 13)]

        vectors = gateway.embed_batch(texts)

        assert [v[0] for v in vectors] == [float(n) for n in range(1, 13)]

    def test_batch_concurrency_bounded(self, embeddings_api):
        embeddings_api.delay = 0.02
        gateway = Embedder(client=SimpleNamespace(embeddings=embeddings_api), batch_size=3)

        gateway.embed_batch(["x"] * 10)

        assert len(embeddings_api.inputs) == 10
        assert embeddings_api.max_in_flight <= 3

    def test_empty_batch(self, gateway, embeddings_api):
        assert gateway.embed_batch([]) == []
        assert embeddings_api.inputs == []

    def test_failure_aborts_batch(self, gateway, embeddings_api):
        embeddings_api.error = openai.OpenAIError("boom")

        with pytest.raises(EmbeddingError):
            gateway.embed_batch(["a", "b", "c"])

    def test_timeout_is_distinct(self, gateway, embeddings_api):
        embeddings_api.error = timeout_error()

        with pytest.raises(UpstreamTimeoutError):
            gateway.embed("slow")

    def test_empty_response(self, embeddings_api):
        api = SimpleNamespace(create=lambda **kwargs: SimpleNamespace(data=[]))
        gateway = Embedder(client=SimpleNamespace(embeddings=api))

        with pytest.raises(EmbeddingError):
            gateway.embed("x")

    def test_invalid_batch_size(self, embeddings_api):
        with pytest.raises(ValueError):
            Embedder(client=SimpleNamespace(embeddings=embeddings_api), batch_size=0)


class TestLLMClient:
    """Chat gateway."""

    def make_client(self, chat_api):
        return LLMClient(
            client=SimpleNamespace(chat=SimpleNamespace(completions=chat_api)),
            model="test-chat",
            timeout=5,
        )

    def test_generate_returns_stripped_text(self):
        chat_api = FakeChatAPI()

        answer = self.make_client(chat_api).generate("Question: why?")

        assert answer == "The answer."
        request = chat_api.requests[0]
        assert request["model"] == "test-chat"
        assert request["timeout"] == 5
        assert request["messages"][-1] == {"role": "user", "content": "Question: why?"}

    def test_api_error_becomes_llm_error(self):
        chat_api = FakeChatAPI()
        chat_api.error = openai.OpenAIError("rate limited")

        with pytest.raises(LLMError):
            self.make_client(chat_api).generate("x")

    def test_timeout_becomes_upstream_timeout(self):
        chat_api = FakeChatAPI()
        chat_api.error = timeout_error()

        with pytest.raises(UpstreamTimeoutError):
            self.make_client(chat_api).generate("x")

    def test_empty_content_is_an_error(self):
        with pytest.raises(LLMError):
            self.make_client(FakeChatAPI(content=None)).generate("x")
