# specialist_agent/memory/embedder.py

"""
Embedding gateway with rate-shaped batching.

Architecture contract:
chunker → embedder → vector index

Guarantees:
• One request per text, identical model for writes and queries
• Parallel inside a batch, sequential across batches
• Any failure aborts the whole call (no partial result)
• Timeouts surface as UpstreamTimeoutError
• Fully observable via logs
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

import openai
from openai import OpenAI

from specialist_agent.config import (
    EMBED_BATCH_SIZE,
    EMBEDDING_MODEL,
    EMBEDDING_TIMEOUT_SECONDS,
    OPENAI_BASE_URL,
)
from specialist_agent.exceptions import (
    EmbeddingError,
    UpstreamTimeoutError,
)

logger = logging.getLogger(__name__)


class Embedder:
    """
    Production-safe embedding generator.

    Responsibilities:
    • Call the embedding API (OpenAI or any compatible server)
    • Batch processing bounded by EMBED_BATCH_SIZE
    • Translate provider errors into the service's error kinds
    """

    # ============================================================
    # INITIALIZATION
    # ============================================================

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: str = EMBEDDING_MODEL,
        batch_size: int = EMBED_BATCH_SIZE,
        timeout: float = EMBEDDING_TIMEOUT_SECONDS,
    ):

        if batch_size <= 0:
            raise ValueError(f"Invalid embedding batch size: {batch_size}")

        self._model = model
        self._batch_size = batch_size
        self._timeout = timeout

        self._client = client or OpenAI(
            base_url=OPENAI_BASE_URL,
            timeout=timeout,
            max_retries=0,
        )

        logger.info(
            "Embedding gateway initialized",
            extra={
                "model": model,
                "batch_size": batch_size,
                "timeout_seconds": timeout,
            },
        )

    # ============================================================
    # PUBLIC API
    # ============================================================

    def embed(self, text: str) -> List[float]:
        """
        Embed a single text.
        """

        try:

            response = self._client.embeddings.create(
                model=self._model,
                input=text,
                timeout=self._timeout,
            )

        except openai.APITimeoutError as e:

            logger.error(
                "Embedding request timed out",
                extra={"model": self._model, "timeout_seconds": self._timeout},
            )

            raise UpstreamTimeoutError(
                f"Embedding request timed out after {self._timeout}s"
            ) from e

        except openai.OpenAIError as e:

            logger.error(
                "Embedding generation failed",
                extra={"model": self._model, "error": str(e)},
            )

            raise EmbeddingError(f"Embedding generation failed: {e}") from e

        if not response.data:
            raise EmbeddingError("Embedding service returned no vectors")

        return [float(value) for value in response.data[0].embedding]

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Embed many texts, preserving input order.

        Each batch of `batch_size` texts is issued concurrently; the next batch
        starts only when the previous one has fully completed. The first failure
        propagates and discards everything embedded so far.
        """

        if not texts:
            return []

        total = len(texts)

        logger.info(
            "Embedding started",
            extra={"texts": total, "batch_size": self._batch_size},
        )

        embeddings: List[List[float]] = []

        with ThreadPoolExecutor(max_workers=self._batch_size) as executor:

            # ====================================================
            # BATCH PROCESSING LOOP
            # ====================================================

            for start in range(0, total, self._batch_size):

                batch = texts[start:start + self._batch_size]

                try:

                    embeddings.extend(executor.map(self.embed, batch))

                except Exception:

                    logger.error(
                        "Embedding batch failed",
                        extra={
                            "batch_start": start,
                            "batch_end": start + len(batch),
                        },
                    )

                    raise

        logger.info(
            "Embedding completed",
            extra={
                "texts": total,
                "dimension": len(embeddings[0]) if embeddings else 0,
            },
        )

        return embeddings
