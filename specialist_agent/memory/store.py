import logging
import threading
import uuid
from typing import Callable, List, Optional, Sequence

from specialist_agent.config import (
    COLLECTION_NAME,
    TOP_K,
    VECTOR_BACKEND,
    VECTOR_STORAGE_PATH,
)
from specialist_agent.exceptions import VectorDBError
from specialist_agent.memory.backend import VectorBackend, VectorRecord
from specialist_agent.memory.local_store import LocalVectorStore
from specialist_agent.memory.schemas import Chunk, SearchResult


logger = logging.getLogger(__name__)


BACKEND_AUTO = "auto"
BACKEND_QDRANT = "qdrant"
BACKEND_LOCAL = "local"


def _default_remote_factory(collection_name: str) -> VectorBackend:

    from specialist_agent.memory.qdrant_client import QdrantVectorStore

    return QdrantVectorStore(collection_name=collection_name)


class VectorIndex:
    """
    Chunk store with k-nearest-neighbour search by cosine similarity.

    The backend is chosen once, in initialize():

        auto   → try the external service, fall back to the local store
        qdrant → external service only (failure is fatal)
        local  → local store only
    """

    def __init__(
        self,
        embedder,
        mode: str = VECTOR_BACKEND,
        storage_path: str = VECTOR_STORAGE_PATH,
        collection_name: str = COLLECTION_NAME,
        remote_factory: Optional[Callable[[str], VectorBackend]] = None,
    ):

        if mode not in (BACKEND_AUTO, BACKEND_QDRANT, BACKEND_LOCAL):
            raise ValueError(f"Invalid vector backend: {mode}")

        self._embedder = embedder
        self._mode = mode
        self._storage_path = storage_path
        self._collection_name = collection_name
        self._remote_factory = remote_factory or _default_remote_factory

        self._backend: Optional[VectorBackend] = None

        # serializes writes (and the snapshot flush they trigger)
        self._write_lock = threading.Lock()

    # ============================================================
    # INITIALIZATION
    # ============================================================

    def initialize(self) -> str:
        """
        Select the backend for the process lifetime. Returns its name.
        """

        if self._backend is not None:
            return self._backend.name

        if self._mode != BACKEND_LOCAL:

            try:

                remote = self._remote_factory(self._collection_name)
                remote.connect()

                self._backend = remote

            except Exception as e:

                if self._mode == BACKEND_QDRANT:

                    if isinstance(e, VectorDBError):
                        raise

                    raise VectorDBError(f"Vector service unavailable: {e}") from e

                logger.warning(
                    "Vector service not available, using local vector store",
                    extra={"error": str(e)},
                )

        if self._backend is None:

            local = LocalVectorStore(
                storage_path=self._storage_path,
                collection_name=self._collection_name,
            )
            local.initialize()

            self._backend = local

        logger.info(
            "VectorIndex initialized",
            extra={
                "backend": self._backend.name,
                "collection": self._collection_name,
            },
        )

        return self._backend.name

    @property
    def backend(self) -> VectorBackend:

        if self._backend is None:
            raise RuntimeError("VectorIndex used before initialize()")

        return self._backend

    @property
    def backend_name(self) -> Optional[str]:
        return self._backend.name if self._backend else None

    # ============================================================
    # WRITE PATH
    # ============================================================

    def add_documents(self, chunks: Sequence[Chunk]) -> int:
        """
        Embed and store chunks. All-or-nothing: an embedding failure
        aborts the call before anything is written.
        """

        if not chunks:
            return 0

        backend = self.backend

        embeddings = self._embedder.embed_batch([c.content for c in chunks])

        records = [
            VectorRecord(
                id=str(uuid.uuid4()),
                content=chunk.content,
                embedding=embedding,
                metadata=chunk.record_metadata(),
            )
            for chunk, embedding in zip(chunks, embeddings)
        ]

        with self._write_lock:
            backend.add(records)

        logger.info(
            "Chunks indexed",
            extra={"backend": backend.name, "chunks": len(records)},
        )

        return len(records)

    def clear(self):

        with self._write_lock:
            self.backend.clear()

    # ============================================================
    # READ PATH
    # ============================================================

    def similarity_search(self, query: str, k: int = TOP_K) -> List[SearchResult]:

        backend = self.backend

        if k <= 0 or backend.count() == 0:
            return []

        embedding = self._embedder.embed(query)

        results = backend.search(embedding, k)

        logger.info(
            "Similarity search completed",
            extra={
                "backend": backend.name,
                "k": k,
                "results": len(results),
                "top_similarity": results[0].similarity if results else None,
            },
        )

        return results

    def get_stats(self) -> dict:

        backend = self.backend

        return {
            "backend": backend.name,
            "collection": self._collection_name,
            "total_vectors": backend.count(),
        }

    # ============================================================
    # TEARDOWN
    # ============================================================

    def close(self):

        if self._backend is None:
            return

        with self._write_lock:
            self._backend.close()

        logger.info("VectorIndex closed", extra={"backend": self._backend.name})
