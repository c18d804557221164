# specialist_agent/memory/local_store.py

"""
In-process brute-force vector store with a JSON snapshot.

Used when the external vector service is unavailable. Every record is
scored against the query (exact cosine similarity), and the full state is
rewritten to disk after each addition.

Snapshot layout (parallel arrays):

    {
        "documents":  [str, ...],
        "embeddings": [[float, ...], ...],
        "metadatas":  [{...}, ...],
        "ids":        [str, ...],
        "collectionName": str
    }
"""

import json
import logging
import os
import tempfile
import threading
from typing import List, Optional, Sequence

import numpy as np

from specialist_agent.config import (
    COLLECTION_NAME,
    VECTOR_STORAGE_PATH,
)
from specialist_agent.exceptions import (
    DimensionMismatchError,
    PersistenceError,
)
from specialist_agent.memory.backend import VectorBackend, VectorRecord
from specialist_agent.memory.schemas import SearchResult

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    dot(a, b) / (|a| * |b|).

    Vectors of different length, or with zero magnitude, score 0.
    """

    if len(a) != len(b):
        return 0.0

    vec_a = np.asarray(a, dtype="float64")
    vec_b = np.asarray(b, dtype="float64")

    norm = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)

    if norm == 0:
        return 0.0

    return float(np.dot(vec_a, vec_b) / norm)


class LocalVectorStore(VectorBackend):

    name = "local"

    def __init__(
        self,
        storage_path: str = VECTOR_STORAGE_PATH,
        collection_name: str = COLLECTION_NAME,
    ):

        self._storage_path = storage_path
        self._collection_name = collection_name

        self._documents: List[str] = []
        self._embeddings: List[List[float]] = []
        self._metadatas: List[dict] = []
        self._ids: List[str] = []

        # guards the parallel arrays and the snapshot write
        self._lock = threading.RLock()

    @property
    def storage_path(self) -> str:
        return self._storage_path

    @property
    def collection_name(self) -> str:
        return self._collection_name

    # ============================================================
    # LIFECYCLE
    # ============================================================

    def initialize(self):
        """
        Restore state from the snapshot. Missing or corrupt → start empty.
        """

        with self._lock:

            loaded = self._load_from_disk()

            logger.info(
                "Local vector store initialized",
                extra={
                    "storage_path": self._storage_path,
                    "records": len(self._ids),
                    "restored": loaded,
                },
            )

    def close(self):

        with self._lock:
            self._save_to_disk()

    # ============================================================
    # WRITE PATH
    # ============================================================

    def add(self, records: List[VectorRecord]):

        if not records:
            return

        with self._lock:

            self._check_dimensions(records)

            for record in records:

                self._ids.append(record.id)
                self._documents.append(record.content)
                self._embeddings.append(list(record.embedding))
                self._metadatas.append(dict(record.metadata))

            # write-through: durable copy follows every batch
            self._save_to_disk()

        logger.info(
            "Records added to local vector store",
            extra={"added": len(records), "records": len(self._ids)},
        )

    def clear(self):

        with self._lock:

            self._documents = []
            self._embeddings = []
            self._metadatas = []
            self._ids = []

            self._save_to_disk()

        logger.info("Local vector store cleared")

    def _check_dimensions(self, records: List[VectorRecord]):

        expected = self.dimension

        for record in records:

            if expected is None:
                expected = len(record.embedding)

            if len(record.embedding) != expected:
                raise DimensionMismatchError(
                    f"Embedding dimension {len(record.embedding)} does not "
                    f"match index dimension {expected}"
                )

    # ============================================================
    # READ PATH
    # ============================================================

    def search(self, embedding: List[float], k: int) -> List[SearchResult]:

        if k <= 0:
            return []

        # snapshot under the lock, score outside it
        with self._lock:
            documents = list(self._documents)
            embeddings = list(self._embeddings)
            metadatas = list(self._metadatas)

        results = []

        for content, stored, metadata in zip(documents, embeddings, metadatas):

            similarity = cosine_similarity(embedding, stored)

            results.append(
                SearchResult(
                    content=content,
                    metadata=dict(metadata),
                    similarity=similarity,
                    distance=1 - similarity,
                )
            )

        # stable sort keeps insertion order among equal scores
        results.sort(key=lambda r: r.similarity, reverse=True)

        return results[:k]

    def count(self) -> int:

        with self._lock:
            return len(self._ids)

    @property
    def dimension(self) -> Optional[int]:

        with self._lock:

            if not self._embeddings:
                return None

            return len(self._embeddings[0])

    # ============================================================
    # PERSISTENCE
    # ============================================================

    def _load_from_disk(self) -> bool:

        if not os.path.exists(self._storage_path):

            logger.info(
                "No existing vector snapshot found, starting fresh",
                extra={"storage_path": self._storage_path},
            )

            return False

        try:

            with open(self._storage_path, "r", encoding="utf-8") as f:
                data = json.load(f)

            documents = list(data.get("documents") or [])
            embeddings = [list(map(float, e)) for e in data.get("embeddings") or []]
            metadatas = list(data.get("metadatas") or [])
            ids = list(data.get("ids") or [])

            if not len(documents) == len(embeddings) == len(metadatas) == len(ids):
                raise ValueError("Snapshot arrays have different lengths")

            if not all(isinstance(d, str) for d in documents):
                raise ValueError("Snapshot holds a non-text document")

            if not all(isinstance(m, dict) for m in metadatas):
                raise ValueError("Snapshot holds a non-object metadata entry")

            if not all(isinstance(i, str) for i in ids):
                raise ValueError("Snapshot holds a non-text id")

            if len({len(e) for e in embeddings}) > 1:
                raise ValueError("Snapshot embeddings have different dimensions")

        except (OSError, ValueError, TypeError, AttributeError) as e:

            logger.warning(
                "Vector snapshot unreadable, starting empty",
                extra={"storage_path": self._storage_path, "error": str(e)},
            )

            return False

        self._documents = documents
        self._embeddings = embeddings
        self._metadatas = metadatas
        self._ids = ids
        self._collection_name = data.get("collectionName") or self._collection_name

        logger.info(
            "Vector snapshot loaded",
            extra={"storage_path": self._storage_path, "records": len(ids)},
        )

        return True

    def _save_to_disk(self):
        """
        Rewrite the full snapshot. Failures are logged, never raised:
        in-memory state stays authoritative for the running process.
        """

        try:

            self._write_snapshot()

        except PersistenceError as e:

            logger.error(
                "Vector snapshot write failed",
                extra={"storage_path": self._storage_path, "error": str(e)},
                exc_info=True,
            )

    def _write_snapshot(self):

        data = {
            "documents": self._documents,
            "embeddings": self._embeddings,
            "metadatas": self._metadatas,
            "ids": self._ids,
            "collectionName": self._collection_name,
        }

        directory = os.path.dirname(os.path.abspath(self._storage_path))

        tmp_path = None

        try:

            os.makedirs(directory, exist_ok=True)

            fd, tmp_path = tempfile.mkstemp(
                dir=directory,
                prefix=".vector_storage.",
                suffix=".tmp",
            )

            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)

            os.replace(tmp_path, self._storage_path)

        except (OSError, TypeError, ValueError) as e:

            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)

            raise PersistenceError(f"Failed to write vector snapshot: {e}") from e
