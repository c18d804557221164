import logging
from typing import List, Optional

from qdrant_client import QdrantClient
from qdrant_client.http.models import (
    Distance,
    PointStruct,
    VectorParams,
)

from specialist_agent.config import (
    COLLECTION_NAME,
    QDRANT_API_KEY,
    QDRANT_TIMEOUT_SECONDS,
    QDRANT_URL,
)
from specialist_agent.exceptions import VectorDBError
from specialist_agent.memory.backend import VectorBackend, VectorRecord
from specialist_agent.memory.schemas import SearchResult

logger = logging.getLogger(__name__)


class QdrantVectorStore(VectorBackend):
    """
    External vector service backend.

    The collection is created on first write, once the embedding
    dimension is known.
    """

    name = "qdrant"

    def __init__(
        self,
        client: Optional[QdrantClient] = None,
        collection_name: str = COLLECTION_NAME,
    ):

        self._client = client or QdrantClient(
            url=QDRANT_URL,
            api_key=QDRANT_API_KEY,
            timeout=int(QDRANT_TIMEOUT_SECONDS),
        )

        self._collection = collection_name

    @property
    def collection_name(self) -> str:
        return self._collection

    def connect(self):
        """
        Verifies the service answers. Raises VectorDBError otherwise.
        """

        try:

            exists = self._collection_exists()

        except Exception as e:

            raise VectorDBError(f"Failed to connect to Qdrant: {e}") from e

        logger.info(
            "Qdrant client initialized",
            extra={
                "collection": self._collection,
                "collection_exists": exists,
            },
        )

    def _collection_exists(self) -> bool:

        collections = self._client.get_collections().collections

        return any(
            c.name == self._collection
            for c in collections
        )

    def _ensure_collection(self, dim: int):

        if self._collection_exists():
            return

        self._client.create_collection(
            collection_name=self._collection,
            vectors_config=VectorParams(
                size=dim,
                distance=Distance.COSINE,
            ),
        )

        logger.info(
            "Qdrant collection created",
            extra={"collection": self._collection, "dimension": dim},
        )

    # ============================================================
    # BACKEND CONTRACT
    # ============================================================

    def add(self, records: List[VectorRecord]):

        if not records:
            return

        points = [
            PointStruct(
                id=record.id,
                vector=record.embedding,
                payload={
                    "content": record.content,
                    **record.metadata,
                },
            )
            for record in records
        ]

        try:

            self._ensure_collection(len(records[0].embedding))

            self._client.upsert(
                collection_name=self._collection,
                points=points,
                wait=True,
            )

        except Exception as e:

            logger.error(
                "Qdrant upsert failed",
                extra={"collection": self._collection, "error": str(e)},
            )

            raise VectorDBError(f"Qdrant upsert failed: {e}") from e

        logger.info(
            "Records added to Qdrant",
            extra={"collection": self._collection, "added": len(points)},
        )

    def search(self, embedding: List[float], k: int) -> List[SearchResult]:

        if k <= 0:
            return []

        try:

            if not self._collection_exists():
                return []

            hits = self._client.query_points(
                collection_name=self._collection,
                query=embedding,
                limit=k,
                with_payload=True,
            ).points

        except Exception as e:

            raise VectorDBError(f"Qdrant search failed: {e}") from e

        results = []

        for hit in hits:

            payload = dict(hit.payload or {})

            content = payload.pop("content", "")

            similarity = float(hit.score)

            results.append(
                SearchResult(
                    content=content,
                    metadata=payload,
                    similarity=similarity,
                    distance=1 - similarity,
                )
            )

        return results

    def count(self) -> int:

        try:

            if not self._collection_exists():
                return 0

            return self._client.count(
                collection_name=self._collection,
                exact=True,
            ).count

        except Exception as e:

            raise VectorDBError(f"Qdrant count failed: {e}") from e

    def clear(self):

        try:

            if self._collection_exists():
                self._client.delete_collection(collection_name=self._collection)

        except Exception as e:

            raise VectorDBError(f"Qdrant clear failed: {e}") from e

        logger.info("Qdrant collection cleared", extra={"collection": self._collection})

    def close(self):

        self._client.close()
