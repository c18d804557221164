# specialist_agent/observability/posthog_client.py

"""
Product analytics on top of the JSON logs.

Three events: documents ingested, question answered, request failed.
The request id is the distinct_id. Question text is never sent, only its
length. Analytics can never fail or slow a request: without
POSTHOG_API_KEY every call is a no-op, and capture errors are logged.
"""

import logging
import os
from typing import Any, Dict, Optional

from posthog import Posthog


logger = logging.getLogger(__name__)

EVENT_INGESTION = "documents_ingested"
EVENT_QUESTION = "question_answered"
EVENT_ERROR = "system_error"

DEFAULT_HOST = "https://app.posthog.com"


class PostHogClient:

    def __init__(self, api_key: Optional[str] = None, host: Optional[str] = None):

        self._client: Optional[Posthog] = None

        api_key = api_key or os.getenv("POSTHOG_API_KEY")
        host = host or os.getenv("POSTHOG_HOST", DEFAULT_HOST)

        if not api_key:
            logger.info("PostHog disabled: POSTHOG_API_KEY not set")
            return

        try:
            self._client = Posthog(project_api_key=api_key, host=host, timeout=5)
        except Exception as e:
            logger.error("PostHog initialization failed", extra={"error": str(e)})
            return

        logger.info("PostHog client initialized", extra={"host": host})

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def capture(self, distinct_id: str, event: str, properties: Dict[str, Any]):

        if self._client is None:
            return

        try:
            self._client.capture(
                distinct_id=distinct_id,
                event=event,
                properties={"service": "specialist-agent", **properties},
            )
        except Exception as e:
            logger.warning(
                "PostHog capture failed",
                extra={"event": event, "error": str(e)},
            )

    def track_ingestion(self, distinct_id: str, source: str, documents: int,
                        chunks: int, skipped: int, latency: float):

        self.capture(distinct_id, EVENT_INGESTION, {
            "source": source,
            "documents": documents,
            "chunks": chunks,
            "skipped_files": skipped,
            "latency_seconds": round(latency, 3),
        })

    def track_question(self, distinct_id: str, session_id: Optional[str], question: str,
                       sources: int, top_similarity: Optional[float], latency: float):

        self.capture(distinct_id, EVENT_QUESTION, {
            "has_session": session_id is not None,
            "question_length": len(question),
            "sources": sources,
            "top_similarity": top_similarity,
            "latency_seconds": round(latency, 3),
        })

    def track_error(self, distinct_id: str, error_type: str, error_message: str, endpoint: str):

        self.capture(distinct_id, EVENT_ERROR, {
            "error_type": error_type,
            "error_message": error_message,
            "endpoint": endpoint,
        })

    def shutdown(self):
        """Flush queued events."""

        if self._client is None:
            return

        try:
            self._client.shutdown()
        except Exception as e:
            logger.warning("PostHog shutdown failed", extra={"error": str(e)})
