# specialist_agent/services.py

"""
Process-scoped state.

Startup order:
    logging → gateways → vector index initialize() → conversation manager

Anything passed to the constructor is used as-is (tests inject fakes);
missing pieces are built in startup().
"""

import logging
import os
from typing import Optional

from specialist_agent.config import LOG_DIR, LOG_LEVEL
from specialist_agent.llm.client import LLMClient
from specialist_agent.memory.conversation import ConversationContextManager
from specialist_agent.memory.embedder import Embedder
from specialist_agent.memory.store import VectorIndex
from specialist_agent.observability.logger import setup_logging
from specialist_agent.observability.metrics import MetricsTracker
from specialist_agent.observability.posthog_client import PostHogClient

logger = logging.getLogger(__name__)


class ServiceContainer:

    def __init__(
        self,
        embedder=None,
        index: Optional[VectorIndex] = None,
        conversations: Optional[ConversationContextManager] = None,
        llm_client=None,
        metrics: Optional[MetricsTracker] = None,
        posthog: Optional[PostHogClient] = None,
        configure_logging: bool = True,
    ):

        self.embedder = embedder
        self.index = index
        self.conversations = conversations
        self.llm_client = llm_client
        self.metrics = metrics
        self.posthog = posthog

        self._configure_logging = configure_logging
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def startup(self):

        if self._started:
            return

        if self._configure_logging:
            setup_logging(log_level=LOG_LEVEL, log_dir=LOG_DIR)

        if self.metrics is None:
            self.metrics = MetricsTracker()

        if self.posthog is None:
            self.posthog = PostHogClient()

        if (self.embedder is None or self.llm_client is None) and not os.getenv("OPENAI_API_KEY"):

            logger.warning(
                "missing_api_key",
                extra={
                    "warning_detail":
                    "OPENAI_API_KEY not set. Gateway construction will fail."
                }
            )

        if self.embedder is None:
            self.embedder = Embedder()

        if self.llm_client is None:
            self.llm_client = LLMClient()

        if self.index is None:
            self.index = VectorIndex(self.embedder)

        backend = self.index.initialize()

        if self.conversations is None:
            self.conversations = ConversationContextManager()

        self._started = True

        logger.info("services_started", extra={"vector_backend": backend})

    def shutdown(self):

        if not self._started:
            return

        try:
            self.index.close()
        finally:
            if self.posthog is not None:
                self.posthog.shutdown()

        self._started = False

        logger.info("services_stopped")
