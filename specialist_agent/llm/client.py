# specialist_agent/llm/client.py
import logging
import time
from typing import Optional

import openai
from openai import OpenAI

from specialist_agent.config import (
    CHAT_MAX_TOKENS,
    CHAT_MODEL,
    CHAT_TEMPERATURE,
    CHAT_TIMEOUT_SECONDS,
    OPENAI_BASE_URL,
)
from specialist_agent.exceptions import LLMError, UpstreamTimeoutError
from specialist_agent.prompts.system_prompts import CHAT_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Client for the chat completion API.

    Single-turn and non-streaming: one prompt in, one text out.
    Failures are never retried or masked here; they surface as LLMError
    (or UpstreamTimeoutError) to the caller.
    """

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: str = CHAT_MODEL,
        timeout: float = CHAT_TIMEOUT_SECONDS,
    ):
        """
        Args:
            client: Pre-built OpenAI client (tests, custom transports)
            model: Chat model to use
            timeout: Seconds before a request is abandoned
        """
        self.client = client or OpenAI(
            base_url=OPENAI_BASE_URL,
            timeout=timeout,
            max_retries=0,
        )
        self.model = model
        self.timeout = timeout

    def generate(self, prompt: str) -> str:
        """
        Generate text for a prompt.

        Raises:
            UpstreamTimeoutError: If the request exceeds the timeout
            LLMError: If the API call fails or returns nothing
        """
        start = time.time()

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": CHAT_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=CHAT_TEMPERATURE,
                max_tokens=CHAT_MAX_TOKENS,
                timeout=self.timeout,
            )

        except openai.APITimeoutError as e:
            logger.error(
                "Chat request timed out",
                extra={"model": self.model, "timeout_seconds": self.timeout},
            )
            raise UpstreamTimeoutError(
                f"Chat request timed out after {self.timeout}s"
            ) from e

        except openai.OpenAIError as e:
            logger.error(
                "Chat completion failed",
                extra={"model": self.model, "error": str(e)},
            )
            raise LLMError(f"Chat completion failed: {e}") from e

        if not response.choices or response.choices[0].message.content is None:
            raise LLMError("Chat model returned an empty response")

        logger.info(
            "Chat completion succeeded",
            extra={
                "model": self.model,
                "prompt_length": len(prompt),
                "latency_seconds": round(time.time() - start, 3),
            },
        )

        return response.choices[0].message.content.strip()
