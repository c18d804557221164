# specialist_agent/prompts/prompt_builder.py

from typing import Sequence

from specialist_agent.memory.schemas import SearchResult
from specialist_agent.prompts.system_prompts import (
    AGENT_ROLE_PROMPT,
    ANSWER_INSTRUCTIONS,
)

CONTEXT_DELIMITER = "\n\n---\n\n"


def build_document_context(chunks: Sequence[SearchResult]) -> str:
    """
    One "Source: ..." block per retrieved chunk.
    """

    return CONTEXT_DELIMITER.join(
        f"Source: {chunk.metadata.get('source', 'unknown')}\n{chunk.content}"
        for chunk in chunks
    )


def build_answer_prompt(
    question: str,
    document_context: str,
    conversation_context: str = "",
) -> str:
    """
    Build the single-turn prompt sent to the chat model.

    Sections, in order:
    role → document context → conversation context (optional) → question
    → instructions → answer cue
    """

    sections = [
        AGENT_ROLE_PROMPT,
        f"Document Context:\n{document_context}",
    ]

    if conversation_context:
        sections.append(f"Conversation Context:\n{conversation_context}")

    sections.append(f"Question: {question}")
    sections.append(f"Instructions:\n{ANSWER_INSTRUCTIONS}")
    sections.append("Answer:")

    return "\n\n".join(sections)
