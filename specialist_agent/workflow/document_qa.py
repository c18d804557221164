# specialist_agent/workflow/document_qa.py
import logging
from typing import List, Optional

from pydantic import BaseModel

from specialist_agent.config import TOP_K
from specialist_agent.exceptions import InvalidInputError
from specialist_agent.memory.schemas import MessageRole, SearchResult, SourceReference
from specialist_agent.prompts.prompt_builder import (
    build_answer_prompt,
    build_document_context,
)

logger = logging.getLogger(__name__)


class AnswerResult(BaseModel):
    answer: str
    sources: List[SourceReference]
    session_id: Optional[str] = None


def to_sources(results: List[SearchResult]) -> List[SourceReference]:

    return [
        SourceReference(
            source=result.metadata.get("source", "unknown"),
            title=result.metadata.get("title", "untitled"),
            similarity=1 - result.distance,
        )
        for result in results
    ]


def answer_question(
    question: str,
    index,
    conversations,
    llm_client,
    session_id: Optional[str] = None,
    top_k: int = TOP_K,
) -> AnswerResult:
    """
    Answer a question from the indexed documents and the session's recent turns.

    Retrieval and chat failures propagate. Recording the exchange in the
    session is best effort: a failure there is logged and the answer is
    still returned.
    """
    if not question or not question.strip():
        raise InvalidInputError("Question is required")

    relevant = index.similarity_search(question, top_k)

    document_context = build_document_context(relevant)

    conversation_context = ""

    if session_id:
        try:
            conversation_context = conversations.get_conversation_summary(session_id)
        except Exception as e:
            logger.warning(
                "Failed to get conversation context",
                extra={"session_id": session_id, "error": str(e)},
            )

    prompt = build_answer_prompt(question, document_context, conversation_context)

    answer = llm_client.generate(prompt)

    sources = to_sources(relevant)

    if session_id:
        try:
            conversations.add_message(session_id, MessageRole.USER, question)
            conversations.add_message(
                session_id,
                MessageRole.ASSISTANT,
                answer,
                {"sources": [s.model_dump() for s in sources]},
            )
        except Exception as e:
            logger.warning(
                "Failed to store conversation context",
                extra={"session_id": session_id, "error": str(e)},
                exc_info=True,
            )

    logger.info(
        "Question answered",
        extra={
            "session_id": session_id,
            "sources": len(sources),
            "top_similarity": sources[0].similarity if sources else None,
        },
    )

    return AnswerResult(answer=answer, sources=sources, session_id=session_id)
