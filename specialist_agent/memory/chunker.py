# specialist_agent/memory/chunker.py

import logging
from typing import List, Sequence

from specialist_agent.config import (
    CHUNK_SIZE,
    CHUNK_OVERLAP,
)
from specialist_agent.exceptions import InvalidInputError
from specialist_agent.memory.schemas import Chunk, Document

logger = logging.getLogger(__name__)

SENTENCE_BREAK = "."
PARAGRAPH_BREAK = "\n\n"


def _validate(size: int, overlap: int):

    if size <= 0:
        raise InvalidInputError(f"Invalid chunk size: {size}")

    if overlap < 0:
        raise InvalidInputError(f"Invalid chunk overlap: {overlap}")

    if overlap >= size:
        raise InvalidInputError(
            f"Overlap must be smaller than chunk size "
            f"(overlap={overlap}, size={size})"
        )


def _find_break(text: str, start: int, end: int) -> int:
    """
    Last sentence or paragraph boundary inside [start, end).

    The later of the two wins. Returns -1 when neither exists.
    """

    sentence_end = text.rfind(SENTENCE_BREAK, start, end)
    paragraph_end = text.rfind(PARAGRAPH_BREAK, start, end)

    return max(sentence_end, paragraph_end)


def split_text(
    text: str,
    size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> List[str]:
    """
    Boundary-aware overlapping character chunker.

    Architecture contract preserved:
    loader → chunker → embedder → vector index

    Guarantees:
    • deterministic chunk generation
    • cuts at the last "." or blank line in the window when one exists
    • consecutive chunks share up to `overlap` characters
    • no infinite loops
    • no empty chunks
    """

    _validate(size, overlap)

    if not text or not text.strip():
        logger.warning("Chunking skipped: empty text")
        return []

    chunks: List[str] = []

    total = len(text)

    start = 0

    previous_end = 0

    # ============================================================
    # CHUNK GENERATION LOOP
    # ============================================================

    while start < total:

        end = start + size

        if end < total:

            # only boundaries past the previous cut, so every chunk adds new text
            cut = _find_break(text, max(start, previous_end), end)

            if cut > start:
                end = cut + 1

        chunk = text[start:end].strip()

        if chunk:
            chunks.append(chunk)

        if end >= total:
            break

        previous_end = end

        next_start = end - overlap

        # a short boundary cut can leave no room for the overlap
        if next_start <= start:
            next_start = end

        start = next_start

    # ============================================================
    # OBSERVABILITY
    # ============================================================

    logger.debug(
        "Chunking completed",
        extra={
            "total_characters": total,
            "chunk_size": size,
            "overlap": overlap,
            "chunks_created": len(chunks),
        },
    )

    return chunks


def split_documents(
    documents: Sequence[Document],
    size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> List[Chunk]:
    """
    Split every document, keeping document order then chunk order.
    """

    chunks: List[Chunk] = []

    for doc_index, document in enumerate(documents):

        for chunk_index, content in enumerate(
            split_text(document.content, size, overlap)
        ):

            chunks.append(
                Chunk(
                    content=content,
                    source=document.source,
                    title=document.title,
                    type=document.type,
                    chunk_index=chunk_index,
                    original_doc_index=doc_index,
                )
            )

    logger.info(
        "Documents split into chunks",
        extra={
            "documents": len(documents),
            "chunks_created": len(chunks),
            "chunk_size": size,
            "overlap": overlap,
        },
    )

    return chunks
