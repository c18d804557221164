# specialist_agent/workflow/ingestion.py
"""
Write path: loader → chunker → embedder → vector index.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from specialist_agent.config import CHUNK_OVERLAP, CHUNK_SIZE
from specialist_agent.exceptions import InvalidInputError
from specialist_agent.memory.chunker import split_documents
from specialist_agent.memory.loader import (
    SkippedFile,
    load_document,
    load_documents_from_directory,
)
from specialist_agent.memory.schemas import Document

logger = logging.getLogger(__name__)


class SkippedFileInfo(BaseModel):
    source: str
    reason: str


class IngestionResult(BaseModel):
    source: str
    documents_loaded: int
    chunks_created: int
    processed_files: List[str] = Field(default_factory=list)
    skipped_files: List[SkippedFileInfo] = Field(default_factory=list)


def ingest_documents(
    documents: Sequence[Document],
    index,
    source: str = "documents",
    skipped: Optional[Sequence[SkippedFile]] = None,
    chunk_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> IngestionResult:
    """
    Chunk and index already-loaded documents.

    At least one document is required. An embedding failure aborts the
    whole call and nothing is stored.
    """
    if not documents:
        raise InvalidInputError(f"No documents found to process ({source})")

    chunks = split_documents(documents, chunk_size, overlap)

    index.add_documents(chunks)

    result = IngestionResult(
        source=source,
        documents_loaded=len(documents),
        chunks_created=len(chunks),
        processed_files=[d.source for d in documents],
        skipped_files=[
            SkippedFileInfo(source=s.source, reason=s.reason)
            for s in skipped or []
        ],
    )

    logger.info(
        "Documents ingested",
        extra={
            "source": source,
            "documents_loaded": result.documents_loaded,
            "chunks_created": result.chunks_created,
            "skipped_files": len(result.skipped_files),
        },
    )

    return result


def ingest_files(
    files: Sequence[Tuple[str, str]],
    index,
    chunk_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> IngestionResult:
    """
    Ingest (file_path, source_name) pairs. Files that fail to load are
    skipped and reported; the batch continues.
    """
    documents: List[Document] = []
    skipped: List[SkippedFile] = []

    for file_path, source in files:
        try:
            documents.append(load_document(file_path, source))
        except InvalidInputError as e:
            logger.warning(
                "Failed to process file",
                extra={"source": source, "error": str(e)},
            )
            skipped.append(SkippedFile(source=source, reason=str(e)))

    label = "uploaded files: " + ", ".join(d.source for d in documents)

    return ingest_documents(
        documents,
        index,
        source=label,
        skipped=skipped,
        chunk_size=chunk_size,
        overlap=overlap,
    )


def ingest_directory(
    directory_path: str,
    index,
    chunk_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> IngestionResult:

    documents, skipped = load_documents_from_directory(directory_path)

    return ingest_documents(
        documents,
        index,
        source=f"directory: {directory_path}",
        skipped=skipped,
        chunk_size=chunk_size,
        overlap=overlap,
    )
