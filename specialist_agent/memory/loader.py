# specialist_agent/memory/loader.py

"""
Local file ingestion loader.

Architecture contract preserved:
loader → chunker → embedder → vector index

Supports:
- Plain text (.txt)
- Markdown (.md)
- PDF files (.pdf)
- Word documents (.docx)

A directory load never fails because of one bad file: the file is skipped
and reported with its reason.
"""

import logging
import os
from typing import List, NamedTuple, Optional, Tuple

from docx import Document as DocxDocument
from pypdf import PdfReader

from specialist_agent.config import ALLOWED_FILE_EXTENSIONS
from specialist_agent.exceptions import (
    DocumentLoadError,
    InvalidInputError,
    UnsupportedFileTypeError,
)
from specialist_agent.memory.schemas import Document, DocumentType

logger = logging.getLogger(__name__)


class SkippedFile(NamedTuple):
    source: str
    reason: str


# ============================================================
# TEXT / MARKDOWN LOADERS
# ============================================================

def _read_utf8(file_path: str) -> str:

    with open(file_path, "r", encoding="utf-8") as f:
        return f.read()


def load_text_file(file_path: str, source: str) -> Document:

    return Document(
        content=_read_utf8(file_path),
        source=source,
        title=os.path.splitext(source)[0],
        type=DocumentType.TEXT,
    )


def load_markdown_file(file_path: str, source: str) -> Document:

    return Document(
        content=_read_utf8(file_path),
        source=source,
        title=os.path.splitext(source)[0],
        type=DocumentType.MARKDOWN,
    )


# ============================================================
# PDF LOADER
# ============================================================

def load_pdf_file(file_path: str, source: str) -> Document:

    reader = PdfReader(file_path)

    parts = []

    for page in reader.pages:

        text = page.extract_text()

        if text:
            parts.append(text)

    return Document(
        content="\n".join(parts),
        source=source,
        title=os.path.splitext(source)[0],
        type=DocumentType.PDF,
        pages=len(reader.pages),
    )


# ============================================================
# DOCX LOADER
# ============================================================

def load_docx_file(file_path: str, source: str) -> Document:

    docx = DocxDocument(file_path)

    content = "\n".join(p.text for p in docx.paragraphs)

    return Document(
        content=content,
        source=source,
        title=os.path.splitext(source)[0],
        type=DocumentType.DOCX,
    )


_LOADERS = {
    ".txt": load_text_file,
    ".md": load_markdown_file,
    ".pdf": load_pdf_file,
    ".docx": load_docx_file,
}


# ============================================================
# MAIN ENTRY POINT (ARCHITECTURE CONTRACT)
# ============================================================

def validate_extension(filename: str) -> str:

    extension = os.path.splitext(filename)[1].lower()

    if extension not in ALLOWED_FILE_EXTENSIONS or extension not in _LOADERS:
        raise UnsupportedFileTypeError(
            f"File type {extension or '(none)'} not allowed. "
            f"Allowed types: {', '.join(ALLOWED_FILE_EXTENSIONS)}"
        )

    return extension


def load_document(file_path: str, source: Optional[str] = None) -> Document:
    """
    Load one file. `source` overrides the file name (e.g. for uploads
    stored under a temporary name).
    """

    source = source or os.path.basename(file_path)

    extension = validate_extension(source)

    try:

        document = _LOADERS[extension](file_path, source)

    except Exception as e:

        logger.error(
            "Error loading document",
            extra={"source": source, "error": str(e)},
        )

        raise DocumentLoadError(f"Failed to load {source}: {e}") from e

    logger.info(
        "Document loaded",
        extra={
            "source": source,
            "type": document.type.value,
            "characters": len(document.content),
        },
    )

    return document


def load_documents_from_directory(
    directory_path: str,
) -> Tuple[List[Document], List[SkippedFile]]:
    """
    Load every regular file in a directory (non-recursive, sorted by name).
    """

    if not directory_path or not os.path.isdir(directory_path):
        raise InvalidInputError(f"Not a directory: {directory_path}")

    documents: List[Document] = []
    skipped: List[SkippedFile] = []

    for name in sorted(os.listdir(directory_path)):

        file_path = os.path.join(directory_path, name)

        if not os.path.isfile(file_path):
            continue

        try:

            documents.append(load_document(file_path))

        except InvalidInputError as e:

            logger.warning(
                "Skipping file",
                extra={"source": name, "error": str(e)},
            )

            skipped.append(SkippedFile(source=name, reason=str(e)))

    return documents, skipped
