import logging
import os
import time
import uuid
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from specialist_agent.config import (
    MAX_FILE_SIZE_MB,
    MAX_FILES_PER_REQUEST,
    UPLOAD_DIR,
)
from specialist_agent.exceptions import FileTooLargeError, InvalidInputError
from specialist_agent.memory.loader import validate_extension
from specialist_agent.models import (
    CleanupRequest,
    CleanupResponse,
    ConfigUpdateResponse,
    ContextConfig,
    ContextConfigRequest,
    ConversationHistoryResponse,
    ConversationStartResponse,
    ConversationStats,
    HealthResponse,
    IngestResponse,
    MessageInfo,
    QueryRequest,
    QueryResponse,
    SkippedFileResponse,
    SourceInfo,
    StatusResponse,
)
from specialist_agent.services import ServiceContainer
from specialist_agent.workflow.document_qa import answer_question
from specialist_agent.workflow.ingestion import (
    IngestionResult,
    ingest_directory,
    ingest_files,
)


# ============================================================
# LOGGER
# ============================================================

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# ============================================================
# DEPENDENCIES
# ============================================================

def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


# ============================================================
# HELPERS
# ============================================================

def validate_file_size(content: bytes, filename: str):

    size_mb = len(content) / (1024 * 1024)

    if size_mb > MAX_FILE_SIZE_MB:
        raise FileTooLargeError(
            f"File too large: {filename} ({size_mb:.2f}MB, limit {MAX_FILE_SIZE_MB}MB)"
        )


async def save_upload(file: UploadFile) -> Tuple[str, str]:
    """
    Validate an upload and write it under UPLOAD_DIR.
    Returns (stored_path, original_filename).
    """

    filename = file.filename or ""

    extension = validate_extension(filename)

    content = await file.read()

    validate_file_size(content, filename)

    os.makedirs(UPLOAD_DIR, exist_ok=True)

    file_path = os.path.join(UPLOAD_DIR, f"{uuid.uuid4().hex}{extension}")

    with open(file_path, "wb") as buffer:
        buffer.write(content)

    return file_path, filename


def remove_uploads(paths: List[str]):

    for path in paths:
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(
                "Failed to remove uploaded file",
                extra={"path": path, "error": str(e)},
            )


def to_ingest_response(result: IngestionResult) -> IngestResponse:

    return IngestResponse(
        source=result.source,
        documents_loaded=result.documents_loaded,
        chunks_created=result.chunks_created,
        processed_files=result.processed_files,
        skipped_files=[
            SkippedFileResponse(source=s.source, reason=s.reason)
            for s in result.skipped_files
        ],
    )


def track_ingestion(services: ServiceContainer, request: Request,
                    result: IngestionResult, start_time: float):

    services.posthog.track_ingestion(
        distinct_id=_request_id(request),
        source=result.source,
        documents=result.documents_loaded,
        chunks=result.chunks_created,
        skipped=len(result.skipped_files),
        latency=time.time() - start_time,
    )


def track_error(services: ServiceContainer, request: Request,
                error: Exception, endpoint: str):

    services.posthog.track_error(
        distinct_id=_request_id(request),
        error_type=type(error).__name__,
        error_message=str(error),
        endpoint=endpoint,
    )


# ============================================================
# QUERY
# ============================================================

@router.post("/query", response_model=QueryResponse)
def query(
    payload: QueryRequest,
    request: Request,
    services: ServiceContainer = Depends(get_services),
):

    start_time = time.time()

    try:

        result = answer_question(
            question=payload.question or "",
            index=services.index,
            conversations=services.conversations,
            llm_client=services.llm_client,
            session_id=payload.session_id,
        )

    except Exception as e:

        track_error(services, request, e, "/api/query")

        raise

    services.posthog.track_question(
        distinct_id=_request_id(request),
        session_id=result.session_id,
        question=payload.question,
        sources=len(result.sources),
        top_similarity=result.sources[0].similarity if result.sources else None,
        latency=time.time() - start_time,
    )

    return QueryResponse(
        answer=result.answer,
        sources=[SourceInfo(**s.model_dump()) for s in result.sources],
        session_id=result.session_id,
    )


# ============================================================
# CONVERSATIONS
# ============================================================

@router.post("/conversation/start", response_model=ConversationStartResponse)
def start_conversation(services: ServiceContainer = Depends(get_services)):

    session_id = services.conversations.create_session()

    return ConversationStartResponse(
        session_id=session_id,
        config=ContextConfig(**services.conversations.get_config()),
    )


@router.get("/conversation/config", response_model=ContextConfig)
def get_context_config(services: ServiceContainer = Depends(get_services)):

    return ContextConfig(**services.conversations.get_config())


@router.post("/conversation/config", response_model=ConfigUpdateResponse)
def update_context_config(
    payload: ContextConfigRequest,
    services: ServiceContainer = Depends(get_services),
):

    services.conversations.update_context_config(
        payload.max_context_length,
        payload.max_tokens,
    )

    return ConfigUpdateResponse(
        config=ContextConfig(**services.conversations.get_config()),
    )


@router.post("/conversation/cleanup", response_model=CleanupResponse)
def cleanup_conversations(
    payload: Optional[CleanupRequest] = None,
    services: ServiceContainer = Depends(get_services),
):

    payload = payload or CleanupRequest()

    removed = services.conversations.cleanup_old_conversations(payload.max_age_hours)

    return CleanupResponse(
        message=f"Cleaned up conversations older than {payload.max_age_hours} hours",
        removed=removed,
    )


@router.get("/conversation/{session_id}", response_model=ConversationHistoryResponse)
def get_conversation(
    session_id: str,
    services: ServiceContainer = Depends(get_services),
):

    messages = services.conversations.get_context(session_id, include_system_message=False)

    stats = services.conversations.get_conversation_stats(session_id)

    return ConversationHistoryResponse(
        session_id=session_id,
        messages=[
            MessageInfo(
                id=m.id,
                role=m.role.value,
                content=m.content,
                timestamp=m.timestamp,
                sources=m.sources,
            )
            for m in messages
        ],
        stats=ConversationStats(**stats) if stats else None,
    )


@router.delete("/conversation/{session_id}", response_model=StatusResponse)
def clear_conversation(
    session_id: str,
    services: ServiceContainer = Depends(get_services),
):

    services.conversations.clear_conversation(session_id)

    return StatusResponse(message="Conversation cleared", session_id=session_id)


@router.delete("/conversation/{session_id}/delete", response_model=StatusResponse)
def delete_conversation(
    session_id: str,
    services: ServiceContainer = Depends(get_services),
):

    services.conversations.delete_session(session_id)

    return StatusResponse(message="Conversation deleted", session_id=session_id)


# ============================================================
# INGESTION
# ============================================================

@router.post("/ingest", response_model=IngestResponse)
async def ingest(
    request: Request,
    file: Optional[UploadFile] = File(None),
    directory_path: Optional[str] = Form(None, alias="directoryPath"),
    services: ServiceContainer = Depends(get_services),
):

    if not file and not directory_path:
        raise InvalidInputError("No file or directory path provided")

    start_time = time.time()

    stored: List[str] = []

    try:

        if file:

            file_path, filename = await save_upload(file)
            stored.append(file_path)

            result = await run_in_threadpool(
                ingest_files, [(file_path, filename)], services.index
            )

        else:

            result = await run_in_threadpool(
                ingest_directory, directory_path, services.index
            )

    except Exception as e:

        track_error(services, request, e, "/api/ingest")

        raise

    finally:

        remove_uploads(stored)

    track_ingestion(services, request, result, start_time)

    return to_ingest_response(result)


@router.post("/ingest/multiple", response_model=IngestResponse)
async def ingest_multiple(
    request: Request,
    files: List[UploadFile] = File(...),
    services: ServiceContainer = Depends(get_services),
):

    if not files:
        raise InvalidInputError("No files uploaded")

    if len(files) > MAX_FILES_PER_REQUEST:
        raise InvalidInputError(
            f"Too many files: {len(files)} (limit {MAX_FILES_PER_REQUEST})"
        )

    start_time = time.time()

    stored: List[Tuple[str, str]] = []

    try:

        for upload in files:
            stored.append(await save_upload(upload))

        result = await run_in_threadpool(ingest_files, stored, services.index)

    except Exception as e:

        track_error(services, request, e, "/api/ingest/multiple")

        raise

    finally:

        remove_uploads([path for path, _ in stored])

    track_ingestion(services, request, result, start_time)

    return to_ingest_response(result)


@router.delete("/index", response_model=StatusResponse)
def clear_index(services: ServiceContainer = Depends(get_services)):

    services.index.clear()

    return StatusResponse(message="Vector index cleared")


# ============================================================
# HEALTH
# ============================================================

@router.get("/health", response_model=HealthResponse)
def health_check(services: ServiceContainer = Depends(get_services)):

    stats = services.index.get_stats()

    return HealthResponse(
        status="healthy",
        backend=stats["backend"],
        collection=stats["collection"],
        total_vectors=stats["total_vectors"],
        active_conversations=services.conversations.get_config()["active_conversations"],
    )


# ============================================================
# METRICS ENDPOINT
# ============================================================

@router.get("/metrics")
def get_metrics(services: ServiceContainer = Depends(get_services)):

    return services.metrics.get_metrics()
