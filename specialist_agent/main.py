# specialist_agent/main.py
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from specialist_agent.api.routes import router
from specialist_agent.exceptions import FileTooLargeError, InvalidInputError
from specialist_agent.observability.logger import (
    bind_request_id,
    get_logger,
    log_request_complete,
    log_request_error,
    log_request_start,
    reset_request_id,
)
from specialist_agent.services import ServiceContainer

logger = get_logger(__name__)

VERSION = "1.0.0"


def create_app(services: Optional[ServiceContainer] = None) -> FastAPI:

    services = services or ServiceContainer()

    app = FastAPI(
        title="Specialist Agent API",
        description="Document question answering with conversation memory",
        version=VERSION,
    )

    app.state.services = services

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Log every HTTP request with latency and record request metrics.
        """

        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        token = bind_request_id(request_id)

        log_request_start(
            logger,
            request.url.path,
            method=request.method,
            client_ip=request.client.host if request.client else None,
        )

        start_time = time.time()

        try:

            response = await call_next(request)

        except Exception as e:

            if services.metrics is not None:
                services.metrics.record_failure()

            log_request_error(
                logger,
                request.url.path,
                e,
                method=request.method,
                latency_seconds=round(time.time() - start_time, 3),
            )

            raise

        finally:

            reset_request_id(token)

        latency = time.time() - start_time

        if services.metrics is not None:
            if response.status_code >= 500:
                services.metrics.record_failure()
            else:
                services.metrics.record_success(latency)

        log_request_complete(
            logger,
            request.url.path,
            latency,
            request_id=request_id,
            method=request.method,
            status_code=response.status_code,
        )

        return response

    # Include API routes
    app.include_router(router)

    @app.on_event("startup")
    async def startup_event():

        services.startup()

        logger.info("application_startup", extra={"version": VERSION})

    @app.on_event("shutdown")
    async def shutdown_event():

        services.shutdown()

        logger.info("application_shutdown")

    @app.exception_handler(FileTooLargeError)
    async def file_too_large_handler(request: Request, exc: FileTooLargeError):

        return JSONResponse(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            content={"detail": str(exc)},
        )

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):

        logger.info(
            "invalid_request",
            extra={
                "request_id": getattr(request.state, "request_id", "unknown"),
                "path": request.url.path,
                "error": str(exc),
            },
        )

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):

        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "unhandled_exception",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "error": str(exc),
                "error_type": type(exc).__name__
            },
            exc_info=True
        )

        if services.posthog is not None:
            services.posthog.track_error(
                distinct_id=request_id,
                error_type=type(exc).__name__,
                error_message=str(exc),
                endpoint=request.url.path,
            )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An internal error occurred. Please try again.",
                "request_id": request_id,
                "error_type": type(exc).__name__
            }
        )

    @app.get("/")
    async def root():

        return {
            "message": "Specialist Agent API",
            "version": VERSION,
            "docs": "/docs",
            "health": "/api/health",
            "metrics": "/api/metrics"
        }

    return app


app = create_app()
