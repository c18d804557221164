"""Custom exceptions for the application."""


class SpecialistAgentError(Exception):
    """Base class for every error raised by the service."""

    pass


# ========== INVALID INPUT ==========


class InvalidInputError(SpecialistAgentError, ValueError):
    """Raised when a request is rejected before any core work begins."""

    pass


class UnsupportedFileTypeError(InvalidInputError):
    """Raised when a file extension is not supported by the loader."""

    pass


class FileTooLargeError(InvalidInputError):
    """Raised when an upload exceeds MAX_FILE_SIZE_MB."""

    pass


class DocumentLoadError(InvalidInputError):
    """Raised when a file cannot be read or parsed into a Document."""

    pass


# ========== UPSTREAM SERVICES ==========


class UpstreamServiceError(SpecialistAgentError):
    """Raised when an external dependency is unreachable or errors."""

    pass


class UpstreamTimeoutError(UpstreamServiceError):
    """Raised when an external dependency does not answer in time."""

    pass


class EmbeddingError(UpstreamServiceError):
    """Raised when embedding generation fails."""

    pass


class LLMError(UpstreamServiceError):
    """Raised when chat completion fails."""

    pass


class VectorDBError(UpstreamServiceError):
    """Raised when vector database operations fail."""

    pass


# ========== INDEX STATE ==========


class PersistenceError(SpecialistAgentError):
    """Raised when the local index snapshot cannot be written."""

    pass


class DimensionMismatchError(SpecialistAgentError):
    """Raised when an embedding does not match the index dimensionality
    (the embedding model changed under an existing index)."""

    pass
