"""
Error taxonomy for the query core.

Service errors are raised by the adapters; the orchestrator wraps them in
PipelineError together with the name of the failing stage.
"""

from typing import Optional


class NewsRAGError(Exception):
    """Base class for all query-core errors."""
    pass


class NotReady(NewsRAGError):
    """Raised when a query arrives before ingestion has completed."""
    pass


class ValidationError(NewsRAGError):
    """Raised when required input is missing or empty."""
    pass


class SessionNotFound(NewsRAGError):
    """Raised when a session id is unknown, deleted or expired."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class ServiceError(NewsRAGError):
    """Base class for failures of an external collaborator."""
    pass


class EmbeddingServiceError(ServiceError):
    """Raised on embedding transport, quota, shape or timeout failure."""
    pass


class IndexUnavailable(ServiceError):
    """Raised when the vector index cannot be searched."""
    pass


class GenerationServiceError(ServiceError):
    """Raised when the text-generation service fails or times out."""
    pass


class PipelineError(NewsRAGError):
    """
    Raised when a stage of the query pipeline fails.

    Attributes:
        stage: Name of the failing stage ('embedding', 'retrieval', 'generation')
        cause: The underlying service error
    """

    def __init__(self, stage: str, cause: Optional[BaseException] = None):
        message = f"Pipeline failed at stage '{stage}'"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.stage = stage
        self.cause = cause


class InternalError(NewsRAGError):
    """Raised for unexpected failures inside the core."""
    pass


class InitializationError(NewsRAGError):
    """Raised when ingestion fails and the system cannot become ready."""
    pass
