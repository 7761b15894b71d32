"""
Query Handler

Transport-agnostic request boundary. Validates chat requests, runs the
orchestrator, records the exchange in the session store and maps every
error kind to a generic caller-facing response.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from ..errors import (
    NewsRAGError,
    NotReady,
    PipelineError,
    SessionNotFound,
    ValidationError,
)
from .orchestrator import RAGOrchestrator
from .session_store import SessionStore

logger = logging.getLogger(__name__)

Response = Tuple[int, Dict[str, Any]]

MISSING_INPUT_MESSAGE = "sessionId and message are required"
SESSION_NOT_FOUND_MESSAGE = "Session not found"
INITIALIZING_MESSAGE = "System is initializing. Please try again later."
INTERNAL_ERROR_MESSAGE = "Internal server error"


class QueryHandler:
    """
    Handles chat and session requests for a transport layer.

    Every method returns ``(status, body)``; internal error text never
    reaches the body.
    """

    def __init__(self, orchestrator: RAGOrchestrator, session_store: SessionStore):
        self.orchestrator = orchestrator
        self.session_store = session_store

    def handle_chat(self, request: Optional[Dict[str, Any]]) -> Response:
        """
        Answer a chat message within a session.

        Args:
            request: ``{"sessionId": str, "message": str}``

        Returns:
            (200, {message, relevantArticles, timestamp}) on success,
            otherwise an error status with a generic message
        """
        try:
            session_id, message = self._validate(request)

            if not self.session_store.exists(session_id):
                raise SessionNotFound(session_id)

            answer = self.orchestrator.answer_query(message)
            self.session_store.append(session_id, message, answer.answer_text)

            return 200, {
                'message': answer.answer_text,
                'relevantArticles': answer.citations(),
                'timestamp': datetime.now(timezone.utc).isoformat()
            }

        except Exception as e:
            return self._error_response(e)

    def _validate(self, request: Optional[Dict[str, Any]]) -> Tuple[str, str]:
        request = request or {}
        session_id = request.get('sessionId')
        message = request.get('message')

        if not isinstance(session_id, str) or not session_id.strip():
            raise ValidationError(MISSING_INPUT_MESSAGE)
        if not isinstance(message, str) or not message.strip():
            raise ValidationError(MISSING_INPUT_MESSAGE)

        return session_id, message

    def _error_response(self, error: Exception) -> Response:
        """Map an error to a status and a message safe to show the caller."""
        if isinstance(error, ValidationError):
            return 400, {'error': MISSING_INPUT_MESSAGE}

        if isinstance(error, SessionNotFound):
            logger.warning(f"Chat for unknown session {error.session_id}")
            return 404, {'error': SESSION_NOT_FOUND_MESSAGE}

        if isinstance(error, NotReady):
            logger.warning(f"Rejected query: {error}")
            return 503, {'error': INITIALIZING_MESSAGE}

        if isinstance(error, PipelineError):
            logger.error(f"Error processing query at stage '{error.stage}': {error}")
        elif isinstance(error, NewsRAGError):
            logger.error(f"Error processing query: {error}")
        else:
            logger.exception("Unexpected error processing query")

        return 500, {'error': INTERNAL_ERROR_MESSAGE}

    def create_session(self) -> Response:
        """Create a session and return its id."""
        return 201, {'sessionId': self.session_store.create()}

    def get_history(self, session_id: str) -> Response:
        """Return a session's history, or 404 when it does not exist."""
        session = self.session_store.history(session_id)
        if session is None:
            return 404, {'error': SESSION_NOT_FOUND_MESSAGE}
        return 200, session.to_dict()

    def list_sessions(self) -> Response:
        """Summaries of all live sessions."""
        return 200, {'sessions': self.session_store.active_sessions()}

    def delete_session(self, session_id: str) -> Response:
        """Delete a session; ``success`` reports whether it existed."""
        return 200, {'success': self.session_store.delete(session_id)}
