"""
Session Store for Multi-turn Conversations

Manages conversation sessions with ordered message history, activity
tracking and idle expiry.
"""

import copy
import logging
import time
import uuid
from typing import Callable, Dict, List, Optional

from ..errors import SessionNotFound
from ..models import MessageEntry, Session
from .locks import StripedLock

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = 3600  # 1 hour of inactivity

# Smallest step used to keep last_activity_at strictly increasing
_ACTIVITY_EPSILON = 1e-6


class SessionStore:
    """
    Owns every conversation session.

    Features:
    - Generated session ids (never client supplied)
    - Append-only, arrival-ordered message history
    - Idle expiry refreshed on each append
    - Snapshots for readers, per-session locks for writers
    """

    def __init__(
        self,
        ttl: float = DEFAULT_SESSION_TTL,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the session store.

        Args:
            ttl: Seconds of inactivity after which a session expires
            clock: Time source returning seconds, injectable for tests
        """
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")

        self.ttl = ttl
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._locks = StripedLock()

    def _is_expired(self, session: Session, now: float) -> bool:
        return now - session.last_activity_at >= self.ttl

    def _get_live(self, session_id: str, now: float) -> Optional[Session]:
        """Return the live session or None, dropping it if expired. Caller holds the key lock."""
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._is_expired(session, now):
            self._sessions.pop(session_id, None)
            logger.info(f"Session {session_id} expired")
            return None
        return session

    def create(self) -> str:
        """
        Create a new conversation session.

        Returns:
            Unique session ID
        """
        session_id = str(uuid.uuid4())
        now = self._clock()
        with self._locks.for_key(session_id):
            self._sessions[session_id] = Session(
                session_id=session_id,
                created_at=now,
                last_activity_at=now
            )

        logger.info(f"Created new session: {session_id}")
        return session_id

    def exists(self, session_id: str) -> bool:
        """Check whether a session is live."""
        with self._locks.for_key(session_id):
            return self._get_live(session_id, self._clock()) is not None

    def append(self, session_id: str, user_message: str, bot_answer: str) -> str:
        """
        Append a question/answer exchange to a session.

        Args:
            session_id: Session identifier
            user_message: User's message
            bot_answer: Answer returned to the user

        Returns:
            Id of the new message entry

        Raises:
            SessionNotFound: If the session is unknown, deleted or expired
        """
        with self._locks.for_key(session_id):
            now = self._clock()
            session = self._get_live(session_id, now)
            if session is None:
                raise SessionNotFound(session_id)

            activity = max(now, session.last_activity_at + _ACTIVITY_EPSILON)
            entry = MessageEntry(
                id=str(uuid.uuid4()),
                timestamp=activity,
                user_message=user_message,
                bot_response=bot_answer
            )
            session.messages.append(entry)
            session.last_activity_at = activity

        logger.debug(f"Added message to session {session_id}")
        return entry.id

    def history(self, session_id: str) -> Optional[Session]:
        """
        Get a snapshot of a session.

        Args:
            session_id: Session identifier

        Returns:
            Copy of the session, or None when unknown or expired
        """
        with self._locks.for_key(session_id):
            session = self._get_live(session_id, self._clock())
            if session is None:
                return None
            return copy.deepcopy(session)

    def delete(self, session_id: str) -> bool:
        """
        Delete a session.

        Args:
            session_id: Session identifier

        Returns:
            True if a live session was deleted
        """
        with self._locks.for_key(session_id):
            deleted = self._get_live(session_id, self._clock()) is not None
            self._sessions.pop(session_id, None)

        logger.info(f"Cleared session {session_id}: {deleted}")
        return deleted

    def active_sessions(self) -> List[Dict]:
        """Summaries of all live sessions."""
        now = self._clock()
        summaries = []
        for session_id in list(self._sessions):
            with self._locks.for_key(session_id):
                session = self._get_live(session_id, now)
                if session is not None:
                    summaries.append(session.summary())
        return summaries

    def purge_expired(self) -> int:
        """
        Remove all expired sessions.

        Returns:
            Number of sessions removed
        """
        now = self._clock()
        removed = 0
        for session_id in list(self._sessions):
            with self._locks.for_key(session_id):
                session = self._sessions.get(session_id)
                if session is not None and self._is_expired(session, now):
                    del self._sessions[session_id]
                    removed += 1

        if removed:
            logger.info(f"Purged {removed} expired sessions")
        return removed

    def stats(self) -> Dict:
        return {
            'sessions': len(self._sessions),
            'ttl': self.ttl
        }

    def __len__(self) -> int:
        return len(self._sessions)
