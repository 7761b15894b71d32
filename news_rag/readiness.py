"""
Initialization state machine gating the query pipeline.

UNINITIALIZED -> INITIALIZING -> READY | FAILED. Each transition happens
at most once; a FAILED system stays failed until the process restarts.
"""

import logging
import threading
from enum import Enum
from typing import Optional

from .errors import NotReady

logger = logging.getLogger(__name__)


class ReadinessState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class Readiness:
    """Thread-safe readiness flag shared by the orchestrator and the transport."""

    def __init__(self):
        self._state = ReadinessState.UNINITIALIZED
        self._error: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> ReadinessState:
        return self._state

    @property
    def error(self) -> Optional[str]:
        """Reason for the FAILED state, if any."""
        return self._error

    @property
    def is_ready(self) -> bool:
        return self._state is ReadinessState.READY

    def _transition(
        self,
        expected: ReadinessState,
        target: ReadinessState,
        error: Optional[str] = None
    ) -> None:
        with self._lock:
            if self._state is not expected:
                raise RuntimeError(
                    f"Cannot move from {self._state.value} to {target.value}"
                )
            self._error = error
            self._state = target
        logger.info(f"Readiness: {expected.value} -> {target.value}")

    def begin(self) -> None:
        """Mark ingestion as started."""
        self._transition(ReadinessState.UNINITIALIZED, ReadinessState.INITIALIZING)

    def mark_ready(self) -> None:
        """Mark ingestion as complete; queries are accepted from now on."""
        self._transition(ReadinessState.INITIALIZING, ReadinessState.READY)

    def mark_failed(self, reason: str) -> None:
        """Mark ingestion as failed; queries are rejected until restart."""
        self._transition(ReadinessState.INITIALIZING, ReadinessState.FAILED, reason)
        logger.error(f"Initialization failed: {reason}")

    def require_ready(self) -> None:
        """
        Raise NotReady unless the system is READY.

        Raises:
            NotReady: While initializing, after failure, or before start
        """
        state = self._state
        if state is ReadinessState.READY:
            return
        if state is ReadinessState.FAILED:
            raise NotReady(f"Initialization failed: {self._error}")
        raise NotReady(f"System is {state.value}")
