"""Conversion session orchestration.

One ``ConversionSession`` serves one perspective-conversion request:

    created ──start()──▶ streaming ──Done──▶ completed
       │                     ├──────Error─▶ failed
       │                     └──cancel()──▶ aborted
       └── roles or upstream unavailable ─▶ failed

Terminal states are final. Role and configuration failures never reach the
backend. They, and failures to open the upstream call, are reported as a
bridge holding a single ``Error`` event so the caller can stream them like
any other outcome.
"""

import logging
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .errors import (
    CompletionError,
    PerspectraError,
    RoleConfigurationMissingError,
    RoleNotFoundError,
    RoleSide,
    SessionStateError,
)
from .llm.base import CompletionSource
from .llm.models import CancelHandle
from .prompts import build_prompts
from .roles.registry import RoleRegistry
from .stream.bridge import StreamBridge
from .stream.events import EventType, StreamEvent

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    CREATED = "created"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.FAILED, SessionState.ABORTED)


_TERMINAL_STATES = {
    EventType.DONE: SessionState.COMPLETED,
    EventType.ERROR: SessionState.FAILED,
    EventType.ABORTED: SessionState.ABORTED,
}


class ConversionRequest(BaseModel):
    """A single perspective conversion.

    Source and target may name the same role.
    """

    model_config = ConfigDict(frozen=True)

    source_role_id: str = Field(min_length=1)
    target_role_id: str = Field(min_length=1)
    content: str = Field(min_length=1)


class ConversionSession:
    """Owns the upstream call, its bridge and its cancel handle."""

    def __init__(
        self,
        request: ConversionRequest,
        registry: RoleRegistry,
        source: CompletionSource,
        session_id: str | None = None,
    ):
        self.request = request
        self.session_id = session_id or uuid4().hex[:12]
        self._registry = registry
        self._source = source
        self._state = SessionState.CREATED
        self._bridge: StreamBridge | None = None
        self._cancel_handle: CancelHandle | None = None
        self._error: PerspectraError | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def bridge(self) -> StreamBridge | None:
        return self._bridge

    @property
    def cancel_handle(self) -> CancelHandle | None:
        """Upstream cancel handle, available once streaming."""
        return self._cancel_handle

    @property
    def error(self) -> PerspectraError | None:
        """Why the session failed before reaching the backend, if it did."""
        return self._error

    def start(self) -> StreamBridge:
        """Resolve roles, build prompts and open the upstream stream.

        Must run inside the event loop that will serve the stream.

        Returns:
            The session's bridge. When the roles cannot be resolved or the
            upstream call cannot be opened it already holds the single terminal
            ``Error`` event.

        Raises:
            SessionStateError: The session was already started
        """
        if self._state is not SessionState.CREATED:
            raise SessionStateError(f"Session {self.session_id} already started ({self._state.value})")

        name = f"session-{self.session_id}"
        try:
            source_role = self._registry.resolve(self.request.source_role_id, RoleSide.SOURCE)
            target_role = self._registry.resolve(self.request.target_role_id, RoleSide.TARGET)
        except (RoleConfigurationMissingError, RoleNotFoundError) as e:
            logger.warning("Session %s rejected: %s", self.session_id, e)
            self._error = e
            self._state = SessionState.FAILED
            self._bridge = StreamBridge.failed(str(e), name=name)
            return self._bridge

        logger.info(
            "Converting perspective from %s to %s",
            source_role.display_name,
            target_role.display_name,
        )
        try:
            prompt = build_prompts(source_role, target_role, self.request.content)
            stream, cancel_handle = self._source.start(prompt.to_messages())
        except Exception as e:
            logger.warning("Session %s could not start the completion: %s", self.session_id, e)
            if isinstance(e, PerspectraError):
                self._error = e
            else:
                self._error = CompletionError(str(e) or type(e).__name__)
                self._error.__cause__ = e
            self._state = SessionState.FAILED
            self._bridge = StreamBridge.failed(str(e) or type(e).__name__, name=name)
            return self._bridge

        self._cancel_handle = cancel_handle
        self._bridge = StreamBridge(stream, cancel_handle, name=name)
        self._state = SessionState.STREAMING
        self._bridge.add_terminal_callback(self._on_terminal)

        logger.info("Perspective conversion stream started (session %s)", self.session_id)
        return self._bridge

    def cancel(self) -> bool:
        """Abort the upstream call.

        Shared by explicit cancellation and transport disconnects; only the
        first call on a streaming session has an effect.

        Returns:
            True if this call aborted the session
        """
        if self._bridge is None or self._state.is_terminal:
            return False
        return self._bridge.abort()

    def _on_terminal(self, event: StreamEvent) -> None:
        if self._state.is_terminal:
            return
        self._state = _TERMINAL_STATES[event.type]
        logger.info("Session %s finished: %s", self.session_id, self._state.value)
