"""Process-wide registry of wizard sessions.

Each session owns one BackgroundGenerationStore for as long as the user keeps
the wizard open. Sessions idle longer than the TTL are purged; purging or
deleting a session cancels its background draft.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from ..background import BackgroundGenerationStore, DocumentGenerator

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_ID = "employment-agreement"


class SessionNotFoundError(KeyError):
    """No wizard session with that id (never created, deleted or expired)."""


@dataclass
class WizardSession:
    session_id: str
    template_id: str
    store: BackgroundGenerationStore
    created_at: float = field(default_factory=time.monotonic)
    last_active_at: float = field(default_factory=time.monotonic)

    def touch(self, now: Optional[float] = None) -> None:
        self.last_active_at = time.monotonic() if now is None else now


class WizardSessionRegistry:
    """Maps session ids to wizard sessions for the lifetime of the process."""

    def __init__(
        self,
        generator: DocumentGenerator,
        *,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.generator = generator
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, WizardSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(
        self,
        template_id: str = DEFAULT_TEMPLATE_ID,
        form_data: Optional[Mapping[str, Any]] = None,
    ) -> WizardSession:
        now = self._clock()
        session = WizardSession(
            session_id=uuid.uuid4().hex,
            template_id=template_id,
            store=BackgroundGenerationStore(self.generator),
            created_at=now,
            last_active_at=now,
        )
        if form_data:
            session.store.update_inputs(form_data)
        self._sessions[session.session_id] = session
        logger.info("[WIZARD] Session %s created (%s)", session.session_id, template_id)
        return session

    def get(self, session_id: str) -> WizardSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.touch(self._clock())
        return session

    async def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        await session.store.aclose()
        logger.info("[WIZARD] Session %s closed", session_id)

    async def purge_expired(self) -> int:
        """Close sessions idle for longer than the TTL. Returns how many were closed."""
        cutoff = self._clock() - self.ttl_seconds
        expired = [sid for sid, s in self._sessions.items() if s.last_active_at < cutoff]
        for session_id in expired:
            session = self._sessions.pop(session_id)
            await session.store.aclose()
        if expired:
            logger.info("[WIZARD] Purged %d expired session(s)", len(expired))
        return len(expired)

    async def aclose(self) -> None:
        """Cancel every session's background work (app shutdown)."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.store.aclose()
