"""In-memory store of fill sessions.

Sessions live for the lifetime of the process. Each session has its own
asyncio lock so that two transitions on the same session never interleave,
while different sessions proceed independently.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Literal, Optional

from formpilot.config import config
from formpilot.errors import SessionNotFound
from formpilot.models import FillSession, FormSchema, HistoryTurn, SourceDocument

logger = logging.getLogger(__name__)


class SessionStore:
    """Key-value store of :class:`FillSession` objects."""

    def __init__(self, ttl_seconds: Optional[int] = None):
        self._sessions: Dict[str, FillSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.ttl = timedelta(seconds=ttl_seconds if ttl_seconds is not None else config.SESSION_TTL_SECONDS)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def create(self, schema: FormSchema, source_document: Optional[SourceDocument] = None) -> str:
        """Create a session for ``schema`` and return its id."""
        session_id = str(uuid.uuid4())
        self._sessions[session_id] = FillSession(
            session_id=session_id,
            form_schema=schema,
            source_document=source_document,
        )
        self._locks[session_id] = asyncio.Lock()
        logger.info(f"🆕 Created session {session_id} with {len(schema.fields)} fields")
        return session_id

    def get(self, session_id: str) -> Optional[FillSession]:
        """Session data or None if not found."""
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> FillSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def lock(self, session_id: str) -> asyncio.Lock:
        """The mutual-exclusion scope of one session."""
        self.require(session_id)
        return self._locks[session_id]

    def record_value(self, session_id: str, field_id: str, value: str):
        session = self.require(session_id)
        if session.form_schema.field_index(field_id) < 0:
            raise KeyError(f"Unknown field id for session {session_id}: {field_id}")
        session.values[field_id] = value
        self._touch(session)

    def append_history(self, session_id: str, role: Literal["user", "assistant"], text: str):
        session = self.require(session_id)
        session.history.append(HistoryTurn(role=role, content=text))
        self._touch(session)

    def advance_cursor(self, session_id: str) -> int:
        session = self.require(session_id)
        if session.cursor < session.form_schema.total_fields:
            session.cursor += 1
        self._touch(session)
        return session.cursor

    def mark_complete(self, session_id: str):
        session = self.require(session_id)
        session.complete = True
        self._touch(session)

    def dispose(self, session_id: str):
        """Remove a session and release its source document. Unknown ids are ignored."""
        session = self._sessions.pop(session_id, None)
        self._locks.pop(session_id, None)
        if session is None:
            return
        if session.source_document is not None:
            session.source_document.release()
        logger.info(f"🗑️ Disposed session {session_id}")

    def cleanup_expired(self, now: Optional[datetime] = None) -> List[str]:
        """Dispose sessions idle for longer than the TTL."""
        now = now or datetime.now()
        expired = [
            session_id for session_id, session in self._sessions.items()
            if now - session.last_activity > self.ttl
        ]
        for session_id in expired:
            self.dispose(session_id)

        if expired:
            logger.info(f"🧹 Expired {len(expired)} idle sessions")
        return expired

    def _touch(self, session: FillSession):
        session.last_activity = datetime.now()


# Global store instance
session_store = SessionStore()
