"""
Shared in-memory state for chat sessions.

Sessions live for the lifetime of the server process and are not
persisted. Each entry remembers its owner so one user cannot read or
drive another user's session.
"""
import gc
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from core.errors import SessionConflictError, SessionNotFoundError
from models.chat import Message

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    session: object  # PDFChatSession or anything with ask/get_chat_history
    owner_id: Optional[str] = None
    file_id: Optional[str] = None
    document_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SessionStore:
    def __init__(self):
        self._sessions: Dict[str, SessionEntry] = {}

    def add(
        self,
        session_id: str,
        session,
        owner_id: Optional[str] = None,
        file_id: Optional[str] = None,
        document_id: Optional[str] = None,
    ) -> SessionEntry:
        """Store a session, replacing one the same owner already holds under this id."""
        self.ensure_available(session_id, owner_id)
        previous = self._sessions.pop(session_id, None)
        if previous is not None:
            _close(previous)
        entry = SessionEntry(session=session, owner_id=owner_id, file_id=file_id, document_id=document_id)
        self._sessions[session_id] = entry
        logger.info("Session %s stored (%d active)", session_id, len(self._sessions))
        return entry

    def ensure_available(self, session_id: str, owner_id: Optional[str] = None) -> None:
        existing = self._sessions.get(session_id)
        if existing is not None and existing.owner_id not in (None, owner_id):
            raise SessionConflictError()

    def entry(self, session_id: str, owner_id: Optional[str] = None) -> SessionEntry:
        entry = self._sessions.get(session_id)
        if entry is None or (owner_id is not None and entry.owner_id not in (None, owner_id)):
            raise SessionNotFoundError()
        return entry

    def get(self, session_id: str, owner_id: Optional[str] = None):
        return self.entry(session_id, owner_id).session

    def history(self, session_id: str, owner_id: Optional[str] = None) -> List[Message]:
        try:
            session = self.get(session_id, owner_id)
        except SessionNotFoundError:
            return []
        return session.get_chat_history()

    def remove(self, session_id: str, owner_id: Optional[str] = None) -> bool:
        try:
            self.entry(session_id, owner_id)
        except SessionNotFoundError:
            return False
        _close(self._sessions.pop(session_id))
        gc.collect()
        return True

    def remove_for_file(self, file_id: str) -> int:
        stale = [sid for sid, entry in self._sessions.items() if entry.file_id == file_id]
        for session_id in stale:
            _close(self._sessions.pop(session_id))
        if stale:
            gc.collect()
        return len(stale)

    def clear(self) -> None:
        for entry in self._sessions.values():
            _close(entry)
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions


def _close(entry: SessionEntry) -> None:
    close = getattr(entry.session, "close", None)
    if close is not None:
        close()


session_store = SessionStore()
