"""
Purpose: Owns the chat list and the ephemeral draft that precedes it.
Every write replaces the whole tuple under a lock (copy-on-write), so a
reader holding the previous tuple never sees a partial update.

Lifecycle:
- start_new_chat() makes a fresh draft and makes it active.
- append() routes to the persisted session when one exists for the id,
  otherwise to the draft. The first assistant message promotes the draft
  exactly once.
- An optional SessionBackend is told about every change.

Testing: Plain state tests; pass a fake backend to see saves/deletes.
"""

from __future__ import annotations
import logging
import threading
from dataclasses import replace
from typing import Optional

from ..interfaces import SessionBackend
from ..models import ChatSession, Message, Role, derive_title, new_id

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, backend: Optional[SessionBackend] = None) -> None:
        self._lock = threading.Lock()
        self._backend = backend
        self._sessions: tuple[ChatSession, ...] = ()
        self._draft: Optional[ChatSession] = None
        self.active_id: Optional[str] = None

        if backend is not None:
            self._sessions = tuple(backend.list())

    # ---------------------------
    # Reads
    # ---------------------------
    @property
    def sessions(self) -> tuple[ChatSession, ...]:
        return self._sessions

    def list_sessions(self, *, include_archived: bool = False) -> list[ChatSession]:
        """Newest first."""
        items = [s for s in self._sessions if include_archived or not s.archived]
        return sorted(items, key=lambda s: s.last_modified, reverse=True)

    def get(self, session_id: Optional[str]) -> Optional[ChatSession]:
        if session_id is None:
            return None
        found = next((s for s in self._sessions if s.id == session_id), None)
        if found is not None:
            return found
        draft = self._draft
        if draft is not None and draft.id == session_id:
            return draft
        return None

    def active(self) -> Optional[ChatSession]:
        return self.get(self.active_id)

    def active_messages(self) -> tuple[Message, ...]:
        current = self.active()
        return current.messages if current else ()

    def is_active(self, session_id: Optional[str]) -> bool:
        return session_id is not None and session_id == self.active_id

    # ---------------------------
    # Writes
    # ---------------------------
    def start_new_chat(self) -> str:
        """Drop any unfinished draft and activate a fresh one."""
        with self._lock:
            if self._draft is not None and self._draft.messages:
                logger.debug(
                    "Discarding draft %s with %d message(s)",
                    self._draft.id,
                    len(self._draft.messages),
                )
            self._draft = ChatSession(id=new_id())
            self.active_id = self._draft.id
            return self.active_id

    def select(self, session_id: str) -> ChatSession:
        with self._lock:
            found = next((s for s in self._sessions if s.id == session_id), None)
            if found is None:
                raise KeyError(f"Unknown session: {session_id}")
            self.active_id = session_id
            return found

    def append(self, session_id: str, message: Message) -> Optional[ChatSession]:
        """
        Append to the persisted session or the draft. Returns the updated
        session, or None when the id matches neither (stale in-flight work).
        """
        with self._lock:
            if any(s.id == session_id for s in self._sessions):
                updated = self._replace(
                    session_id, lambda s: s.with_message(message)
                )
                self._save(updated)
                return updated

            draft = self._draft
            if draft is None or draft.id != session_id:
                logger.debug("Dropping message for stale session %s", session_id)
                return None

            draft = draft.with_message(message)
            if message.role == Role.USER and not draft.user_questions()[:-1]:
                draft = replace(draft, title=derive_title(message.content))

            if message.role == Role.ASSISTANT:
                self._sessions = (draft,) + self._sessions
                self._draft = None
                logger.info("Promoted chat %s (%r)", draft.id, draft.title)
                self._save(draft)
            else:
                self._draft = draft
            return draft

    def update_message(
        self, session_id: str, message_id: str, **changes
    ) -> Optional[Message]:
        with self._lock:
            target = self.get(session_id)
            if target is None:
                return None
            msg = next((m for m in target.messages if m.id == message_id), None)
            if msg is None:
                return None
            new_msg = replace(msg, **changes)
            messages = tuple(new_msg if m.id == message_id else m for m in target.messages)

            if self._draft is not None and self._draft.id == session_id:
                self._draft = replace(self._draft, messages=messages)
            else:
                self._save(
                    self._replace(session_id, lambda s: replace(s, messages=messages))
                )
            return new_msg

    def finish_reveal(self, session_id: str, message_id: str) -> bool:
        """Clear is_revealing. Second call for the same message is a no-op."""
        target = self.get(session_id)
        msg = (
            next((m for m in target.messages if m.id == message_id), None)
            if target
            else None
        )
        if msg is None or not msg.is_revealing:
            return False
        return self.update_message(session_id, message_id, is_revealing=False) is not None

    def flag_escalation(self, session_id: str, message_id: str) -> bool:
        """Set needs_escalation on one message; never cleared afterwards."""
        return (
            self.update_message(session_id, message_id, needs_escalation=True)
            is not None
        )

    def mark_escalation_sent(self, session_id: str) -> bool:
        return self._update_session(session_id, escalation_sent=True)

    def archive(self, session_id: str) -> bool:
        return self._update_session(session_id, archived=True)

    def unarchive(self, session_id: str) -> bool:
        return self._update_session(session_id, archived=False)

    def delete(self, session_id: str) -> bool:
        with self._lock:
            before = len(self._sessions)
            self._sessions = tuple(s for s in self._sessions if s.id != session_id)
            removed = len(self._sessions) != before
            if removed and self._backend is not None:
                self._backend.delete(session_id)
            if removed and self.active_id == session_id:
                self.active_id = None
            return removed

    # ---------------------------
    # Internals
    # ---------------------------
    def _update_session(self, session_id: str, **changes) -> bool:
        with self._lock:
            if not any(s.id == session_id for s in self._sessions):
                return False
            self._save(self._replace(session_id, lambda s: replace(s, **changes)))
            return True

    def _replace(self, session_id: str, fn) -> ChatSession:
        updated: Optional[ChatSession] = None
        out = []
        for s in self._sessions:
            if s.id == session_id:
                updated = fn(s)
                out.append(updated)
            else:
                out.append(s)
        self._sessions = tuple(out)
        return updated

    def _save(self, session: Optional[ChatSession]) -> None:
        if session is not None and self._backend is not None:
            self._backend.save(session)
