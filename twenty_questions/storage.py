"""JSON file storage.

One JSON document per game session, so a turn's messages and its counter /
status update land in a single atomic file replace:

    {base}/
      sessions/
        {session_id}.json     ← {"session": {...}, "messages": [...]}

Writes go to a temp file in the same directory and are moved into place with
os.replace(). A process-wide lock serializes the read-check-write inside
commit_turn(), which is what makes concurrent turns on one session safe: the
loser of a race sees that the session has moved on and gets ConflictError.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Protocol

from twenty_questions.errors import ConflictError, SessionNotFound
from twenty_questions.models import GameSession, Message

logger = logging.getLogger(__name__)


class Storage(Protocol):
    def create_session(self, session: GameSession, messages: list[Message] | None = None) -> GameSession: ...
    def get_session(self, session_id: str) -> GameSession | None: ...
    def get_messages(self, session_id: str) -> list[Message]: ...
    def insert_messages(self, session_id: str, messages: list[Message]) -> None: ...
    def update_session(self, session_id: str, **fields: Any) -> GameSession: ...
    def commit_turn(
        self,
        session_id: str,
        messages: list[Message],
        expected_questions_asked: int,
        **fields: Any,
    ) -> GameSession: ...
    def purge_finished(self, older_than: timedelta) -> int: ...


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _message_key(m: Message) -> tuple[int, str, str]:
    return (m.question_number, m.role, m.message_type)


class JsonStorage:
    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._sessions = self._base / "sessions"
        self._sessions.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _session_file(self, session_id: str) -> Path:
        # ids are uuid hex; reject anything that could escape the directory
        if not session_id or not session_id.replace("-", "").isalnum():
            raise SessionNotFound("Game not found")
        return self._sessions / f"{session_id}.json"

    def _read_doc(self, session_id: str) -> dict | None:
        path = self._session_file(session_id)
        if not path.exists():
            return None
        return json.loads(path.read_text())

    def _write_doc(self, session_id: str, doc: dict) -> None:
        path = self._session_file(session_id)
        fd, tmp = tempfile.mkstemp(dir=self._sessions, prefix=f".{session_id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(doc, f, indent=2)
            os.replace(tmp, path)
        except OSError:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _load(self, session_id: str) -> tuple[GameSession, list[Message]]:
        doc = self._read_doc(session_id)
        if doc is None:
            raise SessionNotFound("Game not found")
        session = GameSession.model_validate(doc["session"])
        messages = [Message.model_validate(m) for m in doc.get("messages", [])]
        return session, messages

    def _save(self, session: GameSession, messages: list[Message]) -> None:
        self._write_doc(session.id, {
            "session": session.model_dump(),
            "messages": [m.model_dump() for m in messages],
        })

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(
        self, session: GameSession, messages: list[Message] | None = None
    ) -> GameSession:
        with self._lock:
            if self._session_file(session.id).exists():
                raise ConflictError(f"Session already exists: {session.id}")
            self._save(session, list(messages or []))
        logger.debug("created session id=%s mode=%s category=%s", session.id, session.mode, session.category)
        return session

    def get_session(self, session_id: str) -> GameSession | None:
        doc = self._read_doc(session_id)
        if doc is None:
            return None
        return GameSession.model_validate(doc["session"])

    def update_session(self, session_id: str, **fields: Any) -> GameSession:
        with self._lock:
            session, messages = self._load(session_id)
            session = session.model_copy(update={**fields, "updated_at": _now()})
            self._save(session, messages)
        return session

    # ------------------------------------------------------------------
    # Messages (append-only)
    # ------------------------------------------------------------------

    def get_messages(self, session_id: str) -> list[Message]:
        """Messages in insertion order (which is also created_at order)."""
        doc = self._read_doc(session_id)
        if doc is None:
            return []
        return [Message.model_validate(m) for m in doc.get("messages", [])]

    def insert_messages(self, session_id: str, messages: list[Message]) -> None:
        with self._lock:
            session, existing = self._load(session_id)
            existing.extend(messages)
            self._save(session, existing)

    # ------------------------------------------------------------------
    # Turn commit
    # ------------------------------------------------------------------

    def commit_turn(
        self,
        session_id: str,
        messages: list[Message],
        expected_questions_asked: int,
        **fields: Any,
    ) -> GameSession:
        """Append a turn's messages and update the session in one write.

        Rejected with ConflictError when the session's questions_asked no
        longer matches the value the turn was computed from, when the session
        already ended, or when a message for the same question slot, role and
        type is already stored.
        """
        with self._lock:
            session, existing = self._load(session_id)
            if session.questions_asked != expected_questions_asked:
                raise ConflictError("This turn was already processed; reload the game")
            if not session.is_active:
                raise ConflictError("Game is not active")
            taken = {_message_key(m) for m in existing if m.question_number > 0}
            for m in messages:
                if m.question_number > 0 and _message_key(m) in taken:
                    raise ConflictError(
                        f"Question {m.question_number} already has a {m.role} {m.message_type}"
                    )

            session = session.model_copy(update={**fields, "updated_at": _now()})
            existing.extend(messages)
            self._save(session, existing)

        logger.debug(
            "committed turn session=%s messages=%d questions_asked=%d status=%s",
            session_id, len(messages), session.questions_asked, session.status,
        )
        return session

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def purge_finished(self, older_than: timedelta) -> int:
        """Delete finished sessions last updated before now - older_than."""
        cutoff = datetime.now(timezone.utc) - older_than
        removed = 0
        for path in self._sessions.glob("*.json"):
            try:
                session = GameSession.model_validate(json.loads(path.read_text())["session"])
                if session.is_active or datetime.fromisoformat(session.updated_at) >= cutoff:
                    continue
                path.unlink()
                removed += 1
            except (OSError, ValueError, KeyError) as e:
                logger.warning("purge skipped %s: %s", path.name, e)
        if removed:
            logger.info("purged %d finished sessions", removed)
        return removed
