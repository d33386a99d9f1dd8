"""Session persistence: an ordered message log plus a rolling summary."""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from troll.config import DEFAULT_DB_PATH, DEFAULT_SESSION_ID
from troll.messages import Message, message_from_dict, message_to_dict

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """One conversation as stored."""
    messages: list[Message] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> dict:
        return {
            "messages": [message_to_dict(m) for m in self.messages],
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        return cls(
            messages=[message_from_dict(m) for m in data.get("messages", [])],
            summary=data.get("summary", ""),
        )


def resolve_session_id(session_id: str | None) -> str:
    """Map a missing session id to the shared default session."""
    return session_id or DEFAULT_SESSION_ID


class MessageStore(ABC):
    """Abstract key-value store of sessions.

    ``get`` always returns a fresh copy; callers write changes back with
    ``put``.
    """

    @abstractmethod
    def get(self, session_id: str | None = None) -> Session:
        """Return the session, or an empty one if it does not exist."""
        pass

    @abstractmethod
    def put(self, session_id: str | None, session: Session) -> None:
        """Replace the stored session."""
        pass

    @abstractmethod
    def session_ids(self) -> list[str]:
        """Return the ids of all stored sessions."""
        pass

    @abstractmethod
    def reset(self, session_id: str | None = None) -> None:
        """Forget a session's messages and summary."""
        pass


class InMemoryStore(MessageStore):
    """Process-local store, used by tests and one-shot runs."""

    def __init__(self):
        self._sessions: dict[str, dict] = {}

    def get(self, session_id: str | None = None) -> Session:
        data = self._sessions.get(resolve_session_id(session_id))
        return Session.from_dict(data) if data else Session()

    def put(self, session_id: str | None, session: Session) -> None:
        self._sessions[resolve_session_id(session_id)] = session.to_dict()

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    def reset(self, session_id: str | None = None) -> None:
        self._sessions.pop(resolve_session_id(session_id), None)


class JsonFileStore(MessageStore):
    """All sessions in one JSON file: ``{"sessions": {id: session}}``."""

    def __init__(self, path: str | Path = DEFAULT_DB_PATH):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {"sessions": {}}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable session file %s", self.path)
            return {"sessions": {}}
        # Files written before multi-session support held one bare session
        if "sessions" not in data:
            if "messages" in data:
                return {"sessions": {DEFAULT_SESSION_ID: data}}
            return {"sessions": {}}
        return data

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, session_id: str | None = None) -> Session:
        data = self._read()["sessions"].get(resolve_session_id(session_id))
        return Session.from_dict(data) if data else Session()

    def put(self, session_id: str | None, session: Session) -> None:
        data = self._read()
        data["sessions"][resolve_session_id(session_id)] = session.to_dict()
        self._write(data)

    def session_ids(self) -> list[str]:
        return list(self._read()["sessions"])

    def reset(self, session_id: str | None = None) -> None:
        data = self._read()
        if data["sessions"].pop(resolve_session_id(session_id), None) is not None:
            self._write(data)
