"""Core message types for Troll."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Union

from troll.structured import StructuredPayload, dump_payload, load_payload

Role = Literal["user", "assistant", "tool"]


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ToolCall:
    """A request from the LLM to execute a tool.

    ``arguments`` is kept as the raw JSON string the model produced; the
    dispatcher is the only place that parses it.
    """
    id: str
    name: str
    arguments: str = "{}"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "arguments": self.arguments}

    @classmethod
    def from_dict(cls, data: dict) -> "ToolCall":
        return cls(id=data["id"], name=data["name"], arguments=data.get("arguments") or "{}")


@dataclass
class UserMessage:
    """Text typed by the user."""
    content: str
    id: str = field(default_factory=_new_id)
    created_at: str = field(default_factory=_now)
    role: Literal["user"] = field(default="user", init=False)


@dataclass
class AssistantMessage:
    """A model reply: either a final answer or a pending tool call."""
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    structured_output: StructuredPayload | None = None
    id: str = field(default_factory=_new_id)
    created_at: str = field(default_factory=_now)
    role: Literal["assistant"] = field(default="assistant", init=False)


@dataclass
class ToolMessage:
    """The string result of one tool call."""
    tool_call_id: str
    content: str
    id: str = field(default_factory=_new_id)
    created_at: str = field(default_factory=_now)
    role: Literal["tool"] = field(default="tool", init=False)


Message = Union[UserMessage, AssistantMessage, ToolMessage]


def message_to_dict(msg: Message) -> dict[str, Any]:
    """Serialize a message to plain JSON-compatible data."""
    data: dict[str, Any] = {
        "id": msg.id,
        "createdAt": msg.created_at,
        "role": msg.role,
        "content": msg.content,
    }
    match msg:
        case UserMessage():
            pass
        case AssistantMessage(tool_calls=calls, structured_output=payload):
            if calls:
                data["tool_calls"] = [tc.to_dict() for tc in calls]
            if payload is not None:
                data["structuredOutput"] = dump_payload(payload)
        case ToolMessage(tool_call_id=call_id):
            data["tool_call_id"] = call_id
    return data


def message_from_dict(data: dict[str, Any]) -> Message:
    """Rebuild a message from :func:`message_to_dict` output."""
    meta = {}
    if data.get("id"):
        meta["id"] = data["id"]
    if data.get("createdAt"):
        meta["created_at"] = data["createdAt"]

    role = data.get("role")
    content = data.get("content") or ""
    if role == "user":
        return UserMessage(content=content, **meta)
    if role == "assistant":
        raw_payload = data.get("structuredOutput")
        return AssistantMessage(
            content=content,
            tool_calls=[ToolCall.from_dict(tc) for tc in data.get("tool_calls") or []],
            structured_output=load_payload(raw_payload) if raw_payload else None,
            **meta,
        )
    if role == "tool":
        return ToolMessage(tool_call_id=data["tool_call_id"], content=content, **meta)
    raise ValueError(f"Unknown message role: {role!r}")
