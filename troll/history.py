"""Bounded conversation history with summarization of overflow."""

import logging
from typing import Protocol

from troll.config import COMPACT_BATCH, MAX_LOG_MESSAGES, WINDOW_SIZE
from troll.messages import AssistantMessage, Message, ToolMessage
from troll.store import MessageStore

logger = logging.getLogger(__name__)


class SupportsSummarize(Protocol):
    async def summarize(self, messages: list[Message], previous_summary: str = "") -> str: ...


def _response_index(messages: list[Message], call_id: str, after: int) -> int | None:
    for idx in range(after + 1, len(messages)):
        msg = messages[idx]
        if isinstance(msg, ToolMessage) and msg.tool_call_id == call_id:
            return idx
    return None


def compaction_boundary(messages: list[Message], batch: int = COMPACT_BATCH) -> int:
    """Number of leading messages to summarize away.

    Starts at ``batch`` and moves forward past the response of every tool
    call inside the range, so no call/response pair is split.
    """
    boundary = min(batch, len(messages))
    idx = 0
    while idx < boundary:
        msg = messages[idx]
        if isinstance(msg, AssistantMessage):
            for call in msg.tool_calls:
                response = _response_index(messages, call.id, idx)
                if response is not None and response + 1 > boundary:
                    boundary = response + 1
        idx += 1
    return boundary


def repair_window(messages: list[Message], size: int = WINDOW_SIZE) -> list[Message]:
    """Return the newest ``size`` messages with orphaned tool responses removed.

    A tool message is kept only if the assistant message that issued its
    call is also in the window. Pulling the initiating message in from the
    left would push the window past ``size``, so the orphan is dropped.
    """
    window = messages[-size:] if size else []
    issued: set[str] = set()
    repaired = []
    for msg in window:
        match msg:
            case AssistantMessage(tool_calls=calls):
                issued.update(tc.id for tc in calls)
            case ToolMessage(tool_call_id=call_id) if call_id not in issued:
                logger.debug("Dropping tool response %s: its call is outside the window", call_id)
                continue
        repaired.append(msg)
    return repaired


class HistoryCompactor:
    """Appends to a session's log and serves the window sent to the LLM.

    When the log reaches ``max_log`` messages, the oldest ``batch`` (extended
    to keep tool pairs whole) are folded into the session summary and
    removed.
    """

    def __init__(
        self,
        store: MessageStore,
        summarizer: SupportsSummarize,
        window_size: int = WINDOW_SIZE,
        max_log: int = MAX_LOG_MESSAGES,
        batch: int = COMPACT_BATCH,
    ):
        self.store = store
        self.summarizer = summarizer
        self.window_size = window_size
        self.max_log = max_log
        self.batch = batch

    async def append(self, session_id: str | None, messages: list[Message]) -> None:
        session = self.store.get(session_id)
        session.messages.extend(messages)

        while len(session.messages) >= self.max_log:
            boundary = compaction_boundary(session.messages, self.batch)
            removed = session.messages[:boundary]
            logger.info(
                "Compacting session %s: summarizing %d of %d messages",
                session_id, len(removed), len(session.messages),
            )
            session.summary = await self.summarizer.summarize(removed, session.summary)
            session.messages = session.messages[boundary:]

        self.store.put(session_id, session)

    def get_window(self, session_id: str | None) -> list[Message]:
        return repair_window(self.store.get(session_id).messages, self.window_size)

    def get_summary(self, session_id: str | None) -> str:
        return self.store.get(session_id).summary

    def get_log(self, session_id: str | None) -> list[Message]:
        """The full stored log, oldest first."""
        return self.store.get(session_id).messages
