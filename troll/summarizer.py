"""Rolling conversation summaries, produced by the LLM."""

import asyncio
import logging

from troll.config import SUMMARY_TIMEOUT
from troll.messages import AssistantMessage, Message, ToolMessage, UserMessage
from troll.providers import Provider

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = """Create a concise conversation summary focusing on the actual dialogue between user and assistant. Include:
- What the user asked for or discussed
- Key topics and user preferences mentioned
- Important decisions or choices made
- Any ongoing themes or context

Do NOT include detailed tool outputs, technical details, or raw data. Focus on the human conversation flow and what was actually discussed between user and assistant. Keep it concise (2-4 paragraphs max)."""

PLACEHOLDER = "[tool call or structured output]"


def transcript_line(msg: Message) -> str:
    """Render one message as ``role: text`` for the summary prompt."""
    match msg:
        case UserMessage(content=content):
            return f"user: {content}"
        case AssistantMessage(content=content, structured_output=payload):
            if content:
                return f"assistant: {content}"
            if payload is not None:
                return f"assistant: [{payload.type}] {payload.metadata.title}"
            return f"assistant: {PLACEHOLDER}"
        case ToolMessage():
            return f"tool: {PLACEHOLDER}"


def fallback_summary(messages: list[Message], previous_summary: str = "") -> str:
    return previous_summary or f"Previous conversation had {len(messages)} messages about various topics."


class Summarizer:
    """Summarizes the messages dropped from a session's log.

    A slow or failing model never blocks the turn: after ``timeout`` seconds,
    or on any provider error, the previous summary (or a generic sentence)
    is returned instead.
    """

    def __init__(self, provider: Provider, timeout: float = SUMMARY_TIMEOUT):
        self.provider = provider
        self.timeout = timeout

    def build_prompt(self, messages: list[Message], previous_summary: str = "") -> str:
        conversation = "\n".join(transcript_line(m) for m in messages)
        if previous_summary:
            return (
                f"Previous summary:\n{previous_summary}\n\n"
                f"New conversation to add:\n{conversation}\n\n"
                "Provide an updated summary that combines both."
            )
        return f"Summarize this conversation:\n{conversation}"

    async def _complete(self, prompt: str, system: str) -> str:
        text = ""
        async for event in self.provider.stream([UserMessage(prompt)], [], system=system):
            text += event.text
        return text.strip()

    async def summarize(self, messages: list[Message], previous_summary: str = "") -> str:
        if not messages:
            return previous_summary

        system = SUMMARY_SYSTEM_PROMPT
        if previous_summary:
            system += "\n\nA previous summary exists. Update it with new information, combining both summaries coherently."

        try:
            summary = await asyncio.wait_for(
                self._complete(self.build_prompt(messages, previous_summary), system),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Summarization timed out after %.0fs", self.timeout)
            return fallback_summary(messages, previous_summary)
        except Exception:
            logger.warning("Summarization failed", exc_info=True)
            return fallback_summary(messages, previous_summary)

        return summary or fallback_summary(messages, previous_summary)
