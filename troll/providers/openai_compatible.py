"""OpenAI provider, plus OpenAI-compatible servers (VLLM, LocalAI, llama.cpp, etc.)."""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from openai import AsyncOpenAI

if TYPE_CHECKING:
    from troll.tools.base import Tool

from troll.config import DEFAULT_OPENAI_MODEL, DEFAULT_TEMPERATURE
from troll.messages import AssistantMessage, Message, ToolCall, ToolMessage, UserMessage
from troll.providers.base import Provider, StreamEvent, Usage, tools_to_functions

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(Provider):
    """Provider for OpenAI-compatible servers (VLLM, LocalAI, llama.cpp, etc.)."""

    name = "openai_compatible"

    def __init__(
        self,
        model_id: str,
        host: str,
        api_key: str = "EMPTY",
        temperature: float | None = None,
    ):
        """Initialize the OpenAI-compatible provider.

        Args:
            model_id: Model name on the server (required)
            host: Server URL without /v1 suffix (required)
            api_key: API key, defaults to "EMPTY" for servers without auth
            temperature: Sampling temperature, server default if None
        """
        self.model_id = model_id
        self.temperature = temperature
        self.client = AsyncOpenAI(base_url=f"{host}/v1", api_key=api_key)

    def _messages_to_openai(
        self, messages: list[Message], system: str
    ) -> list[dict]:
        """Convert messages to OpenAI's format."""
        openai_messages = []

        if system:
            openai_messages.append({"role": "system", "content": system})

        for msg in messages:
            match msg:
                case UserMessage(content=content):
                    openai_messages.append({"role": "user", "content": content})
                case AssistantMessage(tool_calls=calls) if calls:
                    openai_messages.append({
                        "role": "assistant",
                        "content": msg.content or None,
                        "tool_calls": [{
                            "id": tc.id,
                            "type": "function",
                            "function": {
                                "name": tc.name,
                                "arguments": tc.arguments,
                            },
                        } for tc in calls],
                    })
                case AssistantMessage(content=content):
                    # Replies whose text was replaced by a structured payload
                    # are display-only and break the tool-call sequence.
                    if content:
                        openai_messages.append({"role": "assistant", "content": content})
                case ToolMessage(tool_call_id=call_id, content=content):
                    openai_messages.append({
                        "role": "tool",
                        "tool_call_id": call_id,
                        "content": content,
                    })

        return openai_messages

    def _request_kwargs(self, messages: list[Message], tools: list["Tool"], system: str) -> dict:
        kwargs = {
            "model": self.model_id,
            "messages": self._messages_to_openai(messages, system),
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if tools:
            kwargs["tools"] = tools_to_functions(tools)
            kwargs["tool_choice"] = "auto"
        return kwargs

    async def stream(
        self,
        messages: list[Message],
        tools: list["Tool"],
        system: str = "",
    ) -> AsyncIterator[StreamEvent]:
        """Stream one chat completion, yielding text as it arrives.

        Tool calls arrive as fragments keyed by index and are only emitted,
        complete, in the final event along with the usage totals.
        """
        kwargs = self._request_kwargs(messages, tools, system)
        logger.debug("chat.completions request: model=%s messages=%d", self.model_id, len(kwargs["messages"]))

        partial: dict[int, _PartialCall] = {}
        usage = None
        finish = None

        async for chunk in await self.client.chat.completions.create(**kwargs):
            # The usage chunk comes last, after finish_reason, with no choices
            if chunk.usage:
                usage = Usage(
                    input_tokens=chunk.usage.prompt_tokens,
                    output_tokens=chunk.usage.completion_tokens,
                )
            if not chunk.choices:
                continue

            choice = chunk.choices[0]
            if choice.delta.content:
                yield StreamEvent(text=choice.delta.content)

            for fragment in choice.delta.tool_calls or []:
                if not partial:
                    yield StreamEvent(tool_use_started=True)
                partial.setdefault(fragment.index, _PartialCall()).add(fragment)

            finish = choice.finish_reason or finish

        if finish is None:
            return

        calls = [partial[idx].to_tool_call() for idx in sorted(partial)]
        yield StreamEvent(
            tool_calls=calls or None,
            stop_reason="tool_use" if finish == "tool_calls" else "end_turn",
            usage=usage,
        )


@dataclass
class _PartialCall:
    """A tool call being assembled from streamed fragments."""
    id: str = ""
    name: str = ""
    arguments: str = ""

    def add(self, fragment) -> None:
        if fragment.id:
            self.id = fragment.id
        if fragment.function:
            self.name = fragment.function.name or self.name
            self.arguments += fragment.function.arguments or ""

    def to_tool_call(self) -> ToolCall:
        # Arguments stay a raw string; the dispatcher reports bad JSON
        return ToolCall(id=self.id, name=self.name, arguments=self.arguments or "{}")


class OpenAIProvider(OpenAICompatibleProvider):
    """The hosted OpenAI API. Reads OPENAI_API_KEY from the environment."""

    name = "openai"

    def __init__(
        self,
        model_id: str = DEFAULT_OPENAI_MODEL,
        api_key: str | None = None,
        temperature: float | None = DEFAULT_TEMPERATURE,
    ):
        self.model_id = model_id
        self.temperature = temperature
        self.client = AsyncOpenAI(api_key=api_key)

    def _request_kwargs(self, messages: list[Message], tools: list["Tool"], system: str) -> dict:
        kwargs = super()._request_kwargs(messages, tools, system)
        if tools:
            # One tool call per turn; see Agent._loop
            kwargs["parallel_tool_calls"] = False
        return kwargs
