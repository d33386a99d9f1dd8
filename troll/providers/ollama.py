"""Ollama provider for local models."""

import json
import uuid
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

import ollama

if TYPE_CHECKING:
    from troll.tools.base import Tool

from troll.config import DEFAULT_OLLAMA_MODEL, DEFAULT_OLLAMA_HOST
from troll.messages import AssistantMessage, Message, ToolCall, ToolMessage, UserMessage
from troll.providers.base import Provider, StreamEvent, Usage, tools_to_functions


def _parse_arguments(arguments: str) -> dict:
    try:
        args = json.loads(arguments)
    except json.JSONDecodeError:
        return {}
    return args if isinstance(args, dict) else {}


class OllamaProvider(Provider):
    """Ollama provider for local LLM inference."""

    name = "ollama"

    def __init__(
        self,
        model_id: str = DEFAULT_OLLAMA_MODEL,
        host: str = DEFAULT_OLLAMA_HOST,
    ):
        self.model_id = model_id
        self.client = ollama.AsyncClient(host=host)

    def _messages_to_ollama(
        self, messages: list[Message], system: str
    ) -> list[dict]:
        """Convert messages to Ollama's format."""
        ollama_messages = []

        if system:
            ollama_messages.append({"role": "system", "content": system})

        for msg in messages:
            match msg:
                case UserMessage(content=content):
                    ollama_messages.append({"role": "user", "content": content})
                case AssistantMessage(tool_calls=calls) if calls:
                    ollama_messages.append({
                        "role": "assistant",
                        "content": msg.content,
                        "tool_calls": [{
                            "function": {
                                "name": tc.name,
                                "arguments": _parse_arguments(tc.arguments),
                            },
                        } for tc in calls],
                    })
                case AssistantMessage(content=content):
                    if content:
                        ollama_messages.append({"role": "assistant", "content": content})
                case ToolMessage(content=content):
                    ollama_messages.append({"role": "tool", "content": content})

        return ollama_messages

    async def stream(
        self,
        messages: list[Message],
        tools: list["Tool"],
        system: str = "",
    ) -> AsyncIterator[StreamEvent]:
        """Stream a response from Ollama."""
        ollama_messages = self._messages_to_ollama(messages, system)

        tool_calls = []

        async for chunk in await self.client.chat(
            model=self.model_id,
            messages=ollama_messages,
            tools=tools_to_functions(tools) if tools else None,
            stream=True,
        ):
            message = chunk.get("message", {})

            # Handle text content
            if content := message.get("content"):
                yield StreamEvent(text=content)

            # Handle tool calls
            if tc_list := message.get("tool_calls"):
                if not tool_calls:
                    yield StreamEvent(tool_use_started=True)
                for tc in tc_list:
                    fn = tc.get("function", {})
                    # Ollama does not assign call ids; responses are matched by ours
                    tool_calls.append(ToolCall(
                        id=f"call_{uuid.uuid4().hex[:12]}",
                        name=fn.get("name", "unknown"),
                        arguments=json.dumps(fn.get("arguments") or {}),
                    ))

            # Check if done
            if chunk.get("done"):
                stop_reason = "tool_use" if tool_calls else "end_turn"
                yield StreamEvent(
                    tool_calls=tool_calls if tool_calls else None,
                    stop_reason=stop_reason,
                    usage=Usage(
                        input_tokens=chunk.get("prompt_eval_count") or 0,
                        output_tokens=chunk.get("eval_count") or 0,
                    ),
                )
