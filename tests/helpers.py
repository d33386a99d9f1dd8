"""Test doubles shared across the suite."""

import json

from troll.messages import ToolCall
from troll.providers.base import Provider, StreamEvent, Usage
from troll.tools.base import Tool, ToolInput


class ScriptedProvider(Provider):
    """Replays canned replies: a str is a final answer, a list of ToolCall is a tool request."""

    name = "scripted"

    def __init__(self, replies=None, repeat_last: bool = False):
        self.replies = list(replies or [])
        self.repeat_last = repeat_last
        self.calls: list[dict] = []

    async def stream(self, messages, tools, system=""):
        self.calls.append({"messages": list(messages), "tools": list(tools), "system": system})
        if len(self.replies) > 1 or not self.repeat_last:
            reply = self.replies.pop(0)
        else:
            reply = self.replies[0]

        if isinstance(reply, str):
            if reply:
                yield StreamEvent(text=reply)
            yield StreamEvent(stop_reason="end_turn", usage=Usage(10, 5))
        else:
            yield StreamEvent(tool_use_started=True)
            yield StreamEvent(tool_calls=list(reply), stop_reason="tool_use")


class RecordingSummarizer:
    def __init__(self, summary: str = "summary"):
        self.summary = summary
        self.calls: list[tuple[list, str]] = []

    async def summarize(self, messages, previous_summary=""):
        self.calls.append((list(messages), previous_summary))
        return self.summary


class EchoTool(Tool):
    name = "echo"
    description = "Echo the text argument."
    parameters = {"type": "object", "properties": {"text": {"type": "string"}}}

    def __init__(self, result: str | None = None):
        self.result = result
        self.inputs: list[ToolInput] = []

    def execute(self, tool_input: ToolInput) -> str:
        self.inputs.append(tool_input)
        return self.result if self.result is not None else tool_input.tool_args.get("text", "")


class FakeImageTool(Tool):
    name = "generate_image"
    description = "Generate an image."
    parameters = {"type": "object", "properties": {"prompt": {"type": "string"}}}
    requires_approval = True

    def __init__(self):
        self.inputs: list[ToolInput] = []

    def execute(self, tool_input: ToolInput) -> str:
        self.inputs.append(tool_input)
        prompt = tool_input.tool_args["prompt"]
        return json.dumps({
            "type": "image_generation",
            "data": {"url": "https://img.example/cat.png", "prompt": prompt},
            "metadata": {"title": "Generated Image", "description": f"Image of {prompt}"},
        })


def call(name: str, arguments="{}", call_id: str = "call_1") -> ToolCall:
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return ToolCall(id=call_id, name=name, arguments=arguments)
