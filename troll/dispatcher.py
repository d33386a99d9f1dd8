"""Routes tool calls from the model to tool implementations."""

import json
import logging

from troll.messages import ToolCall
from troll.tools.base import Tool, ToolInput

logger = logging.getLogger(__name__)


def unknown_tool_result(name: str) -> str:
    return f"Unknown tool do not call this tool: {name}"


def argument_error_result(call: ToolCall, message: str) -> str:
    return json.dumps({
        "type": "error",
        "error": "invalid_arguments",
        "tool": call.name,
        "message": message,
    })


def tool_failure_result(call: ToolCall, error: Exception) -> str:
    return json.dumps({
        "type": "error",
        "error": "tool_failed",
        "tool": call.name,
        "message": f"{type(error).__name__}: {error}",
    })


class ToolDispatcher:
    """Maps tool names to tools and runs one call at a time.

    Bad arguments and unknown names come back as result strings so the
    model can tell the user; exceptions raised by a tool itself propagate.
    """

    def __init__(self, tools: list[Tool]):
        self.tools = list(tools)
        self.tools_by_name = {t.name: t for t in self.tools}

    def invoke(self, call: ToolCall, user_text: str, personality: str | None = None) -> str:
        try:
            args = json.loads(call.arguments or "{}")
        except json.JSONDecodeError as e:
            logger.warning("Malformed arguments for %s: %s", call.name, e)
            return argument_error_result(call, f"Arguments are not valid JSON: {e}")
        if not isinstance(args, dict):
            return argument_error_result(call, "Arguments must be a JSON object")

        tool = self.tools_by_name.get(call.name)
        if tool is None:
            logger.warning("Model requested unknown tool %r", call.name)
            return unknown_tool_result(call.name)

        logger.info("Executing %s(%s)", call.name, call.arguments)
        result = tool.execute(ToolInput(user_message=user_text, tool_args=args, personality=personality))
        logger.debug("%s returned %d chars", call.name, len(result))
        return result
