"""Human approval for sensitive tool calls."""

import json
from dataclasses import dataclass, field
from enum import Enum

from troll.config import DEFAULT_GATED_TOOLS
from troll.messages import ToolCall
from troll.tools.base import Tool

AFFIRMATIVE = {"yes", "y"}

# Per-tool wording for the approval prompt and the declined tool response
_ACTION_NAMES = {"generate_image": "image generation"}


class ApprovalState(Enum):
    NORMAL = "normal"
    AWAITING_APPROVAL = "awaiting_approval"
    EXECUTING = "executing"
    DECLINED = "declined"


@dataclass
class ApprovalPrompt:
    """What the host shows the user before a gated call runs."""
    tool_name: str
    tool_args: dict
    message: str


@dataclass
class ApprovalRequest:
    """Returned by the agent instead of a reply when a gated call is pending."""
    session_id: str
    tool_call: ToolCall
    prompt: ApprovalPrompt


def _action_name(tool_name: str) -> str:
    return _ACTION_NAMES.get(tool_name, tool_name)


@dataclass
class ApprovalGate:
    """Decides which tool calls wait for a human yes/no."""

    # Tools that must not run without approval
    gated: set[str] = field(default_factory=lambda: set(DEFAULT_GATED_TOOLS))

    @classmethod
    def for_tools(
        cls,
        tools: list[Tool],
        extra: set[str] | None = None,
        exempt: set[str] | None = None,
    ) -> "ApprovalGate":
        """Gate every tool that asks for approval, adjusted by ``extra``/``exempt``."""
        gated = {t.name for t in tools if t.requires_approval} | (extra or set())
        return cls(gated=gated - (exempt or set()))

    def is_gated(self, tool_name: str) -> bool:
        return tool_name in self.gated

    def is_affirmative(self, text: str) -> bool:
        """Only an explicit yes approves; anything else is a denial."""
        return text.strip().lower() in AFFIRMATIVE

    def build_approval_prompt(self, call: ToolCall) -> ApprovalPrompt:
        try:
            args = json.loads(call.arguments or "{}")
        except json.JSONDecodeError:
            args = {"raw": call.arguments}
        if not isinstance(args, dict):
            args = {"value": args}

        if call.name == "generate_image" and args.get("prompt"):
            message = f'Generate an image of "{args["prompt"]}"? (yes/no)'
        else:
            message = f"Allow {_action_name(call.name)}? (yes/no)"
        return ApprovalPrompt(tool_name=call.name, tool_args=args, message=message)

    def declined_message(self, call: ToolCall) -> str:
        return f"User did not approve {_action_name(call.name)} at this time."
