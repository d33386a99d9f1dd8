"""Tools for Troll."""

from .base import (
    DadJokeTool,
    GenerateImageTool,
    RedditTool,
    Tool,
    ToolInput,
    WebsiteScraperTool,
    YoutubeTranscriptTool,
    get_default_tools,
)

__all__ = [
    "Tool",
    "ToolInput",
    "DadJokeTool",
    "RedditTool",
    "GenerateImageTool",
    "WebsiteScraperTool",
    "YoutubeTranscriptTool",
    "get_default_tools",
]
