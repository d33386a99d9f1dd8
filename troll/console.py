"""Terminal rendering of replies, structured payloads and approval prompts."""

from dataclasses import dataclass

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from troll.approval import ApprovalRequest
from troll.messages import AssistantMessage, ToolCall
from troll.structured import (
    ImageGenerationOutput,
    MovieRecommendationsOutput,
    RedditPostsOutput,
    StructuredPayload,
    WebsiteScraperOutput,
    YoutubeTranscriptOutput,
    dump_payload,
)


@dataclass(frozen=True)
class RenderOptions:
    """Presentation switches, passed explicitly to the renderer."""
    show_tool_usage: bool = False
    show_tool_responses: bool = False
    debug: bool = False


class Renderer:
    """Prints agent output to a rich console."""

    def __init__(self, console: Console, options: RenderOptions | None = None):
        self.console = console
        self.options = options or RenderOptions()

    def show_tool_call(self, call: ToolCall) -> None:
        """Display that a tool is being executed."""
        if self.options.show_tool_usage or self.options.debug:
            self.console.print(f"\n[dim]▶ {call.name}({call.arguments:.80})[/dim]")

    def show_tool_result(self, call: ToolCall, result: str) -> None:
        """Display a tool result (truncated if long)."""
        if not (self.options.show_tool_responses or self.options.debug):
            return
        lines = result.split("\n")
        if len(lines) > 10:
            display = "\n".join(lines[:10]) + f"\n[dim]... ({len(lines) - 10} more lines)[/dim]"
        else:
            display = result
        self.console.print(Panel(display, title=call.name, border_style="dim", padding=(0, 1)))

    def show_approval(self, request: ApprovalRequest) -> None:
        args_display = "\n".join(f"  {k}: {v!r}" for k, v in request.prompt.tool_args.items())
        self.console.print()
        self.console.print(Panel(
            f"[bold]{request.prompt.tool_name}[/bold]\n{args_display}\n\n{request.prompt.message}",
            title="[yellow]Approval Required[/yellow]",
            border_style="yellow",
        ))

    def show_reply(self, message: AssistantMessage) -> None:
        if message.structured_output is not None:
            self.show_payload(message.structured_output)
        elif message.content:
            self.console.print(Markdown(message.content))
        if self.options.debug:
            self.console.print(f"[dim]message {message.id} at {message.created_at}[/dim]")

    def show_payload(self, payload: StructuredPayload) -> None:
        if payload.contextual_message:
            self.console.print(payload.contextual_message)

        match payload:
            case MovieRecommendationsOutput(data=data):
                table = Table(title=payload.metadata.title)
                table.add_column("Title", style="bold")
                table.add_column("Year")
                table.add_column("Rating")
                table.add_column("Description")
                for movie in data.recommendations:
                    table.add_row(
                        movie.title,
                        str(movie.year or ""),
                        f"{movie.rating:g}" if movie.rating is not None else "",
                        movie.description,
                    )
                self.console.print(table)
            case ImageGenerationOutput(data=data):
                self.console.print(Panel(
                    f"{data.url}\n[dim]{data.alt or data.prompt}[/dim]",
                    title=payload.metadata.title,
                    border_style="magenta",
                ))
            case RedditPostsOutput(data=data):
                table = Table(title=payload.metadata.title)
                table.add_column("Post", style="bold")
                table.add_column("Subreddit")
                table.add_column("Upvotes", justify="right")
                table.add_column("Link")
                for post in data.posts:
                    table.add_row(post.title, f"r/{post.subreddit}", str(post.upvotes), post.reddit_url or post.link)
                self.console.print(table)
            case YoutubeTranscriptOutput(data=data) | WebsiteScraperOutput(data=data):
                body = "\n\n".join(chunk.text for chunk in data.relevant) or payload.metadata.description
                self.console.print(Panel(body, title=payload.metadata.title, border_style="cyan"))

        if self.options.debug:
            self.console.print_json(data=dump_payload(payload))
