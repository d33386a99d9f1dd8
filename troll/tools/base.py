"""Base tool class and built-in tools."""

import base64
import json
import os
import re
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from html.parser import HTMLParser

from openai import OpenAI, OpenAIError
from youtube_transcript_api import CouldNotRetrieveTranscript, YouTubeTranscriptApi

from troll.config import DEFAULT_IMAGE_MODEL, DEFAULT_IMAGE_SIZE

USER_AGENT = "Troll/0.1 (conversational agent)"


@dataclass
class ToolInput:
    """What every tool receives: the triggering user text, the model's
    arguments, and the active personality (if any)."""
    user_message: str
    tool_args: dict = field(default_factory=dict)
    personality: str | None = None


class Tool(ABC):
    """Base class for all tools."""

    name: str
    description: str
    parameters: dict  # JSON Schema
    requires_approval: bool = False

    @abstractmethod
    def execute(self, tool_input: ToolInput) -> str:
        """Execute the tool and return the result.

        Tools catch their own I/O failures and describe them in the
        returned string.
        """
        pass


def _request_json(url: str, headers: dict | None = None, data: bytes | None = None, timeout: int = 30):
    req = urllib.request.Request(
        url,
        data=data,
        headers={"User-Agent": USER_AGENT, **(headers or {})},
    )
    with urllib.request.urlopen(req, timeout=timeout) as response:
        return json.loads(response.read().decode("utf-8"))


class DadJokeTool(Tool):
    """Fetch a random dad joke."""

    name = "dad_joke"
    description = "Get a random dad joke. Use this when the user asks for a joke or wants to laugh."
    parameters = {"type": "object", "properties": {}}

    def execute(self, tool_input: ToolInput) -> str:
        try:
            data = _request_json("https://icanhazdadjoke.com/", headers={"Accept": "application/json"})
            return data.get("joke") or "[error: no joke in response]"
        except urllib.error.HTTPError as e:
            return f"[error: HTTP {e.code} {e.reason}]"
        except urllib.error.URLError as e:
            return f"[error: {e.reason}]"
        except Exception as e:
            return f"[error: {e}]"


class RedditTool(Tool):
    """Fetch hot posts through the official Reddit API."""

    name = "reddit"
    description = (
        "Fetch actual posts from Reddit. Use this tool whenever the user asks for Reddit "
        "posts, content, or links - even for single posts."
    )
    parameters = {
        "type": "object",
        "properties": {
            "limit": {
                "type": ["integer", "null"],
                "description": "Number of posts to return (max 25). Use 1 for single post requests, null for the default (5).",
            },
            "subreddit": {
                "type": ["string", "null"],
                "description": "Specific subreddit (e.g., 'funny', 'news'). Use null for r/all.",
            },
        },
        "required": ["limit", "subreddit"],
    }

    def _error_payload(self, subreddit: str | None, description: str, message: str) -> str:
        return json.dumps({
            "type": "reddit_posts",
            "data": {"posts": [], "sortBy": "hot", "subreddit": subreddit, "error": True},
            "metadata": {"title": "Reddit Posts", "description": description},
            "contextualMessage": message,
        })

    def _access_token(self, client_id: str, client_secret: str) -> str:
        credentials = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode()
        data = _request_json(
            "https://www.reddit.com/api/v1/access_token",
            headers={
                "Authorization": f"Basic {credentials}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            data=b"grant_type=client_credentials",
        )
        return data["access_token"]

    def _post(self, post: dict) -> dict:
        thumbnail = post.get("thumbnail")
        if not isinstance(thumbnail, str) or thumbnail in ("self", "default", ""):
            thumbnail = None
        return {
            "title": str(post.get("title", "")),
            "link": str(post.get("url", "")),
            "subreddit": str(post.get("subreddit", "")),
            "author": str(post.get("author", "")),
            "upvotes": int(post.get("ups") or 0),
            "comments": int(post.get("num_comments") or 0),
            "redditUrl": f"https://reddit.com{post.get('permalink', '')}",
            "thumbnail": thumbnail.replace("&amp;", "&") if thumbnail else None,
            "isVideo": bool(post.get("is_video")),
            "domain": post.get("domain"),
        }

    def execute(self, tool_input: ToolInput) -> str:
        try:
            limit = max(1, min(int(tool_input.tool_args.get("limit") or 5), 25))
        except (TypeError, ValueError):
            limit = 5
        subreddit = tool_input.tool_args.get("subreddit") or None
        if subreddit is not None:
            subreddit = str(subreddit).strip().removeprefix("r/") or None

        client_id = os.environ.get("REDDIT_CLIENT_ID")
        client_secret = os.environ.get("REDDIT_CLIENT_SECRET")
        if not client_id or not client_secret:
            return self._error_payload(
                subreddit,
                "Reddit API not configured",
                "Reddit integration is not configured. Set REDDIT_CLIENT_ID and REDDIT_CLIENT_SECRET.",
            )

        try:
            token = self._access_token(client_id, client_secret)
            query = urllib.parse.urlencode({"limit": limit})
            listing = _request_json(
                f"https://oauth.reddit.com/r/{urllib.parse.quote(subreddit or 'all')}/hot?{query}",
                headers={"Authorization": f"Bearer {token}"},
            )
            posts = [self._post(child["data"]) for child in listing["data"]["children"]]
        except (urllib.error.URLError, AttributeError, KeyError, TypeError, ValueError) as e:
            return self._error_payload(
                subreddit,
                "Unable to fetch Reddit posts at this time",
                f"Couldn't fetch Reddit posts right now. {e}.",
            )

        where = f"posts from r/{subreddit}" if subreddit else "trending Reddit posts"
        return json.dumps({
            "type": "reddit_posts",
            "data": {"posts": posts, "sortBy": "hot", "subreddit": subreddit},
            "metadata": {
                "title": f"Top Posts from r/{subreddit}" if subreddit else "Top Reddit Posts",
                "description": (
                    f"Current trending posts from r/{subreddit}" if subreddit
                    else "Current trending posts from across Reddit"
                ),
            },
            "contextualMessage": f"Found {len(posts)} {where}",
        })


class GenerateImageTool(Tool):
    """Generate an image with the OpenAI images API."""

    name = "generate_image"
    description = "Use this tool with a prompt to generate or take a photo of anything."
    parameters = {
        "type": "object",
        "properties": {
            "prompt": {
                "type": "string",
                "description": "The prompt to use to generate an image or take a photo.",
            },
        },
        "required": ["prompt"],
    }
    requires_approval = True

    def __init__(self, model: str = DEFAULT_IMAGE_MODEL, size: str = DEFAULT_IMAGE_SIZE):
        self.model = model
        self.size = size

    def execute(self, tool_input: ToolInput) -> str:
        prompt = tool_input.tool_args.get("prompt", "")
        persona_hint = ""
        if tool_input.personality and tool_input.personality != "assistant":
            persona_hint = f" Style: {tool_input.personality}."

        try:
            response = OpenAI().images.generate(
                model=self.model,
                prompt=f"{prompt}, the user's original message is: {tool_input.user_message}.{persona_hint}",
                n=1,
                size=self.size,
            )
        except OpenAIError as e:
            return f"Error: Could not generate image: {e}"

        image_url = response.data[0].url if response.data else None
        if not image_url:
            return "Error: Could not generate image"

        return json.dumps({
            "type": "image_generation",
            "data": {"url": image_url, "prompt": prompt, "alt": f"Generated image: {prompt}"},
            "metadata": {
                "title": "Generated Image",
                "description": f'Image generated from prompt: "{prompt}"',
            },
            "contextualMessage": "I've generated an image based on your request. Here's what I created for you:",
        }, indent=2)


class _HTMLTextExtractor(HTMLParser):
    """Simple HTML to text converter that also keeps the page title."""

    def __init__(self):
        super().__init__()
        self.text = []
        self.title = ""
        self._skip = False
        self._in_title = False

    def handle_starttag(self, tag, attrs):
        if tag in ("script", "style", "head", "nav", "footer"):
            self._skip = True
        if tag == "title":
            self._in_title = True

    def handle_endtag(self, tag):
        if tag in ("script", "style", "head", "nav", "footer"):
            self._skip = False
        if tag == "title":
            self._in_title = False
        if tag in ("p", "br", "div", "h1", "h2", "h3", "h4", "h5", "h6", "li"):
            self.text.append("\n")

    def handle_data(self, data):
        if self._in_title:
            self.title += data
        elif not self._skip:
            self.text.append(data)

    def get_text(self):
        return re.sub(r"\n{3,}", "\n\n", "".join(self.text).strip())


def chunk_words(text: str, words_per_chunk: int = 600) -> list[str]:
    words = text.split()
    return [
        " ".join(words[i:i + words_per_chunk])
        for i in range(0, len(words), words_per_chunk)
    ]


def question_terms(question: str) -> set[str]:
    return {w for w in re.findall(r"\w+", question.lower()) if len(w) > 2}


def overlap_score(chunk: str, terms: set[str]) -> int:
    lowered = chunk.lower()
    return sum(lowered.count(term) for term in terms)


def rank_sections(chunks: list[str], question: str, top_k: int = 5) -> list[tuple[int, str]]:
    """Pick the chunks sharing the most words with the question, in page order."""
    terms = question_terms(question)
    scored = [(overlap_score(chunk, terms), idx, chunk) for idx, chunk in enumerate(chunks)]
    best = sorted(scored, key=lambda s: (-s[0], s[1]))[:top_k]
    return [(idx, chunk) for _, idx, chunk in sorted(best, key=lambda s: s[1])]


class WebsiteScraperTool(Tool):
    """Fetch an article and hand its most relevant sections to the model."""

    name = "website_scraper"
    description = (
        "Answer questions about articles or web pages by analyzing their content. Use this tool "
        "when users ask questions about articles, request summaries, or want specific "
        "information from a webpage."
    )
    parameters = {
        "type": "object",
        "properties": {
            "url": {
                "type": "string",
                "description": "The URL of the article/website to analyze.",
            },
            "question": {
                "type": "string",
                "description": "The user's question about the article (e.g., 'what are the main points?')",
            },
        },
        "required": ["url", "question"],
    }

    def _fetch(self, url: str) -> tuple[str, str]:
        req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        with urllib.request.urlopen(req, timeout=30) as response:
            content_type = response.headers.get("Content-Type", "")
            content = response.read().decode("utf-8", errors="replace")
        if "html" not in content_type.lower():
            return "", content
        parser = _HTMLTextExtractor()
        parser.feed(content)
        return parser.title.strip(), parser.get_text()

    def execute(self, tool_input: ToolInput) -> str:
        url = tool_input.tool_args.get("url", "")
        question = tool_input.tool_args.get("question") or tool_input.user_message
        if not url.startswith(("http://", "https://")):
            url = "https://" + url

        try:
            title, text = self._fetch(url)
        except urllib.error.HTTPError as e:
            return f"[error: HTTP {e.code} {e.reason} while fetching {url}]"
        except urllib.error.URLError as e:
            return f"[error: {e.reason} while fetching {url}]"
        except Exception as e:
            return f"[error: {e}]"

        chunks = chunk_words(text)
        if not chunks:
            return f"[error: no readable content at {url}]"

        sections = "\n\n".join(
            f"Section {idx + 1}: {chunk}" for idx, chunk in rank_sections(chunks, question)
        )
        return (
            f"Article: {url}\n"
            f"Article Title: {title or 'Unknown'}\n\n"
            f"Question: {question}\n\n"
            f"Relevant article sections:\n{sections}\n\n"
            "Answer the question using only these sections."
        )


_YOUTUBE_ID = re.compile(
    r"(?:youtu\.be/|youtube\.com/(?:embed/|v/|shorts/|watch\?v=|watch\?.+&v=))([^&\n?#/]+)"
)


def youtube_video_id(url: str) -> str | None:
    match = _YOUTUBE_ID.search(url or "")
    return match.group(1) if match else None


def format_timestamp(seconds: float) -> str:
    seconds = int(seconds)
    return f"{seconds // 60}:{seconds % 60:02d}"


class YoutubeTranscriptTool(Tool):
    """Answer questions about a YouTube video from its transcript."""

    name = "youtube_transcript"
    description = (
        "Answer questions about a YouTube video by reading its transcript. Use this tool when "
        "the user shares a YouTube link and asks what the video says, wants a summary, or asks "
        "about a specific part of it."
    )
    parameters = {
        "type": "object",
        "properties": {
            "video_url": {
                "type": "string",
                "description": "The YouTube video URL (youtube.com/watch?v=... or youtu.be/...).",
            },
            "question": {
                "type": "string",
                "description": "The user's question about the video (e.g., 'what is this video about?')",
            },
        },
        "required": ["video_url", "question"],
    }
    segments_per_chunk = 10
    top_k = 5

    def _fetch(self, video_id: str) -> list:
        return list(YouTubeTranscriptApi().fetch(video_id))

    def _chunks(self, segments: list) -> list[tuple[float, str]]:
        chunks = []
        for i in range(0, len(segments), self.segments_per_chunk):
            group = segments[i:i + self.segments_per_chunk]
            text = " ".join(s.text.strip() for s in group if s.text.strip())
            if text:
                chunks.append((group[0].start, text))
        return chunks

    def execute(self, tool_input: ToolInput) -> str:
        args = tool_input.tool_args
        url = args.get("video_url") or args.get("url") or ""
        question = args.get("question") or tool_input.user_message

        video_id = youtube_video_id(url)
        if not video_id:
            return "Invalid YouTube URL. Please provide a valid YouTube video link."

        try:
            segments = self._fetch(video_id)
        except CouldNotRetrieveTranscript:
            return (
                "This video does not have a transcript available. "
                "Please try a different video that has captions enabled."
            )
        except Exception as e:
            return f"[error: {e}]"

        chunks = self._chunks(segments)
        if not chunks:
            return "The transcript for this video is empty."

        terms = question_terms(question)
        relevant = []
        for idx, text in rank_sections([text for _, text in chunks], question, self.top_k):
            start = chunks[idx][0]
            relevant.append({
                "text": f"[{format_timestamp(start)}] {text}",
                "score": overlap_score(text, terms),
                "metadata": {
                    "source": url,
                    "video_id": video_id,
                    "timestamp": format_timestamp(start),
                },
            })

        return json.dumps({
            "type": "youtube_transcript",
            "data": {"relevant": relevant},
            "metadata": {
                "title": "YouTube Transcript",
                "description": f"Sections of video {video_id} relevant to: {question}",
            },
            "contextualMessage": (
                f"Here are the parts of the video transcript most relevant to \"{question}\". "
                "Answer using only these sections and cite their timestamps."
            ),
        })


def get_default_tools() -> list[Tool]:
    """Return the default set of tools."""
    return [
        DadJokeTool(),
        RedditTool(),
        GenerateImageTool(),
        WebsiteScraperTool(),
        YoutubeTranscriptTool(),
    ]
