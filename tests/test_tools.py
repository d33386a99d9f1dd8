"""Tests for the built-in tools, with network access stubbed out."""

import urllib.error
from types import SimpleNamespace

import pytest
from youtube_transcript_api import TranscriptsDisabled

from troll.structured import (
    ImageGenerationOutput,
    RedditPostsOutput,
    StructuredOutputExtractor,
    YoutubeTranscriptOutput,
)
from troll.tools import base
from troll.tools.base import (
    DadJokeTool,
    GenerateImageTool,
    RedditTool,
    ToolInput,
    WebsiteScraperTool,
    YoutubeTranscriptTool,
    _HTMLTextExtractor,
    chunk_words,
    format_timestamp,
    rank_sections,
    youtube_video_id,
)


@pytest.fixture
def extractor():
    return StructuredOutputExtractor()


def test_dad_joke(monkeypatch):
    monkeypatch.setattr(base, "_request_json", lambda url, **kw: {"joke": "I'm reading a book on glue."})
    assert DadJokeTool().execute(ToolInput("tell me a joke")) == "I'm reading a book on glue."


def test_dad_joke_network_error(monkeypatch):
    def fail(url, **kw):
        raise urllib.error.URLError("offline")
    monkeypatch.setattr(base, "_request_json", fail)
    assert DadJokeTool().execute(ToolInput("joke")) == "[error: offline]"


class TestReddit:
    def test_not_configured(self, monkeypatch, extractor):
        monkeypatch.delenv("REDDIT_CLIENT_ID", raising=False)
        monkeypatch.delenv("REDDIT_CLIENT_SECRET", raising=False)

        result = RedditTool().execute(ToolInput("reddit", {"subreddit": "aww", "limit": None}))

        payload = extractor.from_tool_result("reddit", result)
        assert isinstance(payload, RedditPostsOutput)
        assert payload.data.posts == []
        assert "not configured" in payload.contextual_message

    def test_fetches_posts(self, monkeypatch, extractor):
        monkeypatch.setenv("REDDIT_CLIENT_ID", "id")
        monkeypatch.setenv("REDDIT_CLIENT_SECRET", "secret")
        requested = []

        def fake_request(url, headers=None, data=None, timeout=30):
            requested.append(url)
            if "access_token" in url:
                return {"access_token": "tok"}
            return {"data": {"children": [{"data": {
                "title": "A cat", "url": "https://i.redd.it/cat.jpg", "subreddit": "aww",
                "author": "someone", "ups": 99, "num_comments": 3, "permalink": "/r/aww/1",
                "thumbnail": "self", "is_video": False, "domain": "i.redd.it",
            }}]}}

        monkeypatch.setattr(base, "_request_json", fake_request)

        result = RedditTool().execute(ToolInput("cats", {"subreddit": "aww", "limit": 50}))

        assert requested[1] == "https://oauth.reddit.com/r/aww/hot?limit=25"
        payload = extractor.from_tool_result("reddit", result)
        post = payload.data.posts[0]
        assert (post.title, post.upvotes, post.thumbnail) == ("A cat", 99, None)
        assert post.reddit_url == "https://reddit.com/r/aww/1"
        assert payload.metadata.title == "Top Posts from r/aww"

    def test_bad_limit_falls_back(self, monkeypatch, extractor):
        monkeypatch.setenv("REDDIT_CLIENT_ID", "id")
        monkeypatch.setenv("REDDIT_CLIENT_SECRET", "secret")
        requested = []

        def fake_request(url, headers=None, data=None, timeout=30):
            requested.append(url)
            if "access_token" in url:
                return {"access_token": "tok"}
            return {"data": {"children": []}}

        monkeypatch.setattr(base, "_request_json", fake_request)

        result = RedditTool().execute(ToolInput("memes", {"limit": "five", "subreddit": None}))

        assert requested[1] == "https://oauth.reddit.com/r/all/hot?limit=5"
        assert isinstance(extractor.from_tool_result("reddit", result), RedditPostsOutput)

    @pytest.mark.parametrize("listing", [
        {"data": {"children": [{"data": None}]}},
        {"data": {}},
        {"kind": "Listing"},
        {"data": {"children": [{"data": {"title": "x", "ups": "lots"}}]}},
    ])
    def test_malformed_listing(self, monkeypatch, extractor, listing):
        monkeypatch.setenv("REDDIT_CLIENT_ID", "id")
        monkeypatch.setenv("REDDIT_CLIENT_SECRET", "secret")
        monkeypatch.setattr(
            base, "_request_json",
            lambda url, **kw: {"access_token": "tok"} if "access_token" in url else listing,
        )

        result = RedditTool().execute(ToolInput("cats", {"subreddit": "aww"}))

        payload = extractor.from_tool_result("reddit", result)
        assert payload.data.posts == []
        assert payload.metadata.description == "Unable to fetch Reddit posts at this time"


class TestGenerateImage:
    def test_success(self, monkeypatch, extractor):
        prompts = []

        class FakeImages:
            def generate(self, **kwargs):
                prompts.append(kwargs["prompt"])
                return SimpleNamespace(data=[SimpleNamespace(url="https://img.example/fox.png")])

        monkeypatch.setattr(base, "OpenAI", lambda: SimpleNamespace(images=FakeImages()))

        result = GenerateImageTool().execute(ToolInput("draw a fox", {"prompt": "a fox"}, personality="pirate"))

        payload = extractor.from_tool_result("generate_image", result)
        assert isinstance(payload, ImageGenerationOutput)
        assert payload.data.url == "https://img.example/fox.png"
        assert "Style: pirate" in prompts[0]

    def test_no_image(self, monkeypatch):
        class EmptyImages:
            def generate(self, **kwargs):
                return SimpleNamespace(data=[])

        monkeypatch.setattr(base, "OpenAI", lambda: SimpleNamespace(images=EmptyImages()))
        assert GenerateImageTool().execute(ToolInput("x", {"prompt": "x"})).startswith("Error")


class TestWebsiteScraper:
    def test_html_extraction(self):
        parser = _HTMLTextExtractor()
        parser.feed(
            "<html><head><title>News</title><style>p {}</style></head>"
            "<body><nav>menu</nav><p>First.</p><p>Second.</p><script>x()</script></body></html>"
        )
        assert parser.title == "News"
        assert "menu" not in parser.get_text()
        assert "First." in parser.get_text()
        assert "x()" not in parser.get_text()

    def test_chunk_words(self):
        assert chunk_words("a b c d e", words_per_chunk=2) == ["a b", "c d", "e"]
        assert chunk_words("") == []

    def test_rank_sections_keeps_page_order(self):
        chunks = ["cats cats", "dogs", "cats and dogs", "birds"]
        assert rank_sections(chunks, "tell me about cats", top_k=2) == [(0, "cats cats"), (2, "cats and dogs")]

    def test_answer_context(self, monkeypatch):
        monkeypatch.setattr(WebsiteScraperTool, "_fetch", lambda self, url: ("Title", "some words about rust"))

        result = WebsiteScraperTool().execute(ToolInput("summarize", {"url": "example.com", "question": "rust?"}))

        assert result.startswith("Article: https://example.com\nArticle Title: Title")
        assert "Section 1: some words about rust" in result

    def test_fetch_error(self, monkeypatch):
        def fail(self, url):
            raise urllib.error.URLError("timed out")
        monkeypatch.setattr(WebsiteScraperTool, "_fetch", fail)
        result = WebsiteScraperTool().execute(ToolInput("q", {"url": "https://example.com"}))
        assert result == "[error: timed out while fetching https://example.com]"

    def test_plain_text_result_is_not_structured(self, extractor, monkeypatch):
        monkeypatch.setattr(WebsiteScraperTool, "_fetch", lambda self, url: ("", "text"))
        result = WebsiteScraperTool().execute(ToolInput("q", {"url": "https://example.com"}))
        assert extractor.from_tool_result("website_scraper", result) is None


def snippet(text, start):
    return SimpleNamespace(text=text, start=start, duration=2.0)


class TestYoutubeTranscript:
    @pytest.mark.parametrize("url, video_id", [
        ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://youtu.be/dQw4w9WgXcQ?t=42", "dQw4w9WgXcQ"),
        ("https://www.youtube.com/watch?feature=share&v=abc123", "abc123"),
        ("https://www.youtube.com/embed/abc123", "abc123"),
        ("https://example.com/watch?v=abc123", None),
        ("", None),
    ])
    def test_video_id(self, url, video_id):
        assert youtube_video_id(url) == video_id

    def test_format_timestamp(self):
        assert format_timestamp(0) == "0:00"
        assert format_timestamp(65.7) == "1:05"
        assert format_timestamp(3600) == "60:00"

    def test_relevant_sections(self, monkeypatch, extractor):
        fetched = []

        class FakeApi:
            def fetch(self, video_id):
                fetched.append(video_id)
                lines = [snippet("intro chatter", i * 3.0) for i in range(10)]
                lines += [snippet("the recipe needs flour", 30.0 + i * 3.0) for i in range(10)]
                lines += [snippet("goodbye", 75.0)]
                return lines

        monkeypatch.setattr(base, "YouTubeTranscriptApi", FakeApi)

        result = YoutubeTranscriptTool().execute(ToolInput("what is the recipe?", {
            "video_url": "https://youtu.be/abc123", "question": "what goes in the recipe?",
        }))

        assert fetched == ["abc123"]
        payload = extractor.from_tool_result("youtube_transcript", result)
        assert isinstance(payload, YoutubeTranscriptOutput)
        chunks = payload.data.relevant
        assert [c.metadata["timestamp"] for c in chunks] == ["0:00", "0:30", "1:15"]
        assert chunks[1].text.startswith("[0:30] the recipe needs flour")
        assert chunks[1].score == 20
        assert chunks[0].metadata == {"source": "https://youtu.be/abc123", "video_id": "abc123", "timestamp": "0:00"}

    def test_keeps_top_five_chunks(self, monkeypatch, extractor):
        class FakeApi:
            def fetch(self, video_id):
                return [snippet(f"line {i}", float(i)) for i in range(80)]

        monkeypatch.setattr(base, "YouTubeTranscriptApi", FakeApi)

        result = YoutubeTranscriptTool().execute(ToolInput("q", {"video_url": "https://youtu.be/x1"}))

        assert len(extractor.from_tool_result("youtube_transcript", result).data.relevant) == 5

    def test_invalid_url(self):
        result = YoutubeTranscriptTool().execute(ToolInput("q", {"video_url": "https://vimeo.com/1"}))
        assert result == "Invalid YouTube URL. Please provide a valid YouTube video link."

    def test_no_transcript(self, monkeypatch):
        class FakeApi:
            def fetch(self, video_id):
                raise TranscriptsDisabled(video_id)

        monkeypatch.setattr(base, "YouTubeTranscriptApi", FakeApi)

        result = YoutubeTranscriptTool().execute(ToolInput("q", {"video_url": "https://youtu.be/x1"}))
        assert result.startswith("This video does not have a transcript available.")

    def test_empty_transcript(self, monkeypatch):
        class FakeApi:
            def fetch(self, video_id):
                return [snippet("   ", 0.0)]

        monkeypatch.setattr(base, "YouTubeTranscriptApi", FakeApi)

        result = YoutubeTranscriptTool().execute(ToolInput("q", {"video_url": "https://youtu.be/x1"}))
        assert result == "The transcript for this video is empty."

    def test_network_error(self, monkeypatch):
        class FakeApi:
            def fetch(self, video_id):
                raise ConnectionError("offline")

        monkeypatch.setattr(base, "YouTubeTranscriptApi", FakeApi)

        result = YoutubeTranscriptTool().execute(ToolInput("q", {"url": "https://youtu.be/x1"}))
        assert result == "[error: offline]"
