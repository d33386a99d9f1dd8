"""Structured payloads for rich rendering, and the extractor that finds them.

Tools may return a JSON-encoded payload of the shape::

    {"type": ..., "data": {...}, "metadata": {"title": ..., "description": ...},
     "contextualMessage": ...}

The extractor validates such strings against the known payload types. When
the assistant answers in free text instead, a small set of text adapters
can recover a payload heuristically (currently only movie lists).
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class _Model(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)


class PayloadMetadata(_Model):
    title: str
    description: str


class MovieRecommendation(_Model):
    title: str
    year: int | None = None
    description: str = ""
    genre: str | None = None
    director: str | None = None
    rating: float | None = None
    metascore: int | None = None
    tags: list[str] = Field(default_factory=list)


class MovieRecommendationsData(_Model):
    recommendations: list[MovieRecommendation]
    query: str | None = None
    genre: str | None = None


class MovieRecommendationsOutput(_Model):
    type: Literal["movie_recommendations"]
    data: MovieRecommendationsData
    metadata: PayloadMetadata
    contextual_message: str | None = None
    ai_chosen_movie: MovieRecommendation | None = None


class ImageGenerationData(_Model):
    url: str
    prompt: str = ""
    alt: str | None = None


class ImageGenerationOutput(_Model):
    type: Literal["image_generation"]
    data: ImageGenerationData
    metadata: PayloadMetadata
    contextual_message: str | None = None


class RedditPost(_Model):
    title: str
    link: str = ""
    subreddit: str = ""
    author: str = ""
    upvotes: int = 0
    comments: int = 0
    reddit_url: str | None = None
    thumbnail: str | None = None
    is_video: bool = False
    domain: str | None = None


class RedditPostsData(_Model):
    posts: list[RedditPost]
    subreddit: str | None = None
    sort_by: str | None = None


class RedditPostsOutput(_Model):
    type: Literal["reddit_posts"]
    data: RedditPostsData
    metadata: PayloadMetadata
    contextual_message: str | None = None


class TranscriptChunk(_Model):
    text: str
    score: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)


class YoutubeTranscriptData(_Model):
    relevant: list[TranscriptChunk]


class YoutubeTranscriptOutput(_Model):
    type: Literal["youtube_transcript"]
    data: YoutubeTranscriptData
    metadata: PayloadMetadata
    contextual_message: str | None = None


class ArticleSection(_Model):
    text: str
    position: int | None = None


class WebsiteScraperData(_Model):
    url: str
    title: str | None = None
    relevant: list[ArticleSection] = Field(default_factory=list)


class WebsiteScraperOutput(_Model):
    type: Literal["website_scraper"]
    data: WebsiteScraperData
    metadata: PayloadMetadata
    contextual_message: str | None = None


StructuredPayload = Annotated[
    Union[
        MovieRecommendationsOutput,
        ImageGenerationOutput,
        RedditPostsOutput,
        YoutubeTranscriptOutput,
        WebsiteScraperOutput,
    ],
    Field(discriminator="type"),
]

_payload_adapter: TypeAdapter[StructuredPayload] = TypeAdapter(StructuredPayload)


def load_payload(data: Any) -> StructuredPayload | None:
    """Validate already-decoded data as a payload. Returns None if it isn't one."""
    if not isinstance(data, dict):
        return None
    try:
        return _payload_adapter.validate_python(data)
    except ValidationError:
        return None


def dump_payload(payload: StructuredPayload) -> dict[str, Any]:
    """Inverse of :func:`load_payload`; keeps only fields that were set."""
    return payload.model_dump(mode="json", by_alias=True, exclude_unset=True)


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


# Movie list heuristics ---------------------------------------------------

# "- Title (Year) — description", tried with em dash, en dash, then hyphen
_MOVIE_LINE_PATTERNS = [
    re.compile(r"-\s([^(\n]+)\s\((\d{4})\)\s" + dash + r"\s([^;\n]+)")
    for dash in ("—", "–", "-")
]

_TAG_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"tense", r"creature-feature", r"supernatural", r"psychological",
        r"jump scare", r"atmospheric", r"brutal", r"intense", r"suspense",
        r"claustrophobic", r"ensemble", r"surprise ending", r"effective",
        r"lean", r"simple setting", r"extreme", r"impactful",
    )
]

_RATING_PATTERNS = [
    re.compile(r"rating[:\s]+([0-9.]+)", re.IGNORECASE),
    re.compile(r"([0-9.]+)/10", re.IGNORECASE),
    re.compile(r"imdb[:\s]+([0-9.]+)", re.IGNORECASE),
    re.compile(r"([0-9.]+)\s*stars?", re.IGNORECASE),
]

_METASCORE_PATTERNS = [
    re.compile(r"metascore[:\s]+(\d+)", re.IGNORECASE),
    re.compile(r"metacritic[:\s]+(\d+)", re.IGNORECASE),
    re.compile(r"(\d+)/100", re.IGNORECASE),
]

_DIRECTOR_PATTERNS = [
    re.compile(r"directed by ([^;]+)", re.IGNORECASE),
    re.compile(r"director[:\s]+([^;]+)", re.IGNORECASE),
    re.compile(r"by ([A-Z][a-z]+ [A-Z][a-z]+)", re.IGNORECASE),
]

_GENRE_PATTERN = re.compile(r"horror|comedy|action|drama|sci-fi|thriller|romance", re.IGNORECASE)


def extract_tags(description: str) -> list[str]:
    tags = []
    for pattern in _TAG_PATTERNS:
        if match := pattern.search(description):
            tags.append(match.group(0).lower())
    return tags


def extract_rating(description: str) -> float | None:
    for pattern in _RATING_PATTERNS:
        if match := pattern.search(description):
            try:
                rating = float(match.group(1))
            except ValueError:
                continue
            if 0 <= rating <= 10:
                return rating
    return None


def extract_metascore(description: str) -> int | None:
    for pattern in _METASCORE_PATTERNS:
        if match := pattern.search(description):
            metascore = int(match.group(1))
            if 0 <= metascore <= 100:
                return metascore
    return None


def extract_director(description: str) -> str | None:
    for pattern in _DIRECTOR_PATTERNS:
        if match := pattern.search(description):
            director = match.group(1).strip()
            # Needs at least a first and last name
            if len(director.split(" ")) >= 2:
                return director
    return None


class TextAdapter(ABC):
    """Best-effort recovery of a payload from assistant free text."""

    @abstractmethod
    def parse(self, text: str) -> StructuredPayload | None:
        pass


class MovieListAdapter(TextAdapter):
    """Recognizes bulleted ``- Title (Year) — description`` movie lists."""

    def parse(self, text: str) -> MovieRecommendationsOutput | None:
        recommendations = []
        for pattern in _MOVIE_LINE_PATTERNS:
            for title, year, description in pattern.findall(text):
                description = description.strip()
                recommendations.append(MovieRecommendation(
                    title=title.strip(),
                    year=int(year),
                    description=description,
                    tags=extract_tags(description),
                    rating=extract_rating(description),
                    metascore=extract_metascore(description),
                    director=extract_director(description),
                ))
            if recommendations:
                break

        if not recommendations:
            return None

        logger.debug("Recovered %d movie recommendations from text", len(recommendations))
        genre_match = _GENRE_PATTERN.search(text)
        return MovieRecommendationsOutput(
            type="movie_recommendations",
            data=MovieRecommendationsData(
                recommendations=recommendations,
                genre=genre_match.group(0).lower() if genre_match else None,
            ),
            metadata=PayloadMetadata(
                title="Movie Recommendations",
                description=f"Found {len(recommendations)} movie recommendations",
            ),
        )


def _legacy_movie_list(data: Any) -> MovieRecommendationsOutput | None:
    """movie_search used to return a bare JSON array of movie records."""
    if not isinstance(data, list) or not data or not all(isinstance(m, dict) for m in data):
        return None
    recommendations = [
        MovieRecommendation(
            title=movie.get("title") or "Unknown",
            year=movie.get("year"),
            director=movie.get("director") or None,
            rating=movie.get("rating") or None,
            metascore=movie.get("metascore") or None,
            description=movie.get("description") or "No description available",
            tags=extract_tags(movie.get("description") or ""),
        )
        for movie in data
    ]
    genre = data[0].get("genre")
    return MovieRecommendationsOutput(
        type="movie_recommendations",
        data=MovieRecommendationsData(
            recommendations=recommendations,
            genre=genre.lower() if isinstance(genre, str) else None,
        ),
        metadata=PayloadMetadata(
            title="Movie Recommendations",
            description=f"Found {len(recommendations)} movie recommendations",
        ),
    )


def _legacy_image_url(data: Any) -> ImageGenerationOutput | None:
    """generate_image used to return just the image URL as a JSON string."""
    if not isinstance(data, str) or not data.startswith("http"):
        return None
    return ImageGenerationOutput(
        type="image_generation",
        data=ImageGenerationData(url=data, prompt="Generated image", alt="Generated image"),
        metadata=PayloadMetadata(title="Generated Image", description="Image generated successfully"),
    )


_LEGACY_TOOL_FORMATS = {
    "movie_search": _legacy_movie_list,
    "generate_image": _legacy_image_url,
}


class StructuredOutputExtractor:
    """Turns tool results and assistant replies into structured payloads.

    Both entry points return ``None`` for anything they don't recognize and
    never raise.
    """

    def __init__(self, text_adapters: list[TextAdapter] | None = None):
        self.text_adapters = [MovieListAdapter()] if text_adapters is None else text_adapters

    def from_tool_result(self, tool_name: str, result: str) -> StructuredPayload | None:
        data = _decode(result)
        if data is None:
            return None
        if payload := load_payload(data):
            return payload
        if legacy := _LEGACY_TOOL_FORMATS.get(tool_name):
            try:
                return legacy(data)
            except (ValidationError, ValueError, TypeError, AttributeError):
                logger.debug("Legacy %s result did not parse", tool_name, exc_info=True)
        return None

    def from_assistant_text(self, text: str) -> StructuredPayload | None:
        if not text:
            return None
        if payload := load_payload(_decode(text)):
            return payload
        for adapter in self.text_adapters:
            try:
                if payload := adapter.parse(text):
                    return payload
            except (ValidationError, ValueError):
                logger.debug("%s failed on assistant text", type(adapter).__name__, exc_info=True)
        return None
