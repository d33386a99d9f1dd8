"""Tests for structured output extraction."""

import json

import pytest

from troll.structured import (
    ImageGenerationOutput,
    MovieListAdapter,
    MovieRecommendationsOutput,
    RedditPostsOutput,
    StructuredOutputExtractor,
    WebsiteScraperOutput,
    YoutubeTranscriptOutput,
    dump_payload,
    extract_director,
    extract_metascore,
    extract_rating,
    load_payload,
)

REDDIT_RESULT = {
    "type": "reddit_posts",
    "data": {
        "posts": [{
            "title": "A cat",
            "link": "https://i.redd.it/cat.jpg",
            "subreddit": "aww",
            "author": "someone",
            "upvotes": 1200,
            "comments": 45,
            "redditUrl": "https://reddit.com/r/aww/1",
            "isVideo": False,
        }],
        "sortBy": "hot",
        "subreddit": "aww",
    },
    "metadata": {"title": "Top Posts from r/aww", "description": "Current trending posts from r/aww"},
    "contextualMessage": "Found 1 posts from r/aww",
}


@pytest.fixture
def extractor():
    return StructuredOutputExtractor()


def test_tool_result_round_trip(extractor):
    payload = extractor.from_tool_result("reddit", json.dumps(REDDIT_RESULT))

    assert isinstance(payload, RedditPostsOutput)
    dumped = dump_payload(payload)
    assert dumped["type"] == REDDIT_RESULT["type"]
    assert dumped["data"] == REDDIT_RESULT["data"]
    assert payload.contextual_message == "Found 1 posts from r/aww"


def test_extraction_is_idempotent(extractor):
    result = json.dumps(REDDIT_RESULT)
    assert extractor.from_tool_result("reddit", result) == extractor.from_tool_result("reddit", result)


@pytest.mark.parametrize("raw, expected", [
    ({"type": "image_generation", "data": {"url": "https://x/y.png", "prompt": "a dog"},
      "metadata": {"title": "t", "description": "d"}}, ImageGenerationOutput),
    ({"type": "youtube_transcript",
      "data": {"relevant": [{"text": "hello", "score": 0.9, "metadata": {"video_id": "abc"}}]},
      "metadata": {"title": "t", "description": "d"}}, YoutubeTranscriptOutput),
    ({"type": "website_scraper", "data": {"url": "https://example.com"},
      "metadata": {"title": "t", "description": "d"}}, WebsiteScraperOutput),
])
def test_known_shapes(extractor, raw, expected):
    assert isinstance(extractor.from_tool_result("any_tool", json.dumps(raw)), expected)


@pytest.mark.parametrize("result", [
    "just some text",
    "",
    "{not json",
    json.dumps({"type": "error", "error": "invalid_arguments"}),
    json.dumps({"type": "reddit_posts", "data": {}, "metadata": {"title": "t", "description": "d"}}),
    json.dumps({"type": "image_generation", "data": {"url": "u"}}),
    json.dumps([1, 2, 3]),
    "null",
])
def test_unrecognized_results_yield_none(extractor, result):
    assert extractor.from_tool_result("reddit", result) is None


def test_legacy_movie_array(extractor):
    movies = [
        {"title": "Arrival", "year": 2016, "genre": "Sci-Fi", "rating": 7.9,
         "description": "A tense, atmospheric first-contact story"},
        {"title": "Moon", "year": 2009, "description": "Lonely lunar worker"},
    ]
    payload = extractor.from_tool_result("movie_search", json.dumps(movies))

    assert isinstance(payload, MovieRecommendationsOutput)
    assert [m.title for m in payload.data.recommendations] == ["Arrival", "Moon"]
    assert payload.data.genre == "sci-fi"
    assert payload.data.recommendations[0].tags == ["tense", "atmospheric"]


def test_legacy_array_only_for_movie_search(extractor):
    assert extractor.from_tool_result("reddit", json.dumps([{"title": "x"}])) is None


def test_legacy_image_url(extractor):
    payload = extractor.from_tool_result("generate_image", json.dumps("https://img.example/a.png"))
    assert isinstance(payload, ImageGenerationOutput)
    assert payload.data.url == "https://img.example/a.png"


def test_assistant_json_reply(extractor):
    assert isinstance(extractor.from_assistant_text(json.dumps(REDDIT_RESULT)), RedditPostsOutput)


def test_assistant_movie_list_em_dash(extractor):
    text = (
        "Here are some horror picks:\n"
        "- The Descent (2005) — claustrophobic caving nightmare, rating: 7.2\n"
        "- It Follows (2014) — atmospheric dread directed by David Robert Mitchell\n"
    )
    payload = extractor.from_assistant_text(text)

    assert isinstance(payload, MovieRecommendationsOutput)
    first, second = payload.data.recommendations
    assert (first.title, first.year) == ("The Descent", 2005)
    assert first.rating == 7.2
    assert "claustrophobic" in first.tags
    assert second.director == "David Robert Mitchell"
    assert payload.data.genre == "horror"


def test_assistant_movie_list_plain_hyphen(extractor):
    payload = extractor.from_assistant_text("- Heat (1995) - a long, lean crime epic")
    assert payload.data.recommendations[0].title == "Heat"


def test_plain_reply_yields_none(extractor):
    assert extractor.from_assistant_text("Why did the chicken cross the road?") is None
    assert extractor.from_assistant_text("") is None


def test_text_adapters_can_be_disabled():
    extractor = StructuredOutputExtractor(text_adapters=[])
    assert extractor.from_assistant_text("- Heat (1995) — crime epic") is None


def test_movie_adapter_directly():
    assert MovieListAdapter().parse("nothing to see") is None


@pytest.mark.parametrize("text, rating", [
    ("IMDb: 8.1 overall", 8.1),
    ("a solid 7/10", 7.0),
    ("rating: 42", None),
    ("no score", None),
])
def test_extract_rating(text, rating):
    assert extract_rating(text) == rating


def test_extract_metascore_and_director():
    assert extract_metascore("Metacritic: 88") == 88
    assert extract_metascore("scored 150/100") is None
    assert extract_director("directed by Denis Villeneuve") == "Denis Villeneuve"
    assert extract_director("director: Nolan") is None


def test_load_payload_rejects_non_dicts():
    assert load_payload("string") is None
    assert load_payload(None) is None
