"""Movie search hook for Troll.

Usage:
    TROLL_MOVIES_FILE=movies.json troll --hook hooks/movies.py

Adds a movie_search tool over a local JSON list of movie records
(title, year, genre, director, rating, metascore, description).
"""

import json
import os
import re
from pathlib import Path

from troll.tools.base import Tool, ToolInput


def _score(movie: dict, terms: set[str]) -> int:
    haystack = " ".join(
        str(movie.get(key, "")) for key in ("title", "description", "genre", "director")
    ).lower()
    return sum(haystack.count(term) for term in terms)


class MovieSearchTool(Tool):
    """Keyword search over a local movie catalogue."""

    name = "movie_search"
    description = (
        "ALWAYS use this tool when users ask about movies or want movie recommendations. "
        "Searches a catalogue with title, year, genre, director, rating and description."
    )
    parameters = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "Descriptive search terms, e.g. 'space exploration'"},
            "genre": {"type": ["string", "null"], "description": "Only when the user names a genre"},
            "director": {"type": ["string", "null"], "description": "Only when the user names a director"},
            "year": {"type": ["integer", "null"], "description": "Only when the user names a year"},
            "limit": {"type": ["integer", "null"], "description": "1 for a single pick, null for 5"},
        },
        "required": ["query"],
    }

    def __init__(self, path: str | None = None):
        self.path = Path(path or os.environ.get("TROLL_MOVIES_FILE", "movies.json"))

    def execute(self, tool_input: ToolInput) -> str:
        args = tool_input.tool_args
        query = args.get("query", "")
        limit = args.get("limit") or 5

        try:
            movies = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            return json.dumps({
                "type": "movie_recommendations",
                "data": {"recommendations": []},
                "metadata": {"title": "Movie Search Error", "description": "Unable to search movies at this time"},
                "contextualMessage": f"The movie catalogue could not be read: {e}",
            })

        if genre := args.get("genre"):
            movies = [m for m in movies if genre.lower() in str(m.get("genre", "")).lower()]
        if director := args.get("director"):
            movies = [m for m in movies if director.lower() in str(m.get("director", "")).lower()]
        if year := args.get("year"):
            movies = [m for m in movies if m.get("year") == year]

        terms = {w for w in re.findall(r"\w+", query.lower()) if len(w) > 2}
        ranked = sorted(movies, key=lambda m: (-_score(m, terms), -(m.get("rating") or 0)))[:limit]

        if not ranked:
            return json.dumps({
                "type": "movie_recommendations",
                "data": {"recommendations": [], "query": query},
                "metadata": {"title": "No Movies Found", "description": "No movies match your search criteria"},
                "contextualMessage": f'No movies matched "{query}".',
            })

        single = limit == 1
        return json.dumps({
            "type": "movie_recommendations",
            "data": {"recommendations": ranked, "query": query, "genre": args.get("genre")},
            "metadata": {
                "title": "Movie Recommendation" if single else "Movie Recommendations",
                "description": (
                    f'Found the perfect movie for "{query}"' if single
                    else f'Found {len(ranked)} movie recommendations for "{query}"'
                ),
            },
            "contextualMessage": f"My top pick: {ranked[0].get('title')} ({ranked[0].get('year')}).",
        }, indent=2)


# Tools to add
TOOLS = [MovieSearchTool()]
