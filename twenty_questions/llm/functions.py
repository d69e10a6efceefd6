"""Function-calling declarations and their executors.

The model may request `web_search` when a question depends on current facts.
Executor failures are reported back to the model as {"error": ...} JSON so
the turn can still produce an answer.
"""

from __future__ import annotations

import json
import logging
from typing import Protocol

from twenty_questions.errors import UpstreamError
from twenty_questions.search import SearchResponse

logger = logging.getLogger(__name__)

SEARCH_FUNCTION: dict = {
    "name": "web_search",
    "description": (
        "Search the web for current information when you need recent data, facts, "
        "or context that might not be in your training data. Use this for questions "
        "about recent events, current statistics, or when you need to verify information."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "The search query to find relevant information",
            }
        },
        "required": ["query"],
    },
}


class Searcher(Protocol):
    async def search(self, query: str) -> SearchResponse: ...


async def execute_function(name: str, arguments: str, search: Searcher) -> str:
    """Run a model-requested function and return its result as a JSON string."""
    try:
        args = json.loads(arguments or "{}")
        if name != "web_search":
            raise ValueError(f"Unknown function: {name}")
        if not isinstance(args, dict):
            raise ValueError("Arguments must be a JSON object")
        query = args.get("query")
        if not isinstance(query, str) or not query.strip():
            raise ValueError("Missing 'query' argument")
        result = await search.search(query)
    except (ValueError, UpstreamError) as e:
        logger.warning("function %s failed: %s", name, e)
        return json.dumps({"error": f"Failed to execute {name}: {e}"})

    return json.dumps({
        "searchTerm": result.search_term,
        "results": [{"title": r.title, "snippet": r.snippet} for r in result.results[:3]],
    })
