"""Web search collaborator (Serper).

POST https://google.serper.dev/search  {"q", "num", "hl", "gl"}
Response: {"organic": [{"title", "link", "snippet", "date"?}, ...]}

The key (SERPER_API_KEY) is independent of the LLM credentials.
"""

from __future__ import annotations

import logging
import os

import httpx
from pydantic import BaseModel, Field

from twenty_questions.errors import UpstreamError

logger = logging.getLogger(__name__)

SERPER_API_URL = "https://google.serper.dev/search"


class SearchResult(BaseModel):
    title: str = ""
    link: str = ""
    snippet: str = ""
    date: str | None = None


class SearchResponse(BaseModel):
    results: list[SearchResult] = Field(default_factory=list)
    search_term: str


class SearchClient:
    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 10.0,
        num_results: int = 5,
    ) -> None:
        self._api_key = api_key if api_key is not None else os.getenv("SERPER_API_KEY", "")
        self._timeout = timeout
        self._num = num_results

    async def search(self, query: str) -> SearchResponse:
        if not self._api_key:
            raise UpstreamError("SERPER_API_KEY environment variable is required")

        body = {"q": query, "num": self._num, "hl": "en", "gl": "us"}
        headers = {"X-API-KEY": self._api_key, "Content-Type": "application/json"}
        logger.debug("search query=%r", query)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(SERPER_API_URL, json=body, headers=headers)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(f"Search API error: HTTP {e.response.status_code}") from e
        except httpx.TransportError as e:
            raise UpstreamError(f"Failed to perform search: {e}") from e

        organic = resp.json().get("organic") or []
        results = [
            SearchResult(
                title=item.get("title") or "",
                link=item.get("link") or "",
                snippet=item.get("snippet") or "",
                date=item.get("date"),
            )
            for item in organic
        ]
        logger.debug("search query=%r results=%d", query, len(results))
        return SearchResponse(results=results, search_term=query)
