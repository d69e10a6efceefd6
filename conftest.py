from pathlib import Path

import pytest

from twenty_questions.config import Settings
from twenty_questions.errors import UpstreamError
from twenty_questions.llm.providers import MockProvider
from twenty_questions.llm.registry import ProviderRegistry
from twenty_questions.models import FunctionCall, LLMRequest, LLMResponse
from twenty_questions.search import SearchResponse, SearchResult
from twenty_questions.storage import JsonStorage


class ScriptedProvider(MockProvider):
    """Replays queued replies in order and records every request.

    A queued str becomes the reply content; a queued LLMResponse is returned
    as-is; a queued exception is raised. With the queue empty it falls back
    to MockProvider's keyword replies.
    """

    def __init__(self, *replies) -> None:
        super().__init__()
        self.replies = list(replies)
        self.requests: list[LLMRequest] = []

    def queue(self, *replies) -> None:
        self.replies.extend(replies)

    async def generate_response(self, request: LLMRequest) -> LLMResponse:
        self.requests.append(request)
        if not self.replies:
            return await super().generate_response(request)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, LLMResponse):
            return reply
        return LLMResponse(content=reply)


def search_call(query: str) -> LLMResponse:
    return LLMResponse(
        function_call=FunctionCall(name="web_search", arguments=f'{{"query": "{query}"}}')
    )


class FakeSearch:
    def __init__(self, results: list[SearchResult] | None = None, error: str | None = None) -> None:
        self.results = results if results is not None else [
            SearchResult(title="Result", link="https://example.com", snippet="A snippet"),
        ]
        self.error = error
        self.queries: list[str] = []

    async def search(self, query: str) -> SearchResponse:
        self.queries.append(query)
        if self.error:
            raise UpstreamError(self.error)
        return SearchResponse(results=self.results, search_term=query)


class FakeSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def storage(data_dir: Path) -> JsonStorage:
    return JsonStorage(data_dir)


@pytest.fixture
def settings(data_dir: Path) -> Settings:
    return Settings(data_dir=data_dir)


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def registry(provider: ScriptedProvider) -> ProviderRegistry:
    """Registry that hands out `provider` for every endpoint."""
    reg = ProviderRegistry(env={"LLM_PROVIDER": "mock"})
    for name in ("ask-question", "get-hint", "submit-answer"):
        reg.register(name, provider)
    return reg


@pytest.fixture
def search() -> FakeSearch:
    return FakeSearch()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()
