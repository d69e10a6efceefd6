"""LLM provider layer: backends, retries, configuration and function calling."""

from twenty_questions.llm.base import LLMProvider
from twenty_questions.llm.functions import SEARCH_FUNCTION, execute_function
from twenty_questions.llm.providers import AnthropicProvider, MockProvider, OpenAIProvider
from twenty_questions.llm.registry import ProviderRegistry
from twenty_questions.llm.retry import RetryPolicy

__all__ = [
    "LLMProvider",
    "AnthropicProvider",
    "OpenAIProvider",
    "MockProvider",
    "ProviderRegistry",
    "RetryPolicy",
    "SEARCH_FUNCTION",
    "execute_function",
]
