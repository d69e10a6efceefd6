"""Provider registry keyed by function name.

Each endpoint ("ask-question", "get-hint", ...) resolves its provider once.
The outcome is cached either way: a configuration failure keeps failing with
the same error, without re-reading the environment, until reset() is called
(which is what a redeploy amounts to).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from twenty_questions.errors import ConfigurationError
from twenty_questions.llm.base import LLMProvider
from twenty_questions.llm.config import load_llm_config
from twenty_questions.llm.providers import AnthropicProvider, MockProvider, OpenAIProvider
from twenty_questions.llm.retry import RetryPolicy
from twenty_questions.models import LLMConfig

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[LLMProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "mock": MockProvider,
}


@dataclass
class Resolution:
    provider: LLMProvider | None = None
    error: ConfigurationError | None = None


def create_provider(
    config: LLMConfig,
    retry: RetryPolicy | None = None,
    timeout: float = 10.0,
) -> LLMProvider:
    cls = PROVIDER_CLASSES.get(config.provider)
    if cls is None:
        raise ConfigurationError(f"Unknown LLM provider: {config.provider}")
    return cls(config, retry=retry, timeout=timeout)


class ProviderRegistry:
    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        retry: RetryPolicy | None = None,
        timeout: float = 10.0,
        loader: Callable[..., LLMConfig] = load_llm_config,
    ) -> None:
        self._env = env
        self._retry = retry
        self._timeout = timeout
        self._loader = loader
        self._resolved: dict[str, Resolution] = {}

    def get(self, function_name: str) -> LLMProvider:
        """Return the provider for an endpoint, or raise its cached ConfigurationError."""
        resolution = self._resolved.get(function_name)
        if resolution is None:
            resolution = self._resolve(function_name)
            self._resolved[function_name] = resolution
        if resolution.error is not None:
            raise resolution.error
        return resolution.provider

    def register(self, function_name: str, provider: LLMProvider) -> None:
        """Pin a provider for an endpoint, bypassing configuration."""
        self._resolved[function_name] = Resolution(provider=provider)

    def reset(self) -> None:
        self._resolved.clear()

    def _resolve(self, function_name: str) -> Resolution:
        try:
            config = self._loader(function_name, self._env)
            provider = create_provider(config, retry=self._retry, timeout=self._timeout)
        except ConfigurationError as e:
            logger.error("LLM provider unavailable for %s: %s", function_name, e)
            return Resolution(error=e)
        logger.info(
            "LLM provider for %s: %s (%s)", function_name, provider.name, config.model
        )
        return Resolution(provider=provider)
