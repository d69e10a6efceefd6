"""Provider base class.

Every backend takes an LLMConfig, validates it at construction and exposes

    async def generate_response(self, request: LLMRequest) -> LLMResponse

Concrete backends only differ in how they build the HTTP request and parse
the response; retries and transport handling live here.
"""

from __future__ import annotations

import logging

import httpx

from twenty_questions.errors import ConfigurationError, UpstreamError
from twenty_questions.llm.retry import RetryPolicy
from twenty_questions.models import LLMConfig, LLMRequest, LLMResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class LLMProvider:
    name = "base"

    def __init__(
        self,
        config: LLMConfig,
        retry: RetryPolicy | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.config = config
        self._retry = retry or RetryPolicy()
        self._timeout = timeout
        if not self.validate_config():
            raise ConfigurationError(f"Invalid configuration for {self.name} provider")

    def validate_config(self) -> bool:
        return bool(self.config.api_key and self.config.model and self.config.provider == self.name)

    # Subclasses fill these three in.

    def _build_request(self, request: LLMRequest) -> tuple[str, dict, dict[str, str]]:
        """Return (url, body, headers)."""
        raise NotImplementedError

    def _parse_response(self, data: dict) -> LLMResponse:
        raise NotImplementedError

    async def generate_response(self, request: LLMRequest) -> LLMResponse:
        url, body, headers = self._build_request(request)
        logger.debug(
            "llm call provider=%s model=%s messages=%d temperature=%s max_tokens=%d functions=%s",
            self.name, self.config.model, len(request.messages), request.temperature,
            request.max_tokens, bool(request.functions),
        )

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await self._retry.run(
                self.name, lambda: client.post(url, json=body, headers=headers)
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError(f"{self.name} returned a non-JSON body") from e

        result = self._parse_response(data)
        logger.debug(
            "llm response provider=%s len=%d function_call=%s",
            self.name, len(result.content),
            result.function_call.name if result.function_call else None,
        )
        return result
