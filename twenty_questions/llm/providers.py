"""Concrete LLM backends.

    OpenAIProvider    - POST {base}/v1/chat/completions
                        Response: {"choices": [{"message": {"content", "function_call"}}],
                                   "usage": {"prompt_tokens", ...}}
    AnthropicProvider - POST {base}/v1/messages
                        Response: {"content": [{"type": "text"|"tool_use", ...}],
                                   "usage": {"input_tokens", "output_tokens"}}
    MockProvider      - canned keyword-driven replies, no network calls.

Both HTTP backends map function calls onto the shared FunctionCall shape, so
the orchestrator never sees provider-specific tool formats.
"""

from __future__ import annotations

import json
import logging

from twenty_questions.errors import UpstreamError
from twenty_questions.llm.base import LLMProvider
from twenty_questions.models import (
    ChatMessage,
    FunctionCall,
    LLMConfig,
    LLMRequest,
    LLMResponse,
    Usage,
)

logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com"
ANTHROPIC_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------

class OpenAIProvider(LLMProvider):
    name = "openai"

    def _build_request(self, request: LLMRequest) -> tuple[str, dict, dict[str, str]]:
        base = (self.config.base_url or OPENAI_BASE_URL).rstrip("/")
        messages: list[dict] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.extend(m.model_dump() for m in request.messages)

        body: dict = {
            "model": self.config.model,
            "messages": messages,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }
        if request.functions:
            body["functions"] = request.functions
            body["function_call"] = request.function_call or "auto"

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }
        if self.config.organization_id:
            headers["OpenAI-Organization"] = self.config.organization_id
        return f"{base}/v1/chat/completions", body, headers

    def _parse_response(self, data: dict) -> LLMResponse:
        choices = data.get("choices")
        if not choices or "message" not in choices[0]:
            raise UpstreamError("Unexpected response format from openai backend")
        message = choices[0]["message"]

        function_call = None
        if message.get("function_call"):
            fc = message["function_call"]
            function_call = FunctionCall(name=fc["name"], arguments=fc.get("arguments") or "{}")

        usage = data.get("usage") or {}
        return LLMResponse(
            content=message.get("content") or "",
            function_call=function_call,
            usage=Usage(
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
                total_tokens=usage.get("total_tokens", 0),
            ),
        )


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------

class AnthropicProvider(LLMProvider):
    name = "anthropic"

    def _build_request(self, request: LLMRequest) -> tuple[str, dict, dict[str, str]]:
        base = (self.config.base_url or ANTHROPIC_BASE_URL).rstrip("/")

        # Anthropic takes the system prompt out of band.
        system_parts = [request.system_prompt] if request.system_prompt else []
        messages: list[dict] = []
        for m in request.messages:
            if m.role == "system":
                system_parts.append(m.content)
            else:
                messages.append({"role": m.role, "content": m.content})

        body: dict = {
            "model": self.config.model,
            "messages": messages,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }
        if system_parts:
            body["system"] = "\n\n".join(system_parts)
        if request.functions:
            body["tools"] = [
                {
                    "name": f["name"],
                    "description": f.get("description", ""),
                    "input_schema": f.get("parameters", {"type": "object"}),
                }
                for f in request.functions
            ]
            if request.function_call == "none":
                body["tool_choice"] = {"type": "none"}
            elif request.function_call and request.function_call != "auto":
                body["tool_choice"] = {"type": "tool", "name": request.function_call}
            else:
                body["tool_choice"] = {"type": "auto"}

        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        return f"{base}/v1/messages", body, headers

    def _parse_response(self, data: dict) -> LLMResponse:
        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise UpstreamError("Unexpected response format from anthropic backend")

        text_parts: list[str] = []
        function_call = None
        for block in blocks:
            if block.get("type") == "text":
                text_parts.append(block.get("text", ""))
            elif block.get("type") == "tool_use" and function_call is None:
                function_call = FunctionCall(
                    name=block["name"], arguments=json.dumps(block.get("input") or {})
                )

        usage = data.get("usage") or {}
        input_tokens = usage.get("input_tokens", 0)
        output_tokens = usage.get("output_tokens", 0)
        return LLMResponse(
            content="".join(text_parts),
            function_call=function_call,
            usage=Usage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
        )


# ---------------------------------------------------------------------------
# MockProvider - keyword-driven canned replies for local runs
# ---------------------------------------------------------------------------

class MockProvider(LLMProvider):
    """Answers from the last user message without any network call.

    Questions get a game-master JSON answer, hint requests get a hint,
    anything else gets a generic yes/no question. Lets the whole turn flow run
    end-to-end with LLM_PROVIDER=mock.
    """

    name = "mock"

    def __init__(self, config: LLMConfig | None = None, **kwargs) -> None:
        super().__init__(config or LLMConfig(provider="mock", model="mock"), **kwargs)

    def validate_config(self) -> bool:
        return self.config.provider == "mock"

    def reply_for(self, messages: list[ChatMessage]) -> str:
        last = next((m.content for m in reversed(messages) if m.role == "user"), "").lower()
        if "hint" in last:
            return '{"hint": "It is something many people have seen."}'
        if "mammal" in last:
            return '{"answer": "Yes"}'
        if "fly" in last:
            return '{"answer": "No"}'
        if "dog" in last:
            return '{"answer": "Yes", "is_guess": true}'
        if "cat" in last:
            return '{"answer": "No"}'
        if last.rstrip().endswith("?"):
            return '{"answer": "Sometimes"}'
        return "Is it a living thing?"

    async def generate_response(self, request: LLMRequest) -> LLMResponse:
        content = self.reply_for(request.messages)
        logger.debug("MockProvider messages=%d reply=%r", len(request.messages), content)
        return LLMResponse(
            content=content,
            usage=Usage(prompt_tokens=50, completion_tokens=10, total_tokens=60),
        )
