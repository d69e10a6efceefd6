"""Provider configuration from environment variables.

    {FUNCTION}_LLM_PROVIDER   per-function override, e.g. ASK_QUESTION_LLM_PROVIDER
    LLM_PROVIDER              global default (falls back to "anthropic")
    ANTHROPIC_API_KEY / ANTHROPIC_MODEL / ANTHROPIC_BASE_URL
    OPENAI_API_KEY / OPENAI_MODEL / OPENAI_ORG_ID / OPENAI_BASE_URL
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from twenty_questions.errors import ConfigurationError
from twenty_questions.models import LLMConfig

SUPPORTED_PROVIDERS = ("anthropic", "openai", "mock")

DEFAULT_MODELS = {
    "anthropic": "claude-3-haiku-20240307",
    "openai": "gpt-4o-mini",
    "mock": "mock",
}

REQUIRED_ENV_VARS = {
    "anthropic": ["ANTHROPIC_API_KEY"],
    "openai": ["OPENAI_API_KEY"],
    "mock": [],
}


def provider_env_key(function_name: str | None) -> str:
    if not function_name:
        return "LLM_PROVIDER"
    return f"{function_name.upper().replace('-', '_')}_LLM_PROVIDER"


def load_llm_config(
    function_name: str | None = None,
    env: Mapping[str, str] | None = None,
) -> LLMConfig:
    env = os.environ if env is None else env
    provider = (
        env.get(provider_env_key(function_name))
        or env.get("LLM_PROVIDER")
        or "anthropic"
    ).strip().lower()

    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(
            f"Invalid LLM provider: {provider}. "
            f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
        )

    if provider == "mock":
        return LLMConfig(provider="mock", model=DEFAULT_MODELS["mock"])

    prefix = provider.upper()
    config = LLMConfig(
        provider=provider,
        api_key=env.get(f"{prefix}_API_KEY", ""),
        model=env.get(f"{prefix}_MODEL") or DEFAULT_MODELS[provider],
        base_url=env.get(f"{prefix}_BASE_URL") or None,
        organization_id=(env.get("OPENAI_ORG_ID") or None) if provider == "openai" else None,
    )
    if not config.api_key:
        raise ConfigurationError(
            f"API key not found for {provider} provider. "
            "Please set the appropriate environment variable."
        )
    return config


def validate_environment(
    provider: str | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[bool, list[str]]:
    """Return (valid, missing_vars) for one provider or all of them."""
    env = os.environ if env is None else env
    if provider and provider not in SUPPORTED_PROVIDERS:
        return False, ["LLM_PROVIDER"]
    providers = [provider] if provider else list(SUPPORTED_PROVIDERS)
    missing = [
        var
        for p in providers
        for var in REQUIRED_ENV_VARS.get(p, [])
        if not env.get(var)
    ]
    return not missing, missing
