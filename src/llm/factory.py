"""LLM provider factory with auto-detection."""

import os
from dataclasses import dataclass

from .base import LLMError, LLMProvider


@dataclass(frozen=True)
class _ProviderSpec:
    env_key: str
    key_prefix: str
    extraction_model: str  # cheap tier; extraction runs once per observation


# Detection order: first entry wins when several keys are set
_PROVIDERS = {
    "claude": _ProviderSpec("ANTHROPIC_API_KEY", "sk-ant-", "claude-haiku-4-20250514"),
    "openai": _ProviderSpec("OPENAI_API_KEY", "sk-", "gpt-4o-mini"),
}


def _provider_class(name: str) -> type[LLMProvider]:
    if name == "claude":
        from .providers.claude import ClaudeProvider

        return ClaudeProvider
    if name == "openai":
        from .providers.openai import OpenAIProvider

        return OpenAIProvider
    raise LLMError(f"Unknown provider: {name}. Use: {', '.join(_PROVIDERS)}")


def create_llm_provider(
    provider: str | None = None,
    api_key: str | None = None,
    model: str | None = None,
    client=None,
) -> LLMProvider:
    """Create an LLM provider instance.

    Args:
        provider: "claude", "openai", "auto", or None (auto-detect)
        api_key: Explicit API key (overrides env var)
        model: Model name (None = provider default)
        client: Pre-built SDK client for testing/DI
    """
    name = _resolve(provider, api_key)
    cls = _provider_class(name)
    if not api_key and not client:
        api_key = os.getenv(_PROVIDERS[name].env_key)
    return cls(api_key=api_key, model=model, client=client)


def create_extraction_provider(
    provider: str | None = None,
    api_key: str | None = None,
    model: str | None = None,
    client=None,
) -> LLMProvider:
    """Provider for per-observation fact extraction; defaults to the cheap model."""
    name = _resolve(provider, api_key)
    spec = _PROVIDERS.get(name)
    default = spec.extraction_model if spec else None
    return create_llm_provider(provider=name, api_key=api_key, model=model or default, client=client)


def _resolve(provider: str | None, api_key: str | None) -> str:
    if provider and provider != "auto":
        return provider
    return _auto_detect_provider(api_key)


def _detect_provider_from_key(api_key: str) -> str | None:
    """Infer provider from API key prefix (most specific prefix first)."""
    for name, spec in sorted(_PROVIDERS.items(), key=lambda item: -len(item[1].key_prefix)):
        if api_key.startswith(spec.key_prefix):
            return name
    return None


def _auto_detect_provider(api_key: str | None = None) -> str:
    """Detect provider from explicit key prefix, then env vars."""
    if api_key:
        inferred = _detect_provider_from_key(api_key)
        if inferred:
            return inferred

    for name, spec in _PROVIDERS.items():
        if os.getenv(spec.env_key):
            return name
    env_keys = ", ".join(spec.env_key for spec in _PROVIDERS.values())
    raise LLMError(f"No LLM API key found. Set one of: {env_keys}")
