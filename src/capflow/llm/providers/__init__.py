"""
LLM Providers

Implementations for the supported LLM providers.
"""

from __future__ import annotations

from capflow.config import LLMConfig
from capflow.llm.gateway import LLMGateway
from capflow.llm.providers.base import BaseLLMProvider
from capflow.llm.providers.claude import ClaudeProvider
from capflow.llm.providers.openai import OpenAIProvider

PROVIDERS: dict[str, type[BaseLLMProvider]] = {
    "claude": ClaudeProvider,
    "anthropic": ClaudeProvider,
    "openai": OpenAIProvider,
    "gpt": OpenAIProvider,
}


def get_provider(
    provider_name: str,
    api_key: str,
    model: str | None = None,
) -> BaseLLMProvider:
    """
    Get an LLM provider by name.

    Args:
        provider_name: 'claude' or 'openai' (aliases 'anthropic', 'gpt')
        api_key: API key for the provider
        model: Optional model override
    """
    provider_class = PROVIDERS.get(provider_name.lower())
    if not provider_class:
        raise ValueError(f"Unknown provider: {provider_name}. Available: {list(PROVIDERS)}")

    kwargs = {"api_key": api_key}
    if model:
        kwargs["model"] = model
    return provider_class(**kwargs)


def provider_from_config(provider_name: str, config: LLMConfig) -> BaseLLMProvider:
    """Build a provider using the key and model configured for it."""
    if PROVIDERS.get(provider_name.lower()) is ClaudeProvider:
        api_key, model = config.anthropic_api_key, config.claude_model
    else:
        api_key, model = config.openai_api_key, config.openai_model

    if not api_key:
        raise ValueError(f"No API key configured for provider {provider_name!r}")
    return get_provider(provider_name, api_key, model)


def build_gateway(config: LLMConfig) -> LLMGateway:
    """Gateway with the configured primary and (optional) fallback provider."""
    fallback = None
    if config.fallback_provider:
        fallback = provider_from_config(config.fallback_provider, config)

    return LLMGateway(
        primary_provider=provider_from_config(config.primary_provider, config),
        fallback_provider=fallback,
        max_retries=config.max_retries,
        timeout=config.timeout,
    )


__all__ = [
    "BaseLLMProvider",
    "ClaudeProvider",
    "OpenAIProvider",
    "PROVIDERS",
    "build_gateway",
    "get_provider",
    "provider_from_config",
]
