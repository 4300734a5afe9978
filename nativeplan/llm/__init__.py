"""LLM provider abstraction and factory."""

from nativeplan.config.settings import NativeplanSettings
from nativeplan.llm.base import LLMProvider


def create_provider(settings: NativeplanSettings) -> LLMProvider:
    """Create an LLM provider for intent routing based on settings."""
    provider_name = settings.default_provider

    if provider_name is None:
        if settings.openai_api_key and not settings.anthropic_api_key:
            provider_name = "openai"
        else:
            provider_name = "anthropic"

    if provider_name == "anthropic":
        if not settings.anthropic_api_key:
            raise ValueError("Anthropic API key required but not set (NATIVEPLAN_ANTHROPIC_API_KEY)")
        from nativeplan.llm.providers.anthropic import AnthropicProvider

        return AnthropicProvider(api_key=settings.anthropic_api_key, model=settings.default_model)
    elif provider_name == "openai":
        if not settings.openai_api_key:
            raise ValueError("OpenAI API key required but not set (NATIVEPLAN_OPENAI_API_KEY)")
        from nativeplan.llm.providers.openai import OpenAIProvider

        return OpenAIProvider(api_key=settings.openai_api_key, model=settings.default_model)
    else:
        raise ValueError(f"Unknown provider: {provider_name}")
