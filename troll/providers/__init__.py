"""LLM providers for Troll."""

from troll.config import DEFAULT_PROVIDER

from .base import Provider, StreamEvent, Usage
from .ollama import OllamaProvider
from .openai_compatible import OpenAICompatibleProvider, OpenAIProvider

# Registry of available providers
PROVIDERS: dict[str, type[Provider]] = {
    "openai": OpenAIProvider,
    "openai_compatible": OpenAICompatibleProvider,
    "ollama": OllamaProvider,
}


def create_provider(name: str = DEFAULT_PROVIDER, **kwargs) -> Provider:
    """Create a provider instance by name.

    Args:
        name: Provider name ("openai", "openai_compatible", "ollama")
        **kwargs: Provider-specific arguments (model_id, host, etc.)

    Returns:
        Configured provider instance

    Raises:
        ValueError: If provider name is unknown
    """
    if name not in PROVIDERS:
        available = ", ".join(PROVIDERS.keys())
        raise ValueError(f"Unknown provider '{name}'. Available: {available}")

    return PROVIDERS[name](**kwargs)


__all__ = [
    "Provider",
    "StreamEvent",
    "Usage",
    "OpenAIProvider",
    "OpenAICompatibleProvider",
    "OllamaProvider",
    "PROVIDERS",
    "create_provider",
]
