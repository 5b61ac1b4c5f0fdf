"""Provider registry.

Maps provider names to their implementation classes. The mapping is
built once at import time and is read-only; selecting a provider is a
plain dictionary lookup.

Adding a provider:
    1. Subclass ``Provider`` (build_request + parse_response)
    2. Add its API key variable to ``PROVIDER_ENV_VARS``
    3. Add it to ``PROVIDERS`` below
"""

from types import MappingProxyType

from sightline.llm.providers import ClaudeProvider, GeminiProvider, OpenAIProvider, Provider
from sightline.llm.transport import Transport

PROVIDERS: MappingProxyType[str, type[Provider]] = MappingProxyType(
    {
        GeminiProvider.name: GeminiProvider,
        ClaudeProvider.name: ClaudeProvider,
        OpenAIProvider.name: OpenAIProvider,
    }
)


def provider_names() -> list[str]:
    """Get registered provider names in registration order."""
    return list(PROVIDERS)


def get_provider_class(name: str) -> type[Provider] | None:
    """Look up a provider class by name, or None if unknown."""
    return PROVIDERS.get(name)


def build_providers(transport: Transport) -> dict[str, Provider]:
    """Instantiate every registered provider over a shared transport."""
    return {name: provider_class(transport) for name, provider_class in PROVIDERS.items()}
