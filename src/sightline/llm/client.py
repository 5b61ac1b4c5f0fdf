"""Provider-agnostic LLM client.

Provides a consistent interface over the registered providers:
- ``chat`` returns a result value and never raises for expected failures
- ``complete`` raises ``LLMError`` instead, for fail-fast callers

The client does not retry. Transient failures are reported with
``failure.retryable`` set so the caller can decide.
"""

import logging

from sightline.errors import LLMError, LLMFailure
from sightline.llm.providers import Provider
from sightline.llm.registry import build_providers
from sightline.llm.transport import HttpxTransport, Transport
from sightline.models.llm_config import ChatOptions, LLMSettings
from sightline.result import Err, Ok, Result

logger = logging.getLogger(__name__)


class LLMClient:
    """Unified LLM client.

    Supports multiple providers through a single interface:
    - Gemini (Google)
    - Claude (Anthropic)
    - OpenAI

    Usage:
        client = LLMClient(LLMSettings.from_env(provider="claude"))
        result = client.chat("Summarize this codebase")
    """

    def __init__(
        self,
        settings: LLMSettings,
        transport: Transport | None = None,
    ) -> None:
        """Initialize LLM client with settings.

        Args:
            settings: Resolved LLM settings, including API keys
            transport: HTTP transport (defaults to an httpx-backed one)
        """
        self.settings = settings
        self._transport = transport or HttpxTransport()
        self._providers: dict[str, Provider] = build_providers(self._transport)

    def provider_available(self, name: str) -> bool:
        """Check if a provider is known and has a non-empty API key.

        No network call is made.
        """
        return name in self._providers and self.settings.api_key_for(name) is not None

    def available_providers(self) -> list[str]:
        """List providers whose API key is configured."""
        return [name for name in self._providers if self.provider_available(name)]

    def resolve_provider(self, options: ChatOptions | None = None) -> str:
        """Get the provider a request would use (explicit option or default)."""
        if options is not None and options.provider:
            return options.provider.lower().strip()
        return self.settings.provider

    def chat(
        self,
        prompt: str,
        options: ChatOptions | None = None,
    ) -> Result[str, LLMFailure]:
        """Send a chat request to the selected provider.

        Args:
            prompt: Prompt text
            options: Per-call overrides (provider, model, temperature, ...)

        Returns:
            Ok(text) on success, Err(LLMFailure) otherwise
        """
        name = self.resolve_provider(options)

        if not self.provider_available(name):
            logger.error("Provider '%s' is not available (no API key configured)", name)
            return Err(LLMFailure.missing_api_key())

        config = self.settings.provider_config(name, options)
        provider = self._providers[name]

        logger.debug(
            "Sending %d-char prompt to %s (model=%s, max_tokens=%d)",
            len(prompt),
            name,
            provider.model_name(config),
            config.max_tokens,
        )

        result = provider.chat(prompt, config)

        if isinstance(result, Ok):
            logger.debug("%s returned %d chars", name, len(result.value))
        else:
            logger.error("LLM request to %s failed: %s", name, result.error.describe())

        return result

    def complete(
        self,
        prompt: str,
        options: ChatOptions | None = None,
    ) -> str:
        """Send a chat request, raising on failure.

        Args:
            prompt: Prompt text
            options: Per-call overrides

        Returns:
            Generated text

        Raises:
            LLMError: Carrying the classified failure
        """
        result = self.chat(prompt, options)
        if isinstance(result, Err):
            raise LLMError(self.resolve_provider(options), result.error)
        return result.value


def create_client(
    settings: LLMSettings,
    transport: Transport | None = None,
) -> LLMClient:
    """Create an LLM client from settings.

    Factory function for creating LLM clients.
    """
    return LLMClient(settings, transport=transport)
