"""LLM configuration entities for sightline.

Settings are resolved once (from the config file and the environment) and
then passed explicitly to the client and providers. Nothing below the CLI
reads environment variables on its own.

Supports three providers: Gemini, Claude, and OpenAI.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

# Known providers, in display order
VALID_PROVIDERS: tuple[str, ...] = ("gemini", "claude", "openai")

# Environment variable holding each provider's API key
PROVIDER_ENV_VARS: dict[str, str] = {
    "gemini": "GEMINI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}

DEFAULT_PROVIDER = "gemini"
DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 8192
DEFAULT_TIMEOUT = 300.0


@dataclass(frozen=True)
class ProviderConfig:
    """Fully resolved options for a single provider request.

    Attributes:
        api_key: API key (None when not configured)
        model: Model identifier (None selects the provider default)
        temperature: Sampling temperature
        max_tokens: Maximum response tokens
        timeout: Request timeout in seconds
    """

    api_key: str | None = None
    model: str | None = None
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: float = DEFAULT_TIMEOUT

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


@dataclass(frozen=True)
class ChatOptions:
    """Per-call overrides for ``LLMClient.chat``.

    Any field left as None falls back to the client's settings.
    """

    provider: str | None = None
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    timeout: float | None = None


@dataclass(frozen=True)
class LLMSettings:
    """Resolved LLM settings shared by the client and every provider.

    Attributes:
        provider: Default provider name
        model: Model override for the default provider
        temperature: Sampling temperature
        max_tokens: Maximum response tokens
        timeout: Request timeout in seconds
        api_keys: API key per provider name
        models: Model override per provider name
    """

    provider: str = DEFAULT_PROVIDER
    model: str | None = None
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: float = DEFAULT_TIMEOUT
    api_keys: Mapping[str, str | None] = field(default_factory=dict)
    models: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        provider = self.provider.lower().strip()
        object.__setattr__(self, "provider", provider)

        if provider not in VALID_PROVIDERS:
            raise ValueError(
                f"Invalid provider '{provider}'. Must be one of: {list(VALID_PROVIDERS)}"
            )

        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be between 0 and 2. Got: {self.temperature}")

        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive. Got: {self.max_tokens}")

        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive. Got: {self.timeout}")

        if self.model is not None and not self.model.strip():
            raise ValueError("Model identifier cannot be empty")

    def api_key_for(self, provider: str) -> str | None:
        """Return the configured API key for a provider, or None."""
        key = self.api_keys.get(provider)
        if key is None or not key.strip():
            return None
        return key

    def model_for(self, provider: str) -> str | None:
        """Return the model override for a provider, or None for its default."""
        if provider in self.models:
            return self.models[provider]
        if provider == self.provider:
            return self.model
        return None

    def provider_config(
        self,
        provider: str,
        options: ChatOptions | None = None,
    ) -> ProviderConfig:
        """Build the request options for one provider.

        Args:
            provider: Provider name
            options: Per-call overrides

        Returns:
            ProviderConfig with overrides applied
        """
        config = ProviderConfig(
            api_key=self.api_key_for(provider),
            model=self.model_for(provider),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout=self.timeout,
        )

        if options is None:
            return config

        overrides = {
            name: value
            for name, value in (
                ("model", options.model),
                ("temperature", options.temperature),
                ("max_tokens", options.max_tokens),
                ("timeout", options.timeout),
            )
            if value is not None
        }
        return replace(config, **overrides)

    def with_overrides(self, **changes: Any) -> "LLMSettings":
        """Return a copy with the given fields replaced (None values ignored)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization.

        API keys are never included.
        """
        return {
            "provider": self.provider,
            "model": self.model_for(self.provider),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout,
        }

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **kwargs: Any,
    ) -> "LLMSettings":
        """Create settings with API keys read from provider environment variables.

        Args:
            environ: Environment mapping (defaults to ``os.environ``)
            **kwargs: Other LLMSettings fields

        Returns:
            LLMSettings instance
        """
        env = os.environ if environ is None else environ
        api_keys = {name: env.get(var) for name, var in PROVIDER_ENV_VARS.items()}
        explicit = kwargs.pop("api_keys", None) or {}
        api_keys.update({name: key for name, key in explicit.items() if key})
        return cls(api_keys=api_keys, **kwargs)
