"""Vendor integrations behind the common ``Provider`` interface."""

from sightline.llm.providers.base import Provider, ProviderRequest
from sightline.llm.providers.claude import ClaudeProvider
from sightline.llm.providers.gemini import GeminiProvider
from sightline.llm.providers.openai import OpenAIProvider

__all__ = [
    "ClaudeProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "Provider",
    "ProviderRequest",
]
