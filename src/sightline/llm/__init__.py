"""LLM integration module for sightline.

Provides a provider-agnostic client over direct vendor HTTP APIs.
Supports Gemini, Claude, and OpenAI providers.

Expected failures are returned as ``Err(LLMFailure)`` values; only
``LLMClient.complete`` raises.
"""

from sightline.errors import ErrorKind, LLMError, LLMFailure
from sightline.llm.client import LLMClient, create_client
from sightline.llm.prompts import build_phase_prompt, format_context
from sightline.llm.registry import PROVIDERS, build_providers, provider_names
from sightline.llm.response_handler import handle_response
from sightline.llm.transport import HttpResponse, HttpxTransport, Transport
from sightline.models.llm_config import VALID_PROVIDERS, ChatOptions, LLMSettings

__all__ = [
    "PROVIDERS",
    "VALID_PROVIDERS",
    "ChatOptions",
    "ErrorKind",
    "HttpResponse",
    "HttpxTransport",
    "LLMClient",
    "LLMError",
    "LLMFailure",
    "LLMSettings",
    "Transport",
    "build_phase_prompt",
    "build_providers",
    "create_client",
    "format_context",
    "handle_response",
    "provider_names",
]
