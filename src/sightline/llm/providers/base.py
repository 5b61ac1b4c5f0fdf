"""Abstract base class for LLM providers.

All providers MUST implement this interface. Each provider:
1. Builds its vendor-specific request (endpoint, auth, JSON body)
2. Parses its vendor-specific success body into plain text
3. Leaves transport errors and HTTP status handling to the shared
   response handler

Adding a new vendor means a new subclass plus one registry entry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from sightline.errors import LLMFailure
from sightline.llm.response_handler import handle_response
from sightline.llm.transport import Transport
from sightline.models.llm_config import ProviderConfig
from sightline.result import Err, Result


@dataclass(frozen=True)
class ProviderRequest:
    """A fully built vendor request.

    Attributes:
        url: Endpoint URL (may carry the API key as a query parameter)
        headers: HTTP headers
        body: JSON body
    """

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)


class Provider(ABC):
    """One LLM vendor integration.

    Attributes:
        name: Registry key (e.g., "gemini")
        label: Display name used in log messages
        default_model: Model used when the config does not name one
    """

    name: ClassVar[str]
    label: ClassVar[str]
    default_model: ClassVar[str]

    def __init__(self, transport: Transport) -> None:
        """Initialize the provider.

        Args:
            transport: Transport used to send requests
        """
        self._transport = transport

    def chat(self, prompt: str, config: ProviderConfig) -> Result[str, LLMFailure]:
        """Send a single-turn chat request.

        Returns ``missing_api_key`` without touching the network when no
        API key is configured, whatever other options are set.

        Args:
            prompt: Prompt text
            config: Resolved request options

        Returns:
            Ok(text) on success, Err(LLMFailure) otherwise
        """
        if not config.has_api_key:
            return Err(LLMFailure.missing_api_key())

        request = self.build_request(prompt, config)
        transport_result = self._transport.post(
            request.url,
            request.headers,
            request.body,
            config.timeout,
        )
        return handle_response(transport_result, self.parse_response, self.label)

    def model_name(self, config: ProviderConfig) -> str:
        return config.model or self.default_model

    @abstractmethod
    def build_request(self, prompt: str, config: ProviderConfig) -> ProviderRequest:
        """Build the vendor request for a prompt.

        Args:
            prompt: Prompt text
            config: Resolved request options (API key guaranteed present)

        Returns:
            ProviderRequest ready to send
        """

    @staticmethod
    @abstractmethod
    def parse_response(body: Any) -> Result[str, LLMFailure]:
        """Extract generated text from a 200 response body.

        MUST NOT raise: any body that does not match a known shape is
        returned as ``unexpected_response`` carrying the body unchanged.
        """
