"""Anthropic Claude provider (Messages API)."""

from typing import Any

from sightline.errors import ErrorKind, LLMFailure
from sightline.llm.providers.base import Provider, ProviderRequest
from sightline.models.llm_config import ProviderConfig
from sightline.result import Err, Ok, Result

BASE_URL = "https://api.anthropic.com/v1"
API_VERSION = "2023-06-01"


class ClaudeProvider(Provider):
    """Claude chat via ``/v1/messages``."""

    name = "claude"
    label = "Claude"
    default_model = "claude-sonnet-4-20250514"

    def build_request(self, prompt: str, config: ProviderConfig) -> ProviderRequest:
        return ProviderRequest(
            url=f"{BASE_URL}/messages",
            headers={
                "x-api-key": config.api_key or "",
                "anthropic-version": API_VERSION,
                "content-type": "application/json",
            },
            body={
                "model": self.model_name(config),
                "max_tokens": config.max_tokens,
                "temperature": config.temperature,
                "messages": [{"role": "user", "content": prompt}],
            },
        )

    @staticmethod
    def parse_response(body: Any) -> Result[str, LLMFailure]:
        """Parse a Messages API body.

        Blocks of type ``text`` are joined in order with no separator.
        A refusal that produced no text is reported as ``safety_blocked``.
        """
        if isinstance(body, dict):
            content = body.get("content")
            if isinstance(content, list):
                texts = [
                    block["text"]
                    for block in content
                    if isinstance(block, dict)
                    and block.get("type") == "text"
                    and isinstance(block.get("text"), str)
                ]
                if not texts and body.get("stop_reason") == "refusal":
                    return Err(LLMFailure(ErrorKind.SAFETY_BLOCKED))
                return Ok("".join(texts))

            if "error" in body:
                return Err(LLMFailure.api_error(body["error"]))

        return Err(LLMFailure.unexpected_response(body))
