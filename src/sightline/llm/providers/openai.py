"""OpenAI provider (Chat Completions API)."""

from typing import Any

from sightline.errors import ErrorKind, LLMFailure
from sightline.llm.providers.base import Provider, ProviderRequest
from sightline.models.llm_config import ProviderConfig
from sightline.result import Err, Ok, Result

BASE_URL = "https://api.openai.com/v1"


class OpenAIProvider(Provider):
    """OpenAI chat via ``/v1/chat/completions``."""

    name = "openai"
    label = "OpenAI"
    default_model = "gpt-4o"

    def build_request(self, prompt: str, config: ProviderConfig) -> ProviderRequest:
        return ProviderRequest(
            url=f"{BASE_URL}/chat/completions",
            headers={
                "Authorization": f"Bearer {config.api_key}",
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
        """Parse a Chat Completions body.

        Returns the first choice's message content. An empty ``choices``
        list is an ``unexpected_response``.
        """
        if isinstance(body, dict):
            choices = body.get("choices")
            if isinstance(choices, list) and choices and isinstance(choices[0], dict):
                choice = choices[0]
                message = choice.get("message")
                content = message.get("content") if isinstance(message, dict) else None

                if isinstance(content, str):
                    return Ok(content)

                if choice.get("finish_reason") == "content_filter":
                    return Err(LLMFailure(ErrorKind.SAFETY_BLOCKED))

            if "error" in body:
                return Err(LLMFailure.api_error(body["error"]))

        return Err(LLMFailure.unexpected_response(body))
