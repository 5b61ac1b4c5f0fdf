"""Google Gemini provider (generateContent API)."""

from typing import Any
from urllib.parse import quote, urlencode

from sightline.errors import ErrorKind, LLMFailure
from sightline.llm.providers.base import Provider, ProviderRequest
from sightline.models.llm_config import ProviderConfig
from sightline.result import Err, Ok, Result

BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiProvider(Provider):
    """Gemini chat via ``models/{model}:generateContent``.

    The API key travels as the ``key`` query parameter.
    """

    name = "gemini"
    label = "Gemini"
    default_model = "gemini-2.0-flash"

    def build_request(self, prompt: str, config: ProviderConfig) -> ProviderRequest:
        model = quote(self.model_name(config), safe="")
        query = urlencode({"key": config.api_key})
        return ProviderRequest(
            url=f"{BASE_URL}/models/{model}:generateContent?{query}",
            headers={"content-type": "application/json"},
            body={
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {
                    "temperature": config.temperature,
                    "maxOutputTokens": config.max_tokens,
                    "topP": 0.95,
                    "topK": 40,
                },
            },
        )

    @staticmethod
    def parse_response(body: Any) -> Result[str, LLMFailure]:
        """Parse a generateContent body.

        Text parts of the first candidate are joined with no separator.
        A first candidate without content and with ``finishReason`` SAFETY
        is reported as ``safety_blocked``.
        """
        if isinstance(body, dict):
            candidates = body.get("candidates")
            if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
                first = candidates[0]
                content = first.get("content")
                if isinstance(content, dict) and isinstance(content.get("parts"), list):
                    texts = [
                        part["text"]
                        for part in content["parts"]
                        if isinstance(part, dict) and isinstance(part.get("text"), str)
                    ]
                    return Ok("".join(texts))

                if first.get("finishReason") == "SAFETY":
                    return Err(LLMFailure(ErrorKind.SAFETY_BLOCKED))

            if "error" in body:
                return Err(LLMFailure.api_error(body["error"]))

        return Err(LLMFailure.unexpected_response(body))
