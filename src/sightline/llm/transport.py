"""HTTP transport used by the LLM providers.

Providers only depend on the ``Transport`` protocol: a single ``post``
call that returns either the HTTP status and decoded body, or a failure
reason when no HTTP response was obtained at all (connection refused,
DNS failure, timeout).
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from sightline.result import Err, Ok, Result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """Status and decoded body of an HTTP response.

    Attributes:
        status: HTTP status code
        body: Decoded JSON body, or the raw text when the body is not JSON
    """

    status: int
    body: Any


TransportResult = Result[HttpResponse, str]


class Transport(Protocol):
    """Anything that can POST a JSON body and report the outcome."""

    def post(
        self,
        url: str,
        headers: dict[str, str],
        json_body: dict[str, Any],
        timeout: float,
    ) -> TransportResult:
        """Send a POST request.

        Args:
            url: Target URL
            headers: Request headers
            json_body: Body to send as JSON
            timeout: Timeout in seconds

        Returns:
            Ok(HttpResponse) for any HTTP response, Err(reason) otherwise
        """
        ...


class HttpxTransport:
    """Transport backed by an ``httpx.Client``.

    Usage:
        transport = HttpxTransport()
        result = transport.post(url, headers, body, timeout=300)
    """

    def __init__(self, client: httpx.Client | None = None) -> None:
        """Initialize the transport.

        Args:
            client: Client to use (a new one is created when omitted)
        """
        self._client = client or httpx.Client()

    def post(
        self,
        url: str,
        headers: dict[str, str],
        json_body: dict[str, Any],
        timeout: float,
    ) -> TransportResult:
        try:
            response = self._client.post(
                url,
                headers=headers,
                json=json_body,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            logger.debug("POST %s timed out after %ss", _redact(url), timeout)
            return Err(f"timeout: {e}")
        except httpx.HTTPError as e:
            logger.debug("POST %s failed: %s", _redact(url), e)
            return Err(f"{type(e).__name__}: {e}")

        return Ok(HttpResponse(status=response.status_code, body=_decode_body(response)))

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpxTransport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _redact(url: str) -> str:
    # Gemini passes the API key as a query parameter
    return url.split("?", 1)[0]
