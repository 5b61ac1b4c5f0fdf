"""Shared HTTP response classification for the LLM providers.

Maps every transport outcome onto the closed error taxonomy. Successful
(200) responses are handed to the provider-specific body parser, whose
result is returned as-is.
"""

import logging
from collections.abc import Callable
from typing import Any

from sightline.errors import ErrorKind, LLMFailure
from sightline.llm.transport import HttpResponse
from sightline.result import Err, Result

logger = logging.getLogger(__name__)

BodyParser = Callable[[Any], Result[Any, LLMFailure]]

# Status codes with a dedicated, payload-free classification
_STATUS_KINDS: dict[int, ErrorKind] = {
    429: ErrorKind.RATE_LIMITED,
    401: ErrorKind.INVALID_API_KEY,
    403: ErrorKind.FORBIDDEN,
    529: ErrorKind.OVERLOADED,
}


def handle_response(
    transport_result: Result[HttpResponse, Any],
    parser: BodyParser | None,
    provider: str,
) -> Result[Any, LLMFailure]:
    """Classify a transport result.

    Args:
        transport_result: Outcome of ``Transport.post``
        parser: Body parser for 200 responses; without one a 200 is
            classified as http_error
        provider: Provider label used in log messages

    Returns:
        The parser's result for 200 responses, otherwise Err(LLMFailure)

    Examples:
        handle_response(Ok(HttpResponse(200, body)), parse_gemini, "Gemini")
        handle_response(Ok(HttpResponse(429, None)), None, "Claude")
    """
    if isinstance(transport_result, Err):
        logger.error("%s request failed: %r", provider, transport_result.error)
        return Err(LLMFailure.request_failed(transport_result.error))

    status = transport_result.value.status
    body = transport_result.value.body

    if status == 200 and parser is not None:
        return parser(body)

    kind = _STATUS_KINDS.get(status)
    if kind is not None:
        logger.warning("%s returned %d (%s)", provider, status, kind.value)
        return Err(LLMFailure(kind))

    if status == 400:
        logger.error("%s bad request: %r", provider, body)
        return Err(LLMFailure.bad_request(body))

    logger.error("%s error (%d): %r", provider, status, body)
    return Err(LLMFailure.http_error(status, body))
