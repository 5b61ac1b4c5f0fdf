"""Error taxonomy and exceptions for sightline.

The LLM layers classify every expected failure into one ``ErrorKind`` and
return it wrapped in an ``LLMFailure``. Exceptions exist only for callers
that opt into fail-fast behaviour (``LLMError``) and for problems outside
the LLM path (configuration, missing sessions).
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Closed set of LLM failure kinds."""

    MISSING_API_KEY = "missing_api_key"
    REQUEST_FAILED = "request_failed"
    RATE_LIMITED = "rate_limited"
    INVALID_API_KEY = "invalid_api_key"
    FORBIDDEN = "forbidden"
    OVERLOADED = "overloaded"
    BAD_REQUEST = "bad_request"
    HTTP_ERROR = "http_error"
    UNEXPECTED_RESPONSE = "unexpected_response"
    SAFETY_BLOCKED = "safety_blocked"
    API_ERROR = "api_error"

    @property
    def retryable(self) -> bool:
        """Whether re-invoking the same request later may succeed."""
        return self in _TRANSIENT_KINDS


_TRANSIENT_KINDS = frozenset(
    {ErrorKind.RATE_LIMITED, ErrorKind.OVERLOADED, ErrorKind.REQUEST_FAILED}
)

_KIND_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.MISSING_API_KEY: "API key not configured",
    ErrorKind.REQUEST_FAILED: "request failed",
    ErrorKind.RATE_LIMITED: "rate limited by provider",
    ErrorKind.INVALID_API_KEY: "API key rejected",
    ErrorKind.FORBIDDEN: "access forbidden",
    ErrorKind.OVERLOADED: "provider overloaded",
    ErrorKind.BAD_REQUEST: "bad request",
    ErrorKind.HTTP_ERROR: "HTTP error",
    ErrorKind.UNEXPECTED_RESPONSE: "unexpected response body",
    ErrorKind.SAFETY_BLOCKED: "response blocked by safety filter",
    ErrorKind.API_ERROR: "provider returned an error",
}


@dataclass(frozen=True)
class LLMFailure:
    """A classified LLM failure.

    Only the payload fields relevant to ``kind`` are set:

    - ``reason``: request_failed
    - ``status``: http_error
    - ``body``: bad_request, http_error, unexpected_response, api_error

    Attributes:
        kind: Failure classification
        reason: Transport failure reason, passed through unchanged
        status: HTTP status code
        body: Response body or vendor error payload, passed through unchanged
    """

    kind: ErrorKind
    reason: Any = None
    status: int | None = None
    body: Any = None

    @classmethod
    def missing_api_key(cls) -> "LLMFailure":
        return cls(ErrorKind.MISSING_API_KEY)

    @classmethod
    def request_failed(cls, reason: Any) -> "LLMFailure":
        return cls(ErrorKind.REQUEST_FAILED, reason=reason)

    @classmethod
    def bad_request(cls, body: Any) -> "LLMFailure":
        return cls(ErrorKind.BAD_REQUEST, body=body)

    @classmethod
    def http_error(cls, status: int, body: Any) -> "LLMFailure":
        return cls(ErrorKind.HTTP_ERROR, status=status, body=body)

    @classmethod
    def unexpected_response(cls, body: Any) -> "LLMFailure":
        return cls(ErrorKind.UNEXPECTED_RESPONSE, body=body)

    @classmethod
    def api_error(cls, body: Any) -> "LLMFailure":
        return cls(ErrorKind.API_ERROR, body=body)

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def describe(self) -> str:
        """Human-readable one-line description."""
        message = _KIND_MESSAGES[self.kind]
        if self.kind == ErrorKind.REQUEST_FAILED:
            return f"{message}: {self.reason}"
        if self.kind == ErrorKind.HTTP_ERROR:
            return f"{message} {self.status}: {_truncate(self.body)}"
        if self.body is not None:
            return f"{message}: {_truncate(self.body)}"
        return message

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "kind": self.kind.value,
            "reason": _jsonable(self.reason),
            "status": self.status,
            "body": _jsonable(self.body),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LLMFailure":
        return cls(
            kind=ErrorKind(data["kind"]),
            reason=data.get("reason"),
            status=data.get("status"),
            body=data.get("body"),
        )


@dataclass(frozen=True)
class PhaseError:
    """Failure of a single pipeline phase.

    Attributes:
        phase: Name of the phase that failed
        failure: The classified LLM failure
        occurred_at: When the failure was recorded (UTC)
    """

    phase: str
    failure: LLMFailure
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def message(self) -> str:
        return f"Phase '{self.phase}' failed: {self.failure.describe()}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "occurred_at": self.occurred_at.isoformat(),
            "message": self.message,
            **self.failure.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PhaseError":
        return cls(
            phase=data["phase"],
            failure=LLMFailure.from_dict(data),
            occurred_at=datetime.fromisoformat(data["occurred_at"]),
        )


class LLMError(Exception):
    """Raised by ``LLMClient.complete`` when a chat request fails."""

    def __init__(self, provider: str, failure: LLMFailure) -> None:
        self.provider = provider
        self.failure = failure
        super().__init__(f"LLM error ({provider}): {failure.describe()}")

    @property
    def kind(self) -> ErrorKind:
        return self.failure.kind


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""


class SessionNotFoundError(Exception):
    """Raised when a directory holds no persisted session."""

    def __init__(self, session_dir: Any) -> None:
        self.session_dir = session_dir
        super().__init__(f"No session found in {session_dir}")


class SessionCorruptError(Exception):
    """Raised when a persisted session file cannot be decoded."""

    def __init__(self, path: Any, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read session file {path}: {reason}")


def _truncate(value: Any, limit: int = 200) -> str:
    text = value if isinstance(value, str) else repr(value)
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool, list, dict)):
        return value
    return repr(value)
