"""Result values returned by the LLM and transport layers.

Expected failures (missing keys, HTTP errors, odd response bodies) are
returned as ``Err`` values instead of raised, so callers can inspect and
classify them. Use ``isinstance(result, Ok)`` to branch.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result carrying a value."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed result carrying an error payload."""

    error: E

    @property
    def ok(self) -> bool:
        return False


Result = Ok[T] | Err[E]
