"""
Result pattern for outbound calls that are allowed to fail.

Upstream lookups return ``Success(value)`` or ``Failure(error)`` instead of
raising, so read paths can fall back to cached data without try/except at
every call site.

Example:
    result = await github.get_json("/users/octocat")
    match result:
        case Success(payload):
            ...
        case Failure(error):
            logger.warning("upstream failed: %s", error)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar, Union, cast

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    """Represents a successful operation result."""

    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, _default: T) -> T:
        return self.value

    def map(self, func: Callable[[T], U]) -> Result[U, E]:
        """Transform the success value; a raising transform becomes a Failure."""
        try:
            return Success(func(self.value))
        except Exception as e:
            return Failure(cast(E, e))

    def __repr__(self) -> str:
        return f"Success({self.value!r})"


@dataclass(frozen=True, slots=True)
class Failure(Generic[E]):
    """Represents a failed operation result."""

    error: E

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def unwrap(self) -> T:
        if isinstance(self.error, Exception):
            raise self.error
        raise RuntimeError(f"Operation failed: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def map(self, _func: Callable[[T], U]) -> Result[U, E]:
        return cast(Result[U, E], self)

    def __repr__(self) -> str:
        return f"Failure({self.error!r})"


Result = Union[Success[T], Failure[E]]


@dataclass(frozen=True, slots=True)
class UpstreamError:
    """A call to an upstream host failed (non-2xx, network error or bad payload)."""

    source: str
    message: str
    status: Optional[int] = None

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.source} HTTP {self.status}: {self.message}"
        return f"{self.source}: {self.message}"


__all__ = [
    "Failure",
    "Result",
    "Success",
    "UpstreamError",
]
