"""Two-variant result types for the parsers.

Two kinds of "failure" exist and they must not be conflated:

- content that simply is not ours (a ``chore:`` commit, an unrelated tag) is
  ``Ignored`` and silently dropped;
- structured input with the wrong shape is ``Invalid`` and becomes a
  ``ParseError`` wherever the caller needs the value.

Usage:
    match parse_release_tag(raw):
        case Recognized(tag):
            tags.append(tag)
        case Ignored():
            pass
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .errors import ParseError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Recognized(Generic[T]):
    """The input matched the grammar."""

    value: T


@dataclass(frozen=True, slots=True)
class Ignored:
    """The input is not meant for us; drop it."""

    reason: str = ""


@dataclass(frozen=True, slots=True)
class Valid(Generic[T]):
    """The structured input had the expected shape."""

    value: T


@dataclass(frozen=True, slots=True)
class Invalid:
    """The structured input had the wrong shape."""

    reason: str


Recognition = Union[Recognized[T], Ignored]
Validation = Union[Valid[T], Invalid]


def require_valid(result: Validation[T]) -> T:
    """Return the validated value or raise ParseError."""
    if isinstance(result, Invalid):
        raise ParseError(result.reason)
    return result.value


def recognized_values(results: list[Recognition[T]]) -> list[T]:
    """Keep the values of recognized results, in order."""
    return [r.value for r in results if isinstance(r, Recognized)]
