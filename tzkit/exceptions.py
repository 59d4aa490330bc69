"""Exceptions for tzkit library."""

from __future__ import annotations

import enum


class TzError(Exception):
    """Base exception for all tzkit errors."""


class TimezoneInfoError(TzError):
    """Raised on error loading timezone information from the dataset."""


class UnknownTimezoneError(TzError, KeyError):
    """Raised by strict lookups when a timezone name is not in the registry.

    The non-strict `lookup` returns `None` instead, since an unknown name is
    usually something the caller wants to handle (e.g. fall back to UTC).
    """

    def __init__(self, name: str) -> None:
        """Initialize UnknownTimezoneError with the missing name."""
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown timezone: {self.name}"


class PosixRuleErrorKind(str, enum.Enum):
    """The part of a POSIX TZ string that failed to parse."""

    EMPTY = "empty"
    """The input was empty."""

    NAME = "name"
    """A std or dst designation was malformed."""

    OFFSET = "offset"
    """An offset was malformed or out of range."""

    DAY_RULE = "day_rule"
    """A start or end rule (or its time) was malformed or out of range."""

    TRUNCATED = "truncated"
    """The input ended in the middle of a field."""

    TRAILING_DATA = "trailing_data"
    """Unexpected text followed an otherwise complete rule."""


class PosixRuleError(TzError, ValueError):
    """Exception raised when parsing a POSIX TZ string.

    The 'kind' attribute identifies which part of the string was invalid. The
    'detailed_error' attribute can contain the remaining unparsed text or other
    detail useful for debugging.
    """

    def __init__(
        self,
        message: str,
        kind: PosixRuleErrorKind,
        *,
        detailed_error: str | None = None,
    ) -> None:
        """Initialize the PosixRuleError with a message and kind."""
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.detailed_error = detailed_error


class InvalidLocalTimeError(TzError, ValueError):
    """Raised when a local time falls in a gap skipped by a forward transition."""


class AmbiguousLocalTimeError(TzError, ValueError):
    """Raised when a local time is repeated and the caller asked not to choose."""
