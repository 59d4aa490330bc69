"""Timezones described by a POSIX TZ string, e.g. the TZ environment variable.

A POSIX TZ string such as "CET-1CEST,M3.5.0,M10.5.0/3" describes a perpetual
rule without history. A string of the form ":Europe/Berlin" instead names a
zone, which is resolved from the registry and keeps its full history.

This module is optional: the core registry and offset lookups never import
it.
"""

from __future__ import annotations

import datetime

from . import registry
from .exceptions import PosixRuleError, PosixRuleErrorKind
from .timezone import Timezone
from .transition_table import TransitionTable
from .tzif.model import Offset
from .tzif.tz_rule import Rule, parse_tz_rule
from .zoned import convert

__all__ = [
    "PosixTimezone",
    "is_available",
]


def is_available() -> bool:
    """Return True, the POSIX TZ capability is installed with this module."""
    return True


class PosixTimezone:
    """A timezone in POSIX TZ format, or a reference to a registry zone."""

    def __init__(self, text: str, rule: Rule | None = None, iana: Timezone | None = None) -> None:
        """Initialize PosixTimezone, use `parse` instead."""
        self._text = text
        self._rule = rule
        self._iana = iana
        if iana is not None and rule is None:
            self._timezone = iana
        elif rule is not None and iana is None:
            # The rule alone describes the zone, at every instant
            self._timezone = Timezone(text, TransitionTable([], initial=rule.std), rule)
        else:
            raise ValueError("PosixTimezone requires exactly one of rule or iana")

    @classmethod
    def parse(cls, text: str) -> PosixTimezone:
        """Parse a POSIX TZ string.

        Raises PosixRuleError when the string is invalid or names an unknown zone.
        """
        if text.startswith(":"):
            if (zone := registry.lookup(text[1:])) is None:
                raise PosixRuleError(
                    f"Unable to parse TZ string, unknown timezone name: {text}",
                    PosixRuleErrorKind.NAME,
                    detailed_error=text[1:],
                )
            return cls(text, iana=zone)
        return cls(text, rule=parse_tz_rule(text))

    @property
    def rule(self) -> Rule | None:
        """Return the parsed rule, or None for a zone reference."""
        return self._rule

    def as_iana(self) -> Timezone | None:
        """Return the registry Timezone when the string names one."""
        return self._iana

    def as_timezone(self) -> Timezone:
        """Return a Timezone usable with the resolver and datetime adapters."""
        return self._timezone

    def offset_at(self, instant: int) -> Offset:
        """Return the offset in effect at an instant."""
        return self._timezone.offset_at(instant)

    def convert(self, value: datetime.datetime) -> datetime.datetime:
        """Convert an aware datetime to this timezone."""
        return convert(value, self._timezone).to_datetime()

    def now(self) -> datetime.datetime:
        """Return the current time in this timezone."""
        return self.convert(datetime.datetime.now(tz=datetime.timezone.utc))

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"PosixTimezone({self._text})"
