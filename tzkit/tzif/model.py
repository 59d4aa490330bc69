"""Data model for the tzif library."""

from __future__ import annotations

import datetime
import functools
from collections import namedtuple
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from .tz_rule import Rule

__all__ = [
    "EPOCH",
    "MAX_OFFSET_SECONDS",
    "Offset",
    "Transition",
    "LeapSecond",
    "TimezoneInfo",
]

MAX_OFFSET_SECONDS = 18 * 60 * 60
"""Largest magnitude of a civil UTC offset."""

EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
"""The instant all transition times are measured from."""


@functools.total_ordering
class Offset(BaseModel):
    """A UTC offset in effect for some period of a timezone."""

    model_config = ConfigDict(frozen=True)

    seconds: int
    """Number of seconds added to UTC to determine local time."""

    is_dst: bool = False
    """Determines if local time is Daylight Savings Time (else Standard time)."""

    abbreviation: str = ""
    """A designation string e.g. CET or <-03>."""

    @field_validator("seconds")
    @classmethod
    def verify_seconds_range(cls, value: int) -> int:
        """Validate that the offset is within the range of civil UTC offsets."""
        if abs(value) > MAX_OFFSET_SECONDS:
            raise ValueError(f"UTC offset out of range (+/-18h): {value}")
        return value

    @property
    def utcoffset(self) -> datetime.timedelta:
        """Return the offset as a timedelta."""
        return datetime.timedelta(seconds=self.seconds)

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, Offset):
            return NotImplemented
        return (self.seconds, self.is_dst, self.abbreviation) < (
            other.seconds,
            other.is_dst,
            other.abbreviation,
        )

    def __str__(self) -> str:
        sign = "-" if self.seconds < 0 else "+"
        minutes, seconds = divmod(abs(self.seconds), 60)
        hours, minutes = divmod(minutes, 60)
        value = f"{sign}{hours:02}:{minutes:02}"
        if seconds:
            value += f":{seconds:02}"
        return f"{self.abbreviation} ({value})" if self.abbreviation else value


@dataclass(frozen=True)
class Transition:
    """An instant at which the rules for computing local time change."""

    starts_at: int
    """Seconds since the epoch (UTC) when the offset goes into effect."""

    offset: Offset
    """The offset in effect from this instant until the next transition."""

    @property
    def start_datetime(self) -> datetime.datetime:
        """Return the transition instant as an aware UTC datetime."""
        return EPOCH + datetime.timedelta(seconds=self.starts_at)


LeapSecond = namedtuple("LeapSecond", ["occurrence", "correction"])
"""A correction that needs to be applied to UTC in order to determine TAI.

The occurrence is the time at which the leap-second correction occurs.
The correction is the value of LEAPCORR on or after the occurrence (1 or -1).
"""


@dataclass
class TimezoneInfo:
    """The results of parsing the TZif file."""

    transitions: list[Transition]
    """Local time changes."""

    leap_seconds: list[LeapSecond] = field(default_factory=list)

    rule: Optional[Rule] = None
    """A rule for computing local time changes after the last transition."""

    initial: Optional[Offset] = None
    """The local time type in effect before the first transition."""
