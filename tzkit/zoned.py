"""Convert instants between timezones and attach zones to python datetimes.

An instant is independent of any zone, so converting it to another zone
never changes the instant: the zone only decides which offset is used to
display it. This direction can never be ambiguous.

Python's datetime cannot be extended with new methods, so the adapters are
free functions:

  - `assume_timezone` treats a naive datetime as wall time in a zone
  - `assume_timezone_utc` treats a naive datetime as UTC
  - `to_timezone` re-expresses an aware datetime in a zone
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass

from .resolver import (
    AmbiguityPolicy,
    GapPolicy,
    fixed_tzinfo,
    local_seconds,
    resolve,
)
from .timezone import Timezone
from .tzif.model import EPOCH, Offset

__all__ = [
    "ZonedDateTime",
    "convert",
    "assume_timezone",
    "assume_timezone_utc",
    "to_timezone",
    "instant_of",
]

_NAIVE_EPOCH = EPOCH.replace(tzinfo=None)
_ONE_SECOND = datetime.timedelta(seconds=1)


def instant_of(value: datetime.datetime) -> int:
    """Return the seconds since the epoch of an aware datetime."""
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"Expected an aware datetime: {value}")
    return (value - EPOCH) // _ONE_SECOND


@dataclass(frozen=True)
class ZonedDateTime:
    """An instant together with the zone and offset used to display it."""

    instant: int
    """Seconds since the epoch (UTC)."""

    offset: Offset
    """The offset in effect in the timezone at the instant."""

    timezone: Timezone
    """The timezone the instant is displayed in."""

    @classmethod
    def from_utc(cls, value: int | datetime.datetime, timezone: Timezone) -> ZonedDateTime:
        """Create a ZonedDateTime for an instant or an aware datetime."""
        instant = value if isinstance(value, int) else instant_of(value)
        return cls(instant, timezone.offset_at(instant), timezone)

    @classmethod
    def from_local(
        cls,
        value: datetime.datetime,
        timezone: Timezone,
        *,
        ambiguity: AmbiguityPolicy,
        gap: GapPolicy,
    ) -> ZonedDateTime:
        """Create a ZonedDateTime for a naive wall time in the timezone."""
        resolved = resolve(timezone, value, ambiguity=ambiguity, gap=gap)
        return cls(resolved.instant, resolved.offset, timezone)

    @classmethod
    def now(cls, timezone: Timezone) -> ZonedDateTime:
        """Return the current time in the timezone."""
        return cls.from_utc(datetime.datetime.now(tz=datetime.timezone.utc), timezone)

    @property
    def local(self) -> datetime.datetime:
        """Return the naive wall time in the timezone."""
        return _NAIVE_EPOCH + datetime.timedelta(seconds=self.instant + self.offset.seconds)

    @property
    def utc(self) -> datetime.datetime:
        """Return the instant as an aware UTC datetime."""
        return EPOCH + datetime.timedelta(seconds=self.instant)

    def date(self) -> datetime.date:
        """Return the local date."""
        return self.local.date()

    def time(self) -> datetime.time:
        """Return the local time of day."""
        return self.local.time()

    def to_datetime(self) -> datetime.datetime:
        """Return an aware datetime with the fixed offset of this instant."""
        return self.local.replace(tzinfo=fixed_tzinfo(self.offset))

    def replace_timezone(self, timezone: Timezone) -> ZonedDateTime:
        """Return the same instant displayed in another timezone."""
        return convert(self.instant, timezone)

    def replace_date(
        self,
        date: datetime.date,
        *,
        ambiguity: AmbiguityPolicy,
        gap: GapPolicy,
    ) -> ZonedDateTime:
        """Return the same wall time on another date in this timezone.

        The new wall time is resolved again, so the offset may change and the
        policies decide the result when it is repeated or skipped.
        """
        return ZonedDateTime.from_local(
            datetime.datetime.combine(date, self.time()),
            self.timezone,
            ambiguity=ambiguity,
            gap=gap,
        )

    def replace_time(
        self,
        time: datetime.time,
        *,
        ambiguity: AmbiguityPolicy,
        gap: GapPolicy,
    ) -> ZonedDateTime:
        """Return another wall time on the same date in this timezone."""
        return ZonedDateTime.from_local(
            datetime.datetime.combine(self.date(), time),
            self.timezone,
            ambiguity=ambiguity,
            gap=gap,
        )

    def __str__(self) -> str:
        return f"{self.to_datetime().isoformat()}[{self.timezone.name}]"


def convert(instant: int | datetime.datetime, to_zone: Timezone) -> ZonedDateTime:
    """Re-express an instant in a timezone; the instant itself never changes."""
    return ZonedDateTime.from_utc(instant, to_zone)


def assume_timezone(
    value: datetime.datetime,
    timezone: Timezone,
    *,
    ambiguity: AmbiguityPolicy,
    gap: GapPolicy,
) -> datetime.datetime:
    """Interpret a naive datetime as wall time in the timezone.

    Returns an aware datetime with the fixed offset that applies.
    """
    return ZonedDateTime.from_local(
        value, timezone, ambiguity=ambiguity, gap=gap
    ).to_datetime()


def assume_timezone_utc(value: datetime.datetime, timezone: Timezone) -> datetime.datetime:
    """Interpret a naive datetime as UTC and return it in the timezone."""
    return convert(local_seconds(value), timezone).to_datetime()


def to_timezone(value: datetime.datetime, timezone: Timezone) -> datetime.datetime:
    """Convert an aware datetime to the timezone, keeping the same instant."""
    return convert(instant_of(value), timezone).to_datetime()
