"""An implementation of python's tzinfo backed by a tzkit Timezone.

This lets a `Timezone` be attached to a python datetime directly:

    berlin = TzInfo.for_timezone(registry.get("Europe/Berlin"))
    value = datetime.datetime(2023, 10, 29, 2, 30, fold=1, tzinfo=berlin)

Ambiguous and skipped local times follow PEP 495: for a repeated wall time
fold=0 selects the earlier instant and fold=1 the later one, and for a
skipped wall time fold=0 uses the offset before the transition and fold=1
the offset after it.
"""

from __future__ import annotations

import datetime
from functools import cache

from .resolver import local_offsets, local_seconds
from .timezone import Timezone
from .tzif.model import EPOCH, Offset

__all__ = [
    "TzInfo",
]

_ZERO = datetime.timedelta(0)
_HOUR = datetime.timedelta(hours=1)
_ONE_SECOND = datetime.timedelta(seconds=1)


class TzInfo(datetime.tzinfo):
    """An implementation of tzinfo based on a Timezone."""

    def __init__(self, timezone: Timezone) -> None:
        """Initialize TzInfo."""
        self._timezone = timezone

    @classmethod
    @cache
    def for_timezone(cls, timezone: Timezone) -> TzInfo:
        """Return the shared TzInfo for a Timezone."""
        return cls(timezone)

    @property
    def timezone(self) -> Timezone:
        """Return the Timezone used for lookups."""
        return self._timezone

    def _offset(self, dt: datetime.datetime) -> Offset:
        """Return the offset for a wall time, using fold to disambiguate."""
        result = local_offsets(self._timezone, local_seconds(dt.replace(tzinfo=None)))
        if result.candidates:
            return result.candidates[-1] if dt.fold else result.candidates[0]
        assert result.before is not None and result.after is not None
        return result.after if dt.fold else result.before

    def utcoffset(self, dt: datetime.datetime | None) -> datetime.timedelta | None:
        """Return offset of local time from UTC, as a timedelta object."""
        if dt is None:
            return None
        return self._offset(dt).utcoffset

    def tzname(self, dt: datetime.datetime | None) -> str | None:
        """Return the time zone abbreviation for the datetime."""
        if dt is None:
            return None
        return self._offset(dt).abbreviation or None

    def dst(self, dt: datetime.datetime | None) -> datetime.timedelta | None:
        """Return the daylight saving time (DST) adjustment, if applicable.

        The dataset records whether an offset is DST but not the standard
        offset it adjusts, so the adjustment is measured against the nearest
        standard offset in the table, preferring the one in effect before.
        """
        if dt is None:
            return None
        if not (offset := self._offset(dt)).is_dst:
            return _ZERO
        instant = local_seconds(dt.replace(tzinfo=None)) - offset.seconds
        if (standard := self._standard_offset(instant)) is None:
            return _HOUR
        return offset.utcoffset - standard.utcoffset

    def _standard_offset(self, instant: int) -> Offset | None:
        """Return the standard offset that a DST offset at the instant adjusts."""
        timezone = self._timezone
        rule = timezone.rule
        if (
            rule is not None
            and timezone.rule_after is not None
            and instant > timezone.rule_after
        ):
            return rule.std
        table = timezone.table
        index = table.index_at(instant)
        for transition in reversed(table[: index + 1]):
            if not transition.offset.is_dst:
                return transition.offset
        for transition in table[index + 1 :]:
            if not transition.offset.is_dst:
                return transition.offset
        return rule.std if rule is not None else None

    def fromutc(self, dt: datetime.datetime) -> datetime.datetime:
        """Convert a datetime in UTC (with this tzinfo attached) to local time."""
        if dt.tzinfo is not self:
            raise ValueError("fromutc: dt.tzinfo is not self")
        instant = (dt.replace(tzinfo=datetime.timezone.utc) - EPOCH) // _ONE_SECOND
        offset = self._timezone.offset_at(instant)
        local = instant + offset.seconds
        result = local_offsets(self._timezone, local)
        fold = 1 if result.is_ambiguous and result.instants[-1] == instant else 0
        return (dt + offset.utcoffset).replace(fold=fold)

    def __str__(self) -> str:
        """Return the string representation of the timezone."""
        return self._timezone.name

    def __repr__(self) -> str:
        """Return the string representation of the timezone."""
        return f"TzInfo({self._timezone.name})"
