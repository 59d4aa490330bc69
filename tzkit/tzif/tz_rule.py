"""Library for parsing and evaluating TZ rules.

TZ supports these two formats

No DST: std offset
  - std: Name of the timezone
  - offset: Time added to local time to get UTC
  Example: EST+5

DST: std offset dst [offset],start[/time],end[/time]
  - dst: Name of the Daylight savings time timezone
  - offset: Defaults to 1 hour ahead of STD offset if not specified
  - start & end: Time period when DST is in effect. The start/end have
    the following formats:
      Jn: A julian day between 1 and 365 (Feb 29th never counted)
      n: A julian day between 0 and 365 (Feb 29th is counted in leap years)
      Mm.w.d:
          m: Month between 1 and 12
          d: Between 0 (Sunday) and 6 (Saturday)
          w: Between 1 and 5. Week 1 is first week d occurs, 5 is the last
      The time field is in hh:mm:ss. The hour can be 167 to -167.

Names are either three or more alphabetic characters, or quoted with angle
brackets when they contain digits or signs e.g. <-03>. The angle brackets
are not part of the designation.

When a DST name is given without start and end rules, the current US rules
(M3.2.0,M11.1.0) are assumed, matching common C library behavior.
"""

from __future__ import annotations

import bisect
import datetime
import functools
import re
from dataclasses import dataclass
from typing import Optional, Union

from dateutil import rrule

from ..exceptions import PosixRuleError, PosixRuleErrorKind
from .model import EPOCH, MAX_OFFSET_SECONDS, Offset, Transition

__all__ = [
    "RuleDay",
    "RuleDate",
    "Rule",
    "parse_tz_rule",
    "parse_posix_tz",
]

_ZERO = datetime.timedelta(seconds=0)
_DEFAULT_TIME_DELTA = datetime.timedelta(hours=2)
_DEFAULT_DST_DELTA = 60 * 60
_MAX_RULE_HOURS = 167
_MIDNIGHT = datetime.time()
_NAIVE_EPOCH = EPOCH.replace(tzinfo=None)
_ONE_SECOND = datetime.timedelta(seconds=1)

# Years far enough from the datetime limits that rule times (up to 167 hours
# past a date in an adjacent year) can still be represented.
_MIN_YEAR = datetime.MINYEAR + 1
_MAX_YEAR = datetime.MAXYEAR - 2


def _parse_time(values: dict[str, Optional[str]]) -> datetime.timedelta | None:
    """Convert an offset from [+/-]hh[:mm[:ss]] to a timedelta.

    The dict expects fields of sign, hour, minutes, seconds (see the time
    groups in the regular expressions below).
    """
    if (hour := values["hour"]) is None:
        return None
    sign = -1 if values.get("sign") == "-" else 1
    minutes = int(values.get("minutes") or "0")
    seconds = int(values.get("seconds") or "0")
    if minutes > 59 or seconds > 59:
        raise ValueError(f"minutes and seconds must be less than 60: {hour}:{minutes}:{seconds}")
    return datetime.timedelta(
        seconds=sign * (int(hour) * 60 * 60 + minutes * 60 + seconds)
    )


def _local_seconds(value: datetime.datetime) -> int:
    """Return the seconds since the epoch of a naive local date and time."""
    return (value - _NAIVE_EPOCH) // _ONE_SECOND


@dataclass(frozen=True)
class RuleDay:
    """A date referenced in a timezone rule for a julian day."""

    day_of_year: int
    """The day of the year, see leap_days for the range."""

    time: datetime.timedelta = _DEFAULT_TIME_DELTA
    """Offset of time in current local time when the rule goes into effect, default of 02:00:00."""

    leap_days: bool = False
    """When False (Jn), a day between 1 and 365 with Feb 29th never counted.

    When True (n), a zero based day between 0 and 365 with Feb 29th counted
    in leap years.
    """

    def date(self, year: int) -> datetime.date:
        """Return the calendar date this rule refers to in the specified year."""
        start = datetime.date(year, 1, 1)
        if self.leap_days:
            return start + datetime.timedelta(days=self.day_of_year)
        day = start + datetime.timedelta(days=self.day_of_year - 1)
        # Day 60 is always March 1st
        if self.day_of_year >= 60 and _is_leap(year):
            day += datetime.timedelta(days=1)
        return day


@dataclass(frozen=True)
class RuleDate:
    """A date referenced in a timezone rule."""

    month: int
    """A month between 1 and 12."""

    day_of_week: int
    """A day of the week between 0 (Sunday) and 6 (Saturday)."""

    week_of_month: int
    """A week number of the month (1 to 5) based on the first occurrence of day_of_week."""

    time: datetime.timedelta = _DEFAULT_TIME_DELTA
    """Offset of time in current local time when the rule goes into effect, default of 02:00:00."""

    def as_rrule(self, dtstart: datetime.datetime | None = None) -> rrule.rrule:
        """Return a recurrence rule for the dates of this timezone occurrence."""
        return rrule.rrule(
            freq=rrule.YEARLY,
            bymonth=self.month,
            byweekday=self._rrule_byday(self._rrule_week_of_month),
            dtstart=dtstart,
        )

    @property
    def rrule_str(self) -> str:
        """Return a recurrence rule string for this timezone occurrence."""
        return ";".join(
            [
                "FREQ=YEARLY",
                f"BYMONTH={self.month}",
                f"BYDAY={self._rrule_week_of_month}{self._rrule_byday}",
            ]
        )

    def date(self, year: int) -> datetime.date:
        """Return the calendar date this rule refers to in the specified year."""
        return _rule_date(self, year)

    @property
    def _rrule_byday(self) -> rrule.weekday:
        """Return the dateutil weekday for this rule based on day_of_week."""
        return rrule.weekdays[(self.day_of_week - 1) % 7]

    @property
    def _rrule_week_of_month(self) -> int:
        """Return the byday modifier for the week of the month."""
        if self.week_of_month == 5:
            return -1
        return self.week_of_month


@functools.lru_cache(maxsize=1024)
def _rule_date(rule_date: RuleDate, year: int) -> datetime.date:
    """Expand the recurrence rule for the first occurrence in the year."""
    occurrence = next(iter(rule_date.as_rrule(datetime.datetime(year, 1, 1))))
    return occurrence.date()


def _is_leap(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def _year_of(instant: int) -> int:
    """Return the UTC year of the instant, clamped to the evaluable range."""
    try:
        year = (EPOCH + datetime.timedelta(seconds=instant)).year
    except OverflowError:
        year = _MIN_YEAR if instant < 0 else _MAX_YEAR
    return min(max(year, _MIN_YEAR), _MAX_YEAR)


DayRule = Union[RuleDate, RuleDay]


@dataclass(frozen=True)
class Rule:
    """A rule for evaluating future timezone transitions."""

    std: Offset
    """The offset in effect during standard time."""

    dst: Optional[Offset] = None
    """The offset in effect during daylight savings time."""

    dst_start: Optional[DayRule] = None
    """Describes when dst goes into effect, in standard local time."""

    dst_end: Optional[DayRule] = None
    """Describes when dst ends (std starts), in daylight local time."""

    def __post_init__(self) -> None:
        """Verify the DST fields are all present or all absent."""
        if self.dst is None:
            if self.dst_start is not None or self.dst_end is not None:
                raise ValueError("DST start/end rules require a DST offset")
        elif self.dst_start is None or self.dst_end is None:
            raise ValueError("DST offset requires both start and end rules")

    def transitions(self, year: int) -> list[Transition]:
        """Return the DST start and end transitions for the year, sorted by instant.

        No transitions are returned for a rule without DST. The start rule
        time is interpreted as standard local time and the end rule time as
        daylight local time.
        """
        return list(_year_transitions(self, year))

    def offset_at(self, instant: int) -> Offset:
        """Return the offset the rule assigns to an instant."""
        if self.dst is None:
            return self.std
        transitions = self._transitions_near(_year_of(instant))
        starts = [transition.starts_at for transition in transitions]
        if (index := bisect.bisect_right(starts, instant) - 1) < 0:
            return self.std
        return transitions[index].offset

    def transitions_between(self, start: int, end: int) -> list[Transition]:
        """Return the rule transitions with start < starts_at <= end."""
        if self.dst is None or end <= start:
            return []
        transitions = _merge(
            range(_year_of(start) - 1, _year_of(end) + 2),
            self,
        )
        return [
            transition
            for transition in transitions
            if start < transition.starts_at <= end
        ]

    def _transitions_near(self, year: int) -> list[Transition]:
        """Return transitions of the adjacent years, which covers the whole year."""
        return _merge(range(year - 1, year + 2), self)

    def __str__(self) -> str:
        if self.dst is None:
            return self.std.abbreviation
        return f"{self.std.abbreviation}/{self.dst.abbreviation}"


@functools.lru_cache(maxsize=4096)
def _year_transitions(rule: Rule, year: int) -> tuple[Transition, ...]:
    """Compute (and cache) the transitions for a single year."""
    if rule.dst is None or rule.dst_start is None or rule.dst_end is None:
        return ()
    start = _switch_instant(rule.dst_start, year, rule.std)
    end = _switch_instant(rule.dst_end, year, rule.dst)
    return tuple(
        sorted(
            [Transition(start, rule.dst), Transition(end, rule.std)],
            key=lambda transition: transition.starts_at,
        )
    )


def _switch_instant(day_rule: DayRule, year: int, previous: Offset) -> int:
    """Return the instant a rule switches, given the offset in effect before it."""
    local = datetime.datetime.combine(day_rule.date(year), _MIDNIGHT) + day_rule.time
    return _local_seconds(local) - previous.seconds


def _merge(years: range, rule: Rule) -> list[Transition]:
    """Combine the transitions of consecutive years into one ordered list.

    Rules such as "always DST" produce an end transition that coincides with
    the next year's start; the later year wins.
    """
    result: list[Transition] = []
    for year in years:
        for transition in _year_transitions(rule, year):
            while result and result[-1].starts_at >= transition.starts_at:
                result.pop()
            result.append(transition)
    return result


# Regexp for parsing the TZ string
_NAME_RE_PATTERN = re.compile(r"<(?P<quoted>[+\-0-9A-Za-z]{3,})>|(?P<name>[A-Za-z]{3,})")
_OFFSET_RE_PATTERN = re.compile(
    r"(?P<sign>[+-])?(?P<hour>\d{1,2})(?::(?P<minutes>\d{1,2})(?::(?P<seconds>\d{1,2}))?)?"
)
_DAY_RE_PATTERN = re.compile(
    # days in either julian (J prefix), zero based julian or month.week.day (M prefix) format
    r"(J(?P<julian_day>\d{1,3})|(?P<day_of_year>\d{1,3})"
    r"|M(?P<month>\d{1,2})\.(?P<week_of_month>\d)\.(?P<day_of_week>\d))"
)
_TIME_RE_PATTERN = re.compile(
    r"\/(?P<sign>[+-])?(?P<hour>\d{1,3})(?::(?P<minutes>\d{1,2})(?::(?P<seconds>\d{1,2}))?)?"
)
_SEPARATORS = ":/,.<+-"

_US_DST_START = RuleDate(month=3, week_of_month=2, day_of_week=0)
_US_DST_END = RuleDate(month=11, week_of_month=1, day_of_week=0)


def _error(
    tz_str: str, buffer: str, kind: PosixRuleErrorKind, reason: str
) -> PosixRuleError:
    """Build an error, reporting truncation when the input ended mid field."""
    if not buffer.strip(_SEPARATORS) and kind != PosixRuleErrorKind.TRAILING_DATA:
        kind = PosixRuleErrorKind.TRUNCATED
        reason = "unexpected end of input"
    return PosixRuleError(
        f"Unable to parse TZ string, {reason}: {tz_str}",
        kind,
        detailed_error=buffer or None,
    )


def _parse_name(tz_str: str, buffer: str) -> tuple[str, str]:
    """Parse a designation from the start of the buffer."""
    if (match := _NAME_RE_PATTERN.match(buffer)) is None:
        if buffer.startswith("<") and ">" not in buffer:
            raise _error(tz_str, "", PosixRuleErrorKind.TRUNCATED, "unterminated name")
        raise _error(tz_str, buffer, PosixRuleErrorKind.NAME, "invalid name")
    return (match.group("quoted") or match.group("name"), buffer[match.end() :])


def _parse_offset(tz_str: str, buffer: str, name: str, is_dst: bool) -> tuple[Offset, str]:
    """Parse a POSIX offset and convert it to a civil UTC offset."""
    if (match := _OFFSET_RE_PATTERN.match(buffer)) is None:
        raise _error(tz_str, buffer, PosixRuleErrorKind.OFFSET, "invalid offset")
    try:
        value = _parse_time(match.groupdict())
    except ValueError as err:
        raise _error(tz_str, buffer, PosixRuleErrorKind.OFFSET, str(err)) from err
    assert value is not None
    # POSIX offsets are the time added to local time to get UTC
    seconds = -int(value.total_seconds())
    if abs(seconds) > MAX_OFFSET_SECONDS:
        raise _error(tz_str, buffer, PosixRuleErrorKind.OFFSET, "offset out of range")
    return (
        Offset(seconds=seconds, is_dst=is_dst, abbreviation=name),
        buffer[match.end() :],
    )


def _parse_day_rule(tz_str: str, buffer: str) -> tuple[DayRule, str]:
    """Parse a ',date[/time]' start or end rule from the start of the buffer."""
    if not buffer.startswith(","):
        raise _error(tz_str, buffer, PosixRuleErrorKind.DAY_RULE, "expected ','")
    buffer = buffer[1:]
    if (day_match := _DAY_RE_PATTERN.match(buffer)) is None:
        raise _error(tz_str, buffer, PosixRuleErrorKind.DAY_RULE, "invalid date rule")
    buffer = buffer[day_match.end() :]
    time = _DEFAULT_TIME_DELTA
    if buffer.startswith("/"):
        if (time_match := _TIME_RE_PATTERN.match(buffer)) is None:
            raise _error(tz_str, buffer[1:], PosixRuleErrorKind.DAY_RULE, "invalid rule time")
        try:
            time = _parse_time(time_match.groupdict()) or _ZERO
        except ValueError as err:
            raise _error(tz_str, buffer, PosixRuleErrorKind.DAY_RULE, str(err)) from err
        if abs(time) > datetime.timedelta(hours=_MAX_RULE_HOURS):
            raise _error(tz_str, buffer, PosixRuleErrorKind.DAY_RULE, "rule time out of range")
        buffer = buffer[time_match.end() :]
    try:
        return (_day_rule_from_match(day_match, time), buffer)
    except ValueError as err:
        raise _error(tz_str, day_match.group(0), PosixRuleErrorKind.DAY_RULE, str(err)) from err


def _day_rule_from_match(match: re.Match[str], time: datetime.timedelta) -> DayRule:
    """Create a rule date from a regex match, checking the field ranges."""
    if (julian_day := match.group("julian_day")) is not None:
        if not 1 <= (day := int(julian_day)) <= 365:
            raise ValueError(f"julian day must be between 1 and 365: {day}")
        return RuleDay(day_of_year=day, time=time)
    if (day_of_year := match.group("day_of_year")) is not None:
        if not 0 <= (day := int(day_of_year)) <= 365:
            raise ValueError(f"day of year must be between 0 and 365: {day}")
        return RuleDay(day_of_year=day, time=time, leap_days=True)
    month = int(match.group("month"))
    week_of_month = int(match.group("week_of_month"))
    day_of_week = int(match.group("day_of_week"))
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12: {month}")
    if not 1 <= week_of_month <= 5:
        raise ValueError(f"week must be between 1 and 5: {week_of_month}")
    if not 0 <= day_of_week <= 6:
        raise ValueError(f"day of week must be between 0 and 6: {day_of_week}")
    return RuleDate(
        month=month,
        week_of_month=week_of_month,
        day_of_week=day_of_week,
        time=time,
    )


def parse_tz_rule(tz_str: str) -> Rule:
    """Parse the TZ string into a Rule object."""
    if not tz_str:
        raise PosixRuleError(
            "Unable to parse TZ string, empty input", PosixRuleErrorKind.EMPTY
        )
    (std_name, buffer) = _parse_name(tz_str, tz_str)
    if not buffer:
        raise _error(tz_str, buffer, PosixRuleErrorKind.TRUNCATED, "missing offset")
    (std, buffer) = _parse_offset(tz_str, buffer, std_name, is_dst=False)
    if not buffer:
        return Rule(std=std)

    (dst_name, buffer) = _parse_name(tz_str, buffer)
    if buffer and not buffer.startswith(","):
        (dst, buffer) = _parse_offset(tz_str, buffer, dst_name, is_dst=True)
    else:
        dst = Offset(
            seconds=std.seconds + _DEFAULT_DST_DELTA,
            is_dst=True,
            abbreviation=dst_name,
        )
    if not buffer:
        return Rule(std=std, dst=dst, dst_start=_US_DST_START, dst_end=_US_DST_END)

    (dst_start, buffer) = _parse_day_rule(tz_str, buffer)
    if not buffer:
        raise _error(
            tz_str,
            buffer,
            PosixRuleErrorKind.TRUNCATED,
            "should have both or neither start and end dates",
        )
    (dst_end, buffer) = _parse_day_rule(tz_str, buffer)
    if buffer:
        raise _error(
            tz_str, buffer, PosixRuleErrorKind.TRAILING_DATA, "unexpected trailing data"
        )
    return Rule(std=std, dst=dst, dst_start=dst_start, dst_end=dst_end)


parse_posix_tz = parse_tz_rule
