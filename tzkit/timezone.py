"""A named timezone combining a transition table with a POSIX rule.

A `Timezone` answers which offset is in effect at an instant. Within the range
of the compiled transition table the table is authoritative. Past the end of
the table, zones that carry a POSIX rule extrapolate using the rule, which is
how future daylight savings transitions are known without listing them.

The table's effective range ends at its last transition, or later when a
`table_end_year` is configured: instants before January 1st of the year
following `table_end_year` always use the table, never the rule.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable

from .options import PreHistoryPolicy
from .transition_table import TransitionTable
from .tzif.model import EPOCH, Offset, TimezoneInfo, Transition
from .tzif.tz_rule import Rule

__all__ = [
    "Timezone",
]

_ONE_SECOND = datetime.timedelta(seconds=1)


class Timezone:
    """A timezone identified by an IANA name e.g. Europe/Berlin.

    Instances are immutable and are shared between all callers of the
    registry.
    """

    __slots__ = ("_name", "_table", "_rule", "_table_end_year", "_rule_after")

    def __init__(
        self,
        name: str,
        table: TransitionTable,
        rule: Rule | None = None,
        table_end_year: int | None = None,
    ) -> None:
        """Initialize Timezone."""
        self._name = name
        self._table = table
        self._rule = rule
        self._table_end_year = table_end_year
        self._rule_after = _rule_boundary(table, rule, table_end_year)

    @classmethod
    def from_timezoneinfo(
        cls,
        name: str,
        timezoneinfo: TimezoneInfo,
        table_end_year: int | None = None,
    ) -> Timezone:
        """Create a Timezone from the records of a TZif file."""
        return cls(
            name,
            TransitionTable(timezoneinfo.transitions, initial=timezoneinfo.initial),
            timezoneinfo.rule,
            table_end_year=table_end_year,
        )

    @classmethod
    def from_transitions(
        cls,
        name: str,
        transitions: Iterable[tuple[int, int, bool, str]],
        rule: Rule | None = None,
        initial: Offset | None = None,
    ) -> Timezone:
        """Create a Timezone from (starts_at, seconds, is_dst, abbreviation) tuples.

        Equal offsets are shared between the transitions that use them.
        """
        offsets: dict[tuple[int, bool, str], Offset] = {}
        table: list[Transition] = []
        for starts_at, seconds, is_dst, abbreviation in transitions:
            key = (seconds, is_dst, abbreviation)
            if (offset := offsets.get(key)) is None:
                offset = offsets[key] = Offset(
                    seconds=seconds, is_dst=is_dst, abbreviation=abbreviation
                )
            table.append(Transition(starts_at, offset))
        return cls(name, TransitionTable(table, initial=initial), rule)

    @property
    def name(self) -> str:
        """Return the IANA name of the timezone."""
        return self._name

    @property
    def table(self) -> TransitionTable:
        """Return the compiled transitions of the timezone."""
        return self._table

    @property
    def rule(self) -> Rule | None:
        """Return the POSIX rule used after the table, if any."""
        return self._rule

    @property
    def table_end_year(self) -> int | None:
        """Return the configured last year covered by the table, if any."""
        return self._table_end_year

    @property
    def rule_after(self) -> int | None:
        """Return the instant after which the POSIX rule is used.

        None when the zone has no rule. When the table is empty the rule
        applies at every instant and the boundary precedes any instant.
        """
        return self._rule_after

    @property
    def primary_offset(self) -> Offset:
        """Return the main offset of the zone, the earliest one recorded."""
        return self._table.pre_history_offset()

    def offset_at(self, instant: int, policy: PreHistoryPolicy | None = None) -> Offset:
        """Return the offset in effect at an instant (seconds since the epoch)."""
        if self._rule is not None and self._rule_after is not None and instant > self._rule_after:
            return self._rule.offset_at(instant)
        return self._table.offset_at(instant, policy)

    def utcoffset_at(self, value: datetime.datetime) -> Offset:
        """Return the offset in effect at an aware datetime."""
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError(f"Expected an aware datetime: {value}")
        return self.offset_at((value - EPOCH) // _ONE_SECOND)

    def transitions_between(self, start: int, end: int) -> list[Transition]:
        """Return the transitions with start < starts_at <= end.

        Table transitions are returned up to the end of the table's effective
        range, followed by the transitions generated by the rule.
        """
        if self._rule is None or self._rule_after is None:
            return self._table.transitions_between(start, end)
        result = self._table.transitions_between(start, min(end, self._rule_after))
        if end > self._rule_after:
            result.extend(
                self._rule.transitions_between(max(start, self._rule_after), end)
            )
        return result

    def __str__(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"Timezone({self._name})"


def _rule_boundary(
    table: TransitionTable, rule: Rule | None, table_end_year: int | None
) -> int | None:
    """Return the last instant covered by the table when a rule follows it."""
    if rule is None:
        return None
    candidates = []
    if (last := table.last) is not None:
        candidates.append(last.starts_at)
    if table_end_year is not None:
        year_end = datetime.datetime(table_end_year + 1, 1, 1, tzinfo=datetime.timezone.utc)
        candidates.append((year_end - EPOCH) // _ONE_SECOND - 1)
    if not candidates:
        # Nothing but the rule describes the zone
        return -(2**63)
    return max(candidates)
