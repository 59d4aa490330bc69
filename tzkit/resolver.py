"""Resolve a naive local date and time in a timezone to an instant.

Mapping an instant to local time is always possible, but the reverse is not.
When clocks are set backward (the end of DST) an hour of wall clock times
happens twice and a local time is ambiguous. When clocks are set forward
(the start of DST) an hour is skipped and a local time in that gap never
happened at all.

The resolver finds every offset that is self-consistent for the local time:
an offset is a candidate when subtracting it from the local time gives an
instant at which that same offset is in effect. One candidate is the normal
case, two is the ambiguous case and none is the gap. The caller always
chooses how ambiguity and gaps are handled, since the correct answer is
application specific.
"""

from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import AmbiguousLocalTimeError, InvalidLocalTimeError
from .tzif.model import EPOCH, MAX_OFFSET_SECONDS, Offset

if TYPE_CHECKING:
    from .timezone import Timezone

__all__ = [
    "LocalTimeKind",
    "AmbiguityPolicy",
    "GapPolicy",
    "LocalOffsets",
    "ResolvedTime",
    "fixed_tzinfo",
    "local_offsets",
    "local_seconds",
    "resolve",
]

_NAIVE_EPOCH = EPOCH.replace(tzinfo=None)
_ONE_SECOND = datetime.timedelta(seconds=1)


class LocalTimeKind(str, enum.Enum):
    """The outcome of resolving a local time."""

    UNAMBIGUOUS = "unambiguous"
    """Exactly one offset applies to the local time."""

    AMBIGUOUS = "ambiguous"
    """The local time was repeated when clocks were set backward."""

    GAP = "gap"
    """The local time was skipped when clocks were set forward."""


class AmbiguityPolicy(str, enum.Enum):
    """Selects the instant for a local time that occurred twice."""

    EARLIEST = "earliest"
    """The earliest instant."""

    LATEST = "latest"
    """The latest instant."""

    PRE_TRANSITION = "pre_transition"
    """The instant using the offset in effect before the transition.

    A backward transition repeats wall clock time with the pre-transition
    offset first, so this is the same instant as EARLIEST.
    """

    POST_TRANSITION = "post_transition"
    """The instant using the offset in effect after the transition."""

    RAISE = "raise"
    """Raise AmbiguousLocalTimeError."""


class GapPolicy(str, enum.Enum):
    """Selects the instant for a local time that never occurred."""

    RAISE = "raise"
    """Raise InvalidLocalTimeError."""

    SHIFT_FORWARD = "shift_forward"
    """Move the local time forward by the length of the gap.

    The instant is computed with the pre-transition offset and reported with
    the post-transition offset, e.g. 02:30 in a 02:00-03:00 gap is 03:30.
    """

    SHIFT_BACKWARD = "shift_backward"
    """Move the local time backward by the length of the gap.

    The instant is computed with the post-transition offset and reported with
    the pre-transition offset, e.g. 02:30 in a 02:00-03:00 gap is 01:30.
    """


@dataclass(frozen=True)
class LocalOffsets:
    """The offsets that may apply to a local time."""

    kind: LocalTimeKind
    """Whether the local time is unambiguous, ambiguous or in a gap."""

    local: int
    """The local time as seconds since the epoch, as if it were UTC."""

    candidates: tuple[Offset, ...] = ()
    """Self-consistent offsets, ordered by the instant they produce."""

    before: Offset | None = None
    """For a gap, the offset in effect before the skipped interval."""

    after: Offset | None = None
    """For a gap, the offset in effect after the skipped interval."""

    @property
    def instants(self) -> tuple[int, ...]:
        """Return the instant produced by each candidate."""
        return tuple(self.local - offset.seconds for offset in self.candidates)

    def unwrap(self) -> Offset:
        """Return the only offset, treating ambiguity and gaps as errors."""
        if self.kind == LocalTimeKind.UNAMBIGUOUS:
            return self.candidates[0]
        if self.kind == LocalTimeKind.AMBIGUOUS:
            raise AmbiguousLocalTimeError(_describe(self))
        raise InvalidLocalTimeError(_describe(self))

    def unwrap_first(self) -> Offset:
        """Return the offset of the earliest instant, treating gaps as errors."""
        if not self.candidates:
            raise InvalidLocalTimeError(_describe(self))
        return self.candidates[0]

    def unwrap_second(self) -> Offset:
        """Return the offset of the latest instant, treating gaps as errors."""
        if not self.candidates:
            raise InvalidLocalTimeError(_describe(self))
        return self.candidates[-1]

    def take(self) -> Offset | None:
        """Return the only offset, or None when ambiguous or in a gap."""
        if self.kind == LocalTimeKind.UNAMBIGUOUS:
            return self.candidates[0]
        return None

    def take_first(self) -> Offset | None:
        """Return the offset of the earliest instant, or None in a gap."""
        return self.candidates[0] if self.candidates else None

    def take_second(self) -> Offset | None:
        """Return the offset of the latest instant, or None in a gap."""
        return self.candidates[-1] if self.candidates else None

    @property
    def is_ambiguous(self) -> bool:
        """Return True if the local time occurred twice."""
        return self.kind == LocalTimeKind.AMBIGUOUS

    @property
    def is_gap(self) -> bool:
        """Return True if the local time never occurred."""
        return self.kind == LocalTimeKind.GAP


@dataclass(frozen=True)
class ResolvedTime:
    """A local time resolved to an instant."""

    instant: int
    """Seconds since the epoch (UTC)."""

    offset: Offset
    """The offset in effect at the instant."""

    kind: LocalTimeKind
    """How the local time was classified before applying a policy."""

    shifted: bool = field(default=False)
    """True when a gap policy moved the local time."""

    @property
    def local(self) -> datetime.datetime:
        """Return the naive local time at the instant, after any shift."""
        return _NAIVE_EPOCH + datetime.timedelta(seconds=self.instant + self.offset.seconds)

    def to_datetime(self) -> datetime.datetime:
        """Return an aware datetime with a fixed offset for the instant."""
        return self.local.replace(tzinfo=fixed_tzinfo(self.offset))


def fixed_tzinfo(offset: Offset) -> datetime.timezone:
    """Return a fixed offset tzinfo named with the offset abbreviation."""
    if offset.abbreviation:
        return datetime.timezone(offset.utcoffset, offset.abbreviation)
    return datetime.timezone(offset.utcoffset)


def local_seconds(value: datetime.datetime) -> int:
    """Return the seconds since the epoch of a naive local date and time."""
    if value.tzinfo is not None:
        raise ValueError(f"Expected a naive datetime: {value}")
    return (value - _NAIVE_EPOCH) // _ONE_SECOND


def local_offsets(zone: Timezone, value: datetime.datetime | int) -> LocalOffsets:
    """Return the offsets that are self-consistent for a local time in the zone.

    The value is either a naive datetime or local seconds since the epoch.
    """
    local = value if isinstance(value, int) else local_seconds(value)

    # Any valid instant is within the largest possible offset of the local
    # time, so only offsets in effect in that window can be candidates.
    window_start = local - MAX_OFFSET_SECONDS
    window_end = local + MAX_OFFSET_SECONDS
    offsets = [zone.offset_at(window_start)]
    offsets.extend(
        transition.offset
        for transition in zone.transitions_between(window_start, window_end)
    )

    # The table and the rule may describe the same period with offsets that
    # differ only in their dst flag or designation, so only the seconds are
    # compared and the offset actually in effect is kept.
    candidates: dict[int, Offset] = {}
    for offset in offsets:
        instant = local - offset.seconds
        if instant in candidates:
            continue
        if (actual := zone.offset_at(instant)).seconds == offset.seconds:
            candidates[instant] = actual
    if candidates:
        ordered = tuple(candidates[instant] for instant in sorted(candidates))
        kind = LocalTimeKind.UNAMBIGUOUS if len(ordered) == 1 else LocalTimeKind.AMBIGUOUS
        return LocalOffsets(kind, local, ordered)

    # In a gap the largest offset gives an instant before the transition and
    # the smallest offset gives an instant after it.
    largest = max(offsets, key=lambda offset: offset.seconds)
    smallest = min(offsets, key=lambda offset: offset.seconds)
    return LocalOffsets(
        LocalTimeKind.GAP,
        local,
        before=zone.offset_at(local - largest.seconds),
        after=zone.offset_at(local - smallest.seconds),
    )


def resolve(
    zone: Timezone,
    value: datetime.datetime,
    *,
    ambiguity: AmbiguityPolicy,
    gap: GapPolicy,
) -> ResolvedTime:
    """Resolve a naive local datetime in the zone to an instant and offset.

    The resolved offset is always the offset in effect at the resolved
    instant. Raises AmbiguousLocalTimeError or InvalidLocalTimeError when the
    policy is RAISE.
    """
    result = local_offsets(zone, value)
    if result.kind == LocalTimeKind.UNAMBIGUOUS:
        offset = result.candidates[0]
        return ResolvedTime(result.local - offset.seconds, offset, result.kind)

    if result.kind == LocalTimeKind.AMBIGUOUS:
        if ambiguity == AmbiguityPolicy.RAISE:
            raise AmbiguousLocalTimeError(_describe(result, value))
        if ambiguity in (AmbiguityPolicy.EARLIEST, AmbiguityPolicy.PRE_TRANSITION):
            offset = result.candidates[0]
        else:
            offset = result.candidates[-1]
        return ResolvedTime(result.local - offset.seconds, offset, result.kind)

    assert result.before is not None and result.after is not None
    if gap == GapPolicy.SHIFT_FORWARD:
        return ResolvedTime(
            result.local - result.before.seconds, result.after, result.kind, shifted=True
        )
    if gap == GapPolicy.SHIFT_BACKWARD:
        return ResolvedTime(
            result.local - result.after.seconds, result.before, result.kind, shifted=True
        )
    raise InvalidLocalTimeError(_describe(result, value))


def _describe(result: LocalOffsets, value: datetime.datetime | None = None) -> str:
    """Return an error message for a local time that could not be resolved."""
    if value is None:
        value = _NAIVE_EPOCH + datetime.timedelta(seconds=result.local)
    if result.kind == LocalTimeKind.AMBIGUOUS:
        offsets = ", ".join(str(offset) for offset in result.candidates)
        return f"Local time {value} is ambiguous, it occurred with offsets {offsets}"
    return (
        f"Local time {value} does not exist, it was skipped moving from "
        f"{result.before} to {result.after}"
    )
