"""An ordered table of the offset transitions of a single zone.

The offset in effect at an instant is the offset of the last transition at or
before that instant, found with a binary search. Instants before the first
transition are resolved using a `PreHistoryPolicy`: the dataset does not
describe them, so the answer is a documented convention rather than a fact.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Iterator, Sequence
from typing import overload

from .options import PreHistoryPolicy, get_pre_history_policy
from .tzif.model import Offset, Transition

__all__ = [
    "TransitionTable",
]


class TransitionTable(Sequence[Transition]):
    """An immutable sequence of transitions, strictly increasing by starts_at."""

    def __init__(
        self, transitions: Iterable[Transition], initial: Offset | None = None
    ) -> None:
        """Initialize TransitionTable."""
        self._transitions: tuple[Transition, ...] = tuple(transitions)
        self._starts: tuple[int, ...] = tuple(
            transition.starts_at for transition in self._transitions
        )
        self._initial = initial
        if not self._transitions and initial is None:
            raise ValueError("TransitionTable requires a transition or initial offset")
        for previous, current in zip(self._starts, self._starts[1:]):
            if current <= previous:
                raise ValueError(
                    f"Transitions must be strictly increasing: {previous} >= {current}"
                )

    @property
    def initial(self) -> Offset | None:
        """The offset recorded as in effect before the first transition, if any."""
        return self._initial

    @property
    def first(self) -> Transition | None:
        """Return the earliest transition."""
        return self._transitions[0] if self._transitions else None

    @property
    def last(self) -> Transition | None:
        """Return the latest transition."""
        return self._transitions[-1] if self._transitions else None

    def index_at(self, instant: int) -> int:
        """Return the index of the transition in effect at the instant.

        Returns -1 when the instant precedes the first transition.
        """
        return bisect.bisect_right(self._starts, instant) - 1

    def offset_at(
        self, instant: int, policy: PreHistoryPolicy | None = None
    ) -> Offset:
        """Return the offset in effect at the instant.

        Instants after the last transition keep the last offset. Instants
        before the first transition follow the policy, defaulting to the
        policy of the current context (see `tzkit.options`).
        """
        if (index := self.index_at(instant)) >= 0:
            return self._transitions[index].offset
        return self.pre_history_offset(policy)

    def pre_history_offset(self, policy: PreHistoryPolicy | None = None) -> Offset:
        """Return the offset for instants before the first transition."""
        if policy is None:
            policy = get_pre_history_policy()
        if self._initial is not None and (
            policy == PreHistoryPolicy.INITIAL_OFFSET or not self._transitions
        ):
            return self._initial
        return self._transitions[0].offset

    def transitions_between(self, start: int, end: int) -> list[Transition]:
        """Return the transitions with start < starts_at <= end."""
        lo = bisect.bisect_right(self._starts, start)
        hi = bisect.bisect_right(self._starts, end)
        return list(self._transitions[lo:hi])

    @overload
    def __getitem__(self, index: int) -> Transition: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[Transition]: ...

    def __getitem__(self, index: int | slice) -> Transition | Sequence[Transition]:
        return self._transitions[index]

    def __len__(self) -> int:
        return len(self._transitions)

    def __iter__(self) -> Iterator[Transition]:
        return iter(self._transitions)

    def __repr__(self) -> str:
        return f"TransitionTable({len(self._transitions)} transitions)"
