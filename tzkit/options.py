"""Context scoped options for timezone lookups.

Options are held in context variables so they apply to the current thread
or task only, and are set with a context manager:

    with options.pre_history_policy(PreHistoryPolicy.INITIAL_OFFSET):
        offset = zone.offset_at(-3_000_000_000)
"""

from collections.abc import Generator
import contextlib
import contextvars
import enum

__all__ = [
    "PreHistoryPolicy",
    "pre_history_policy",
    "get_pre_history_policy",
]


class PreHistoryPolicy(str, enum.Enum):
    """Determines the offset of instants before the first recorded transition."""

    FIRST_TRANSITION = "first_transition"
    """Use the offset of the first transition in the table.

    The dataset predates these instants, so they are treated as permanently
    in the earliest recorded state.
    """

    INITIAL_OFFSET = "initial_offset"
    """Use the local time type the dataset records as in effect before the
    first transition (typically local mean time), when there is one.
    """


_pre_history_policy = contextvars.ContextVar(
    "pre_history_policy", default=PreHistoryPolicy.FIRST_TRANSITION
)


@contextlib.contextmanager
def pre_history_policy(policy: PreHistoryPolicy) -> Generator[None, None, None]:
    """Context manager to change how instants before the first transition resolve."""
    token = _pre_history_policy.set(policy)
    try:
        yield
    finally:
        _pre_history_policy.reset(token)


def get_pre_history_policy() -> PreHistoryPolicy:
    """Return the pre-history policy in effect for the current context."""
    return _pre_history_policy.get()
