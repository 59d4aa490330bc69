"""
A timezone rule engine for IANA timezones.

tzkit resolves a named timezone and an instant, or a naive local date and
time, to the correct UTC offset. It reads the compiled tzdata dataset,
answers offset lookups with a binary search over each zone's transitions,
extrapolates past the dataset with the zone's POSIX TZ rule and handles
ambiguous and skipped local times with explicit policies.

    import datetime

    from tzkit import registry, resolver

    berlin = registry.get("Europe/Berlin")
    offset = berlin.offset_at(1698541200)
    resolved = resolver.resolve(
        berlin,
        datetime.datetime(2023, 10, 29, 2, 30),
        ambiguity=resolver.AmbiguityPolicy.EARLIEST,
        gap=resolver.GapPolicy.RAISE,
    )
"""

__all__ = [
    "exceptions",
    "options",
    "posix_tz",
    "registry",
    "resolver",
    "system",
    "timezone",
    "transition_table",
    "tzif",
    "tzinfo",
    "zoned",
]
