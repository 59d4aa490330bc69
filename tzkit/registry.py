"""The process wide registry of named timezones.

The registry maps IANA names to `Timezone` objects. It is built once, on first
use, from the compiled dataset (see `tzkit.tzif.timezoneinfo`) and is never
modified afterward, so any number of threads may read it without locking.
Building is guarded by a lock so that concurrent first callers all receive
the same instance.

Lookups are exact, case-sensitive matches on the canonical name. An unknown
name is not an error for `lookup`, which returns None, and the caller decides
whether that is fatal. Use `get` for a lookup that raises.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from .exceptions import TimezoneInfoError, UnknownTimezoneError
from .timezone import Timezone
from .tzif import timezoneinfo

__all__ = [
    "ZoneRegistry",
    "get_registry",
    "lookup",
    "get",
    "list_names",
    "find",
]

_LOGGER = logging.getLogger(__name__)


class ZoneRegistry(Mapping[str, Timezone]):
    """An immutable mapping of timezone name to Timezone."""

    def __init__(self, timezones: Iterable[Timezone]) -> None:
        """Initialize ZoneRegistry."""
        zones: dict[str, Timezone] = {}
        for timezone in timezones:
            if timezone.name in zones:
                raise ValueError(f"Duplicate timezone name: {timezone.name}")
            zones[timezone.name] = timezone
        self._zones = MappingProxyType(dict(sorted(zones.items())))

    @classmethod
    def from_dataset(cls, names: Iterable[str] | None = None) -> ZoneRegistry:
        """Build a registry by reading every zone in the compiled dataset.

        Zones whose data cannot be read are skipped and logged.
        """
        if names is None:
            names = timezoneinfo.available_timezones()
        timezones = []
        for name in names:
            try:
                info = timezoneinfo.read(name)
            except TimezoneInfoError as err:
                _LOGGER.debug("Skipping timezone %s: %s", name, err)
                continue
            timezones.append(Timezone.from_timezoneinfo(name, info))
        _LOGGER.debug("Loaded %d timezones", len(timezones))
        return cls(timezones)

    def lookup(self, name: str) -> Timezone | None:
        """Return the Timezone with the exact name, or None if unknown."""
        return self._zones.get(name)

    def get_zone(self, name: str) -> Timezone:
        """Return the Timezone with the exact name or raise UnknownTimezoneError."""
        if (timezone := self._zones.get(name)) is None:
            raise UnknownTimezoneError(name)
        return timezone

    def list_names(self) -> Iterator[str]:
        """Return the names of all timezones, in sorted order."""
        return iter(self._zones)

    def find(self, fragment: str) -> list[Timezone]:
        """Return all timezones whose name contains the fragment."""
        return [timezone for name, timezone in self._zones.items() if fragment in name]

    def __getitem__(self, name: str) -> Timezone:
        return self.get_zone(name)

    def __contains__(self, name: object) -> bool:
        return name in self._zones

    def __iter__(self) -> Iterator[str]:
        return iter(self._zones)

    def __len__(self) -> int:
        return len(self._zones)

    def __repr__(self) -> str:
        return f"ZoneRegistry({len(self._zones)} timezones)"


_REGISTRY: ZoneRegistry | None = None
_REGISTRY_LOCK = threading.Lock()


def get_registry() -> ZoneRegistry:
    """Return the process wide registry, building it on first use."""
    global _REGISTRY  # pylint: disable=global-statement
    if (registry := _REGISTRY) is not None:
        return registry
    with _REGISTRY_LOCK:
        if _REGISTRY is None:
            _REGISTRY = ZoneRegistry.from_dataset()
        return _REGISTRY


def lookup(name: str) -> Timezone | None:
    """Return the Timezone with the exact name, or None if unknown."""
    return get_registry().lookup(name)


def get(name: str) -> Timezone:
    """Return the Timezone with the exact name or raise UnknownTimezoneError."""
    return get_registry().get_zone(name)


def list_names() -> Iterator[str]:
    """Return the names of all known timezones."""
    return get_registry().list_names()


def find(fragment: str) -> list[Timezone]:
    """Return all timezones whose name contains the fragment."""
    return get_registry().find(fragment)
