"""Library for locating and loading the compiled timezone dataset.

Zones are loaded from the tzdata python package when it is installed, so that
results do not depend on the host. Zones it does not provide are loaded from
the system zoneinfo directories listed in `zoneinfo.TZPATH`.
"""

from __future__ import annotations

import logging
import pathlib
import zoneinfo
from collections.abc import Callable
from functools import cache
from importlib import resources

from ..exceptions import TimezoneInfoError
from .model import TimezoneInfo
from .tzif import read_tzif

__all__ = [
    "TimezoneInfoError",
    "available_timezones",
    "read",
]

_LOGGER = logging.getLogger(__name__)

_TZDATA_PACKAGE = "tzdata"

# Entries of a zoneinfo directory that are not zones
_IGNORED_KEYS = frozenset({"localtime", "posixrules", "Factory"})


@cache
def _tzdata_keys() -> frozenset[str]:
    """Return the zones listed by the tzdata package, if installed."""
    try:
        zones = resources.files(_TZDATA_PACKAGE).joinpath("zones")
        text = zones.read_text(encoding="utf-8")
    except ModuleNotFoundError:
        _LOGGER.debug("tzdata package is not installed")
        return frozenset()
    return frozenset(line.strip() for line in text.splitlines() if line.strip())


@cache
def _system_keys() -> frozenset[str]:
    """Return the zones found in the system zoneinfo directories."""
    return frozenset(zoneinfo.available_timezones())


def available_timezones() -> frozenset[str]:
    """Return the names of every zone in the dataset."""
    return frozenset(
        key
        for key in _tzdata_keys() | _system_keys()
        if key not in _IGNORED_KEYS and not key.startswith("System")
    )


def _load_tzdata(key: str) -> bytes | None:
    """Return the TZif contents of a zone from the tzdata package."""
    if key not in _tzdata_keys():
        return None
    (*parts, resource) = key.split("/")
    package = ".".join([_TZDATA_PACKAGE, "zoneinfo", *parts])
    try:
        return resources.files(package).joinpath(resource).read_bytes()
    except (ModuleNotFoundError, FileNotFoundError):
        return None


def _load_tzpath(key: str) -> bytes | None:
    """Return the TZif contents of a zone from the system TZPATH."""
    for search_path in zoneinfo.TZPATH:
        if (path := pathlib.Path(search_path, key)).is_file():
            return path.read_bytes()
    return None


_LOADERS: tuple[Callable[[str], bytes | None], ...] = (_load_tzdata, _load_tzpath)


def read(key: str) -> TimezoneInfo:
    """Return the records of the zone with the specified key.

    Raises TimezoneInfoError if the zone is unknown or its data is invalid.
    """
    return _read_cache(key)


@cache
def _read_cache(key: str) -> TimezoneInfo:
    if key not in available_timezones():
        raise TimezoneInfoError(f"Unable to find timezone: {key}")
    for loader in _LOADERS:
        if (content := loader(key)) is None:
            continue
        _LOGGER.debug("Reading timezone %s using %s", key, loader.__name__)
        try:
            return read_tzif(content)
        except ValueError as err:
            raise TimezoneInfoError(f"Unable to load timezone data for {key}: {err}") from err
    raise TimezoneInfoError(f"Unable to find timezone data for {key}")
