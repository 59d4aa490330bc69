"""Determine the name of the timezone configured on the host.

This module is optional and only produces a zone name; the name is looked up
through the normal registry API. The sources checked, in order, are:

  - The TZ environment variable, when it names a zone ("Europe/Berlin" or
    ":Europe/Berlin"). POSIX rule strings are handled by `tzkit.posix_tz`.
  - /etc/timezone, as used by Debian based systems.
  - The target of the /etc/localtime symlink, below a zoneinfo directory.

Windows display names are not mapped to IANA names.
"""

from __future__ import annotations

import logging
import os
import pathlib
import re

from . import registry
from .timezone import Timezone

__all__ = [
    "get_system_zone_name",
    "get_system_timezone",
]

_LOGGER = logging.getLogger(__name__)

_TIMEZONE_FILE = pathlib.Path("/etc/timezone")
_LOCALTIME_FILE = pathlib.Path("/etc/localtime")
_ZONEINFO_DIR = "/zoneinfo/"

# Area/Location, e.g. America/Argentina/Buenos_Aires or Etc/GMT+5
_ZONE_NAME = re.compile(r"[A-Za-z_+\-]+(/[A-Za-z0-9_+\-]+)+")


def _from_environment() -> str | None:
    if not (value := os.environ.get("TZ", "").strip()):
        return None
    value = value.removeprefix(":")
    # Absolute paths point at a TZif file
    if value.startswith("/"):
        return _zone_from_path(value)
    if _ZONE_NAME.fullmatch(value) or value in ("UTC", "GMT"):
        return value
    return None


def _from_timezone_file() -> str | None:
    try:
        value = _TIMEZONE_FILE.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return value or None


def _from_localtime_link() -> str | None:
    try:
        target = os.readlink(_LOCALTIME_FILE)
    except OSError:
        return None
    return _zone_from_path(target)


def _zone_from_path(path: str) -> str | None:
    if _ZONEINFO_DIR not in path:
        return None
    return path.rsplit(_ZONEINFO_DIR, 1)[1] or None


def get_system_zone_name() -> str | None:
    """Return the IANA name of the host timezone, or None if undetermined."""
    for source in (_from_environment, _from_timezone_file, _from_localtime_link):
        if (name := source()) is not None:
            _LOGGER.debug("System timezone %s from %s", name, source.__name__)
            return name
    return None


def get_system_timezone() -> Timezone | None:
    """Return the registry Timezone of the host, or None if undetermined or unknown."""
    if (name := get_system_zone_name()) is None:
        return None
    return registry.lookup(name)
