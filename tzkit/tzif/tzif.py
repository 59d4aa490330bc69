"""Library for reading compiled TZif timezone files.

The transition tables used by tzkit are not compiled from the IANA source
format directly. Instead they are read from the TZif files produced by the
zic compiler and shipped in the tzdata python package (or the system
zoneinfo directory).

A TZif file (see rfc8536) is laid out as:

  - A 44 byte header with the version and the record counts of the block
  - The version 1 data block, using 32-bit times
  - For version 2+ files, a second header and a data block using 64-bit times
  - For version 2+ files, a footer with a POSIX TZ string between newlines,
    describing the rules in effect after the last transition

Readers that understand version 2 ignore the version 1 block entirely, since
its 32-bit times can't represent instants past 2038.

Each data block contains, in order:

  - timecnt transition times, each an instant in seconds since the epoch
  - timecnt transition types, an index into the local time type records
  - typecnt local time type records (utoff, dst, idx)
  - charcnt octets of NUL terminated time zone designations
  - leapcnt leap second records (occurrence, correction)
  - isstdcnt standard/wall indicators
  - isutccnt UT/local indicators
"""

from __future__ import annotations

import io
import logging
import struct
from dataclasses import dataclass
from typing import NamedTuple

from .model import LeapSecond, Offset, TimezoneInfo, Transition
from .tz_rule import Rule, parse_tz_rule

__all__ = [
    "read_tzif",
]

_LOGGER = logging.getLogger(__name__)

_MAGIC = b"TZif"
_V1 = b"\x00"

# magic (4 bytes), version (1 byte), unused (15 bytes), then the six counts
# isutccnt, isstdcnt, leapcnt, timecnt, typecnt, charcnt (4 bytes each)
_HEADER = struct.Struct(">4sc15x6l")

# utoff (4 bytes): Seconds added to UTC to determine local time
# dst (1 byte): Local time is DST (1) or standard time (0)
# idx (1 byte): Index of the designation in the designation octets
_LOCAL_TIME_TYPE = struct.Struct(">l?B")


class _Layout(NamedTuple):
    """The size and struct format of times in a data block."""

    time_size: int
    time_format: str


_V1_LAYOUT = _Layout(4, "l")
_V2_LAYOUT = _Layout(8, "q")


@dataclass(frozen=True)
class _Header:
    """The header preceding each data block."""

    version: bytes
    """The version of the file format, NUL for version 1."""

    isutccnt: int
    """The number of UT/local indicators in the data block."""

    isstdcnt: int
    """The number of standard/wall indicators in the data block."""

    leapcnt: int
    """The number of leap second records in the data block."""

    timecnt: int
    """The number of transition times in the data block."""

    typecnt: int
    """The number of local time type records in the data block."""

    charcnt: int
    """The number of octets of time zone designations in the data block."""

    @classmethod
    def read(cls, buf: io.BytesIO) -> _Header:
        """Read and validate a header from the buffer."""
        if len(data := buf.read(_HEADER.size)) != _HEADER.size:
            raise ValueError("TZif header was truncated")
        (magic, version, *counts) = _HEADER.unpack(data)
        if magic != _MAGIC:
            raise ValueError("TZif file did not contain magic header")
        header = cls(version, *counts)
        if header.isutccnt not in (0, header.typecnt):
            raise ValueError(
                f"UT/local indicators mismatched ({header.isutccnt}, {header.typecnt})"
            )
        if header.isstdcnt not in (0, header.typecnt):
            raise ValueError(
                f"standard/wall indicators mismatched ({header.isstdcnt}, {header.typecnt})"
            )
        return header

    def check_block(self) -> None:
        """Verify the block has the records required to describe local time."""
        if self.typecnt == 0:
            raise ValueError("TZif block has no local time type records")
        if self.charcnt == 0:
            raise ValueError("TZif block has no time zone designations")

    def block_size(self, layout: _Layout) -> int:
        """Return the number of bytes in the data block following this header."""
        return (
            self.timecnt * (layout.time_size + 1)
            + self.typecnt * _LOCAL_TIME_TYPE.size
            + self.charcnt
            + self.leapcnt * (layout.time_size + 4)
            + self.isstdcnt
            + self.isutccnt
        )


@dataclass
class _DataBlock:
    """The decoded contents of a single TZif data block."""

    transitions: list[Transition]
    leap_seconds: list[LeapSecond]
    initial: Offset


def _read_exact(buf: io.BytesIO, size: int) -> bytes:
    if len(data := buf.read(size)) != size:
        raise ValueError("TZif data block was truncated")
    return data


def _designation(designations: bytes, idx: int) -> str:
    """Return the NUL terminated designation starting at the index."""
    if (end := designations.find(b"\x00", idx)) == -1:
        end = len(designations)
    return designations[idx:end].decode("utf-8")


def _read_offsets(header: _Header, buf: io.BytesIO) -> list[Offset]:
    """Read the local time type records as offsets.

    Every transition to the same local time type shares the same offset.
    """
    records = [
        _LOCAL_TIME_TYPE.unpack(_read_exact(buf, _LOCAL_TIME_TYPE.size))
        for _ in range(header.typecnt)
    ]
    designations = _read_exact(buf, header.charcnt)
    offsets = []
    for utoff, dst, idx in records:
        try:
            offsets.append(
                Offset(
                    seconds=utoff,
                    is_dst=dst,
                    abbreviation=_designation(designations, idx),
                )
            )
        except ValueError as err:
            raise ValueError(f"Invalid local time type ({utoff}, {dst}, {idx})") from err
    return offsets


def _read_datablock(header: _Header, layout: _Layout, buf: io.BytesIO) -> _DataBlock:
    """Read the records of a data block from the buffer."""
    times = struct.unpack(
        f">{header.timecnt}{layout.time_format}",
        _read_exact(buf, header.timecnt * layout.time_size),
    )
    types = _read_exact(buf, header.timecnt)
    offsets = _read_offsets(header, buf)
    leap_seconds = [
        LeapSecond._make(
            struct.unpack(
                f">{layout.time_format}l", _read_exact(buf, layout.time_size + 4)
            )
        )
        for _ in range(header.leapcnt)
    ]
    # The standard/wall and UT/local indicators describe how the transition
    # times were specified in the source, which the footer rule already covers.
    _read_exact(buf, header.isstdcnt + header.isutccnt)

    transitions: list[Transition] = []
    for starts_at, time_type in zip(times, types):
        if time_type >= len(offsets):
            raise ValueError(f"Transition type out of bounds {time_type} >= {len(offsets)}")
        if transitions and transitions[-1].starts_at >= starts_at:
            raise ValueError(f"Transition times not ascending at {starts_at}")
        transitions.append(Transition(starts_at, offsets[time_type]))

    # Instants before the first transition use local time type 0
    return _DataBlock(transitions, leap_seconds, offsets[0])


def _read_footer(buf: io.BytesIO) -> Rule | None:
    """Read the POSIX TZ string following the version 2+ data block."""
    parts = buf.read().decode("utf-8").split("\n")
    if len(parts) != 3 or parts[0] or parts[2]:
        raise ValueError("TZif footer is not a newline enclosed TZ string")
    return parse_tz_rule(parts[1]) if parts[1] else None


def read_tzif(content: bytes) -> TimezoneInfo:
    """Read the TZif file and parse and return the timezone records."""
    buf = io.BytesIO(content)

    header = _Header.read(buf)
    if header.version == _V1:
        header.check_block()
        block = _read_datablock(header, _V1_LAYOUT, buf)
        return TimezoneInfo(block.transitions, block.leap_seconds, initial=block.initial)

    _read_exact(buf, header.block_size(_V1_LAYOUT))
    header = _Header.read(buf)
    header.check_block()
    block = _read_datablock(header, _V2_LAYOUT, buf)
    rule = _read_footer(buf)
    _LOGGER.debug(
        "Read TZif version %s with %d transitions and rule %s",
        header.version.decode(),
        len(block.transitions),
        rule,
    )
    return TimezoneInfo(
        block.transitions, block.leap_seconds, rule=rule, initial=block.initial
    )
