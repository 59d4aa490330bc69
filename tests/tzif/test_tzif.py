"""Tests for the tzif library."""

import datetime
import struct

import pytest

from tzkit.exceptions import PosixRuleError
from tzkit.tzif import timezoneinfo, tzif
from tzkit.tzif.model import LeapSecond, Offset

V1_HEADER = b"".join(
    [
        b"\x54\x5a\x69\x66",  # magic
        b"\x00",  # version
        b"\x00\x00\x00\x00",  # pad
        b"\x00\x00\x00\x00",
        b"\x00\x00\x00\x00",
        b"\x00\x00\x00",
        b"\x00\x00\x00\x01"  # isutccnt
        b"\x00\x00\x00\x01"  # isstdcnt
        b"\x00\x00\x00\x1b"  # isleapcnt
        b"\x00\x00\x00\x00"  # timecnt
        b"\x00\x00\x00\x01"  # typecnt
        b"\x00\x00\x00\x04",  # charcnt
    ]
)

DESIGNATIONS = b"LMT\x00CET\x00CEST\x00"
LOCAL_TIME_TYPES = [
    (3208, False, 0),  # LMT
    (3600, False, 4),  # CET
    (7200, True, 8),  # CEST
]
TRANSITIONS = [
    (-1_000_000_000, 1),
    (1679792400, 2),  # 2023-03-26T01:00:00Z
    (1698541200, 1),  # 2023-10-29T01:00:00Z
]
FOOTER = b"CET-1CEST,M3.5.0,M10.5.0/3"


def build_tzif(
    version: bytes = b"2",
    transitions: list[tuple[int, int]] = TRANSITIONS,
    local_time_types: list[tuple[int, bool, int]] = LOCAL_TIME_TYPES,
    leap_seconds: list[tuple[int, int]] | None = None,
    footer: bytes = FOOTER,
) -> bytes:
    """Return the contents of a TZif file with the specified records."""
    leap_seconds = leap_seconds or []

    def block(time_format: str) -> bytes:
        parts = [
            struct.pack(
                ">4sc15x6l",
                b"TZif",
                version,
                0,
                0,
                len(leap_seconds),
                len(transitions),
                len(local_time_types),
                len(DESIGNATIONS),
            ),
            struct.pack(f">{len(transitions)}{time_format}", *(t for t, _ in transitions)),
            bytes(idx for _, idx in transitions),
        ]
        parts.extend(struct.pack(">l?B", *record) for record in local_time_types)
        parts.append(DESIGNATIONS)
        parts.extend(struct.pack(f">{time_format}l", *leap) for leap in leap_seconds)
        return b"".join(parts)

    content = block("l")
    if version == b"\x00":
        return content
    return content + block("q") + b"\n" + footer + b"\n"


@pytest.mark.parametrize(
    "header,match",
    [
        (
            b"\x00" + V1_HEADER[1:],
            "did not contain magic",
        ),
        (
            V1_HEADER[0:23] + b"\x07" + V1_HEADER[24:],
            "UT/local indicators mismatched",
        ),
        (
            V1_HEADER[0:27] + b"\x07" + V1_HEADER[28:],
            "standard/wall indicators mismatched",
        ),
        (
            V1_HEADER[0:23]
            + b"\x00"
            + V1_HEADER[24:27]
            + b"\x00"
            + V1_HEADER[28:39]
            + b"\x00"
            + V1_HEADER[40:],
            "no local time type records",
        ),
        (
            V1_HEADER[0:43] + b"\x00",
            "no time zone designations",
        ),
        (
            V1_HEADER[0:20],
            "header was truncated",
        ),
    ],
)
def test_invalid_header(header: bytes, match: str) -> None:
    """Tests a TZif header with invalid counts."""
    with pytest.raises(ValueError, match=match):
        tzif.read_tzif(header)


def test_read_v2() -> None:
    """Test reading the transitions, local time types and footer of a file."""
    result = tzif.read_tzif(build_tzif())

    cet = Offset(seconds=3600, is_dst=False, abbreviation="CET")
    cest = Offset(seconds=7200, is_dst=True, abbreviation="CEST")
    assert [(t.starts_at, t.offset) for t in result.transitions] == [
        (-1_000_000_000, cet),
        (1679792400, cest),
        (1698541200, cet),
    ]
    assert result.transitions[1].start_datetime == datetime.datetime(
        2023, 3, 26, 1, 0, 0, tzinfo=datetime.timezone.utc
    )
    # Transitions to the same local time type share one offset
    assert result.transitions[0].offset is result.transitions[2].offset
    assert result.initial == Offset(seconds=3208, is_dst=False, abbreviation="LMT")
    assert result.leap_seconds == []

    assert result.rule
    assert result.rule.std == cet
    assert result.rule.dst == cest


def test_read_v1() -> None:
    """Test a version 1 file has no footer rule."""
    result = tzif.read_tzif(build_tzif(version=b"\x00"))
    assert len(result.transitions) == 3
    assert result.rule is None
    assert result.initial
    assert result.initial.abbreviation == "LMT"


def test_read_v3() -> None:
    """Test a version 3 file is read like version 2."""
    result = tzif.read_tzif(build_tzif(version=b"3"))
    assert len(result.transitions) == 3
    assert result.rule
    assert str(result.rule) == "CET/CEST"


def test_empty_footer() -> None:
    """Test a file without a rule for times after the last transition."""
    result = tzif.read_tzif(build_tzif(footer=b""))
    assert len(result.transitions) == 3
    assert result.rule is None


def test_missing_footer() -> None:
    """Test a file with a truncated footer."""
    content = build_tzif()
    with pytest.raises(ValueError, match="TZif footer"):
        tzif.read_tzif(content[:-1])


def test_invalid_footer() -> None:
    """Test a footer that is not a valid TZ string."""
    with pytest.raises(PosixRuleError, match="Unable to parse TZ string"):
        tzif.read_tzif(build_tzif(footer=b"CET-1CEST,M3.5.0"))


def test_leap_seconds() -> None:
    """Test reading leap second records."""
    result = tzif.read_tzif(build_tzif(leap_seconds=[(78796800, 1), (94694401, 2)]))
    assert result.leap_seconds == [
        LeapSecond(occurrence=78796800, correction=1),
        LeapSecond(occurrence=94694401, correction=2),
    ]
    assert len(result.transitions) == 3


def test_transition_type_out_of_bounds() -> None:
    """Test a transition that refers to a missing local time type."""
    with pytest.raises(ValueError, match="Transition type out of bounds"):
        tzif.read_tzif(build_tzif(transitions=[(0, 1), (100, 3)]))


def test_transitions_not_ascending() -> None:
    """Test transitions must be in increasing order."""
    with pytest.raises(ValueError, match="not ascending"):
        tzif.read_tzif(build_tzif(transitions=[(100, 1), (100, 2)]))


def test_invalid_local_time_type() -> None:
    """Test an offset outside the range of civil offsets."""
    with pytest.raises(ValueError, match="Invalid local time type"):
        tzif.read_tzif(
            build_tzif(local_time_types=[(3208, False, 0), (100_000, False, 4)])
        )


def test_tzif() -> None:
    """Tests for tzif parser."""
    result = timezoneinfo.read("America/Los_Angeles")
    assert len(result.transitions) > 0
    assert result.initial
    assert result.initial.abbreviation == "LMT"
    assert result.rule
    assert result.rule.std
    assert result.rule.std.abbreviation == "PST"
    assert result.rule.std.utcoffset == datetime.timedelta(hours=-8)
    assert result.rule.dst
    assert result.rule.dst.abbreviation == "PDT"
    assert result.rule.dst.utcoffset == datetime.timedelta(hours=-7)
