"""Test fixtures."""

import datetime

import pytest

from tzkit.timezone import Timezone


def _utc_seconds(*args: int) -> int:
    return int(datetime.datetime(*args, tzinfo=datetime.timezone.utc).timestamp())


@pytest.fixture(name="example_zone")
def mock_example_zone() -> Timezone:
    """Fixture for a small zone with a known table and no rule.

    The zone switches between CET and CEST at the 2022/2023 European transitions:
      - 2023-03-26T01:00:00Z clocks go forward from +01:00 to +02:00
      - 2023-10-29T01:00:00Z clocks go back from +02:00 to +01:00
    """
    return Timezone.from_transitions(
        "Example/Zone",
        [
            (_utc_seconds(2022, 10, 30, 1, 0, 0), 3600, False, "CET"),
            (_utc_seconds(2023, 3, 26, 1, 0, 0), 7200, True, "CEST"),
            (_utc_seconds(2023, 10, 29, 1, 0, 0), 3600, False, "CET"),
        ],
    )
