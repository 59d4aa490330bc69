"""Tests for the timezone registry."""

import threading
from collections.abc import Generator

import pytest

from tzkit import registry
from tzkit.exceptions import UnknownTimezoneError
from tzkit.registry import ZoneRegistry
from tzkit.timezone import Timezone


@pytest.fixture(name="example_registry")
def mock_registry(example_zone: Timezone) -> ZoneRegistry:
    """Fixture for a registry with a small set of zones."""
    return ZoneRegistry(
        [
            Timezone.from_transitions("Europe/Zurich", [(0, 3600, False, "CET")]),
            example_zone,
            Timezone.from_transitions("America/Example", [(0, -18000, False, "EST")]),
        ]
    )


@pytest.fixture(name="clear_registry")
def mock_clear_registry(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Fixture to build the process wide registry from scratch."""
    monkeypatch.setattr(registry, "_REGISTRY", None)
    yield


def test_lookup(example_registry: ZoneRegistry, example_zone: Timezone) -> None:
    """Test looking up a zone by its exact name."""
    assert example_registry.lookup("Example/Zone") is example_zone
    assert example_registry.get_zone("Example/Zone") is example_zone
    assert example_registry["Example/Zone"] is example_zone
    assert "Example/Zone" in example_registry
    assert len(example_registry) == 3


def test_lookup_unknown(example_registry: ZoneRegistry) -> None:
    """Test an unknown name is not found."""
    assert example_registry.lookup("Mars/Phobos") is None
    assert "Mars/Phobos" not in example_registry
    with pytest.raises(UnknownTimezoneError, match="Mars/Phobos") as exc_info:
        example_registry.get_zone("Mars/Phobos")
    assert exc_info.value.name == "Mars/Phobos"
    assert isinstance(exc_info.value, KeyError)
    with pytest.raises(KeyError):
        example_registry["Mars/Phobos"]


def test_lookup_is_case_sensitive(example_registry: ZoneRegistry) -> None:
    """Test names are matched exactly."""
    assert example_registry.lookup("example/zone") is None
    assert example_registry.lookup("EXAMPLE/ZONE") is None
    assert example_registry.lookup(" Example/Zone") is None


def test_list_names(example_registry: ZoneRegistry) -> None:
    """Test names are listed in sorted order."""
    assert list(example_registry.list_names()) == [
        "America/Example",
        "Europe/Zurich",
        "Example/Zone",
    ]
    assert list(example_registry) == list(example_registry.list_names())


def test_find(example_registry: ZoneRegistry) -> None:
    """Test finding zones by a fragment of their name."""
    assert [zone.name for zone in example_registry.find("Ex")] == [
        "America/Example",
        "Example/Zone",
    ]
    assert [zone.name for zone in example_registry.find("Zurich")] == ["Europe/Zurich"]
    assert example_registry.find("Phobos") == []


def test_duplicate_names(example_zone: Timezone) -> None:
    """Test a registry can't hold two zones with the same name."""
    with pytest.raises(ValueError, match="Duplicate timezone name"):
        ZoneRegistry([example_zone, example_zone])


def test_from_dataset_names() -> None:
    """Test building a registry from a subset of the dataset."""
    zones = ZoneRegistry.from_dataset(["Europe/Berlin", "Asia/Tokyo", "Mars/Phobos"])
    assert list(zones) == ["Asia/Tokyo", "Europe/Berlin"]
    assert zones["Asia/Tokyo"].offset_at(0).abbreviation == "JST"


def test_module_lookup() -> None:
    """Test the process wide registry built from the dataset."""
    berlin = registry.get("Europe/Berlin")
    assert berlin.name == "Europe/Berlin"
    assert registry.lookup("Europe/Berlin") is berlin
    assert registry.lookup("Mars/Phobos") is None
    assert registry.lookup("europe/berlin") is None
    with pytest.raises(UnknownTimezoneError):
        registry.get("Mars/Phobos")

    names = list(registry.list_names())
    assert names == sorted(names)
    assert "America/Los_Angeles" in names
    assert "Europe/Berlin" in [zone.name for zone in registry.find("Berlin")]


def test_get_registry_is_shared() -> None:
    """Test the registry is built once."""
    assert registry.get_registry() is registry.get_registry()


@pytest.mark.usefixtures("clear_registry")
def test_concurrent_first_use(
    monkeypatch: pytest.MonkeyPatch, example_zone: Timezone
) -> None:
    """Test concurrent first callers all receive the same registry."""
    calls = []
    started = threading.Event()

    def from_dataset() -> ZoneRegistry:
        calls.append(1)
        started.wait(timeout=5)
        return ZoneRegistry([example_zone])

    monkeypatch.setattr(ZoneRegistry, "from_dataset", from_dataset)

    results: list[ZoneRegistry] = []
    threads = [
        threading.Thread(target=lambda: results.append(registry.get_registry()))
        for _ in range(8)
    ]
    for thread in threads:
        thread.start()
    started.set()
    for thread in threads:
        thread.join(timeout=5)

    assert len(calls) == 1
    assert len(results) == 8
    assert all(result is results[0] for result in results)
    assert registry.lookup("Example/Zone") is example_zone
