from __future__ import annotations

import pytest

from profile_configs.store import (
    CHANGED,
    COLLECTION_EMPTY,
    REMOVED_PROFILE,
    ConfigStore,
    EventBus,
    MemoryStorage,
)

DEFAULT_PROFILE = "notes-db"


class EventRecorder:
    """Collects every event triggered on a bus."""

    def __init__(self, events: EventBus) -> None:
        self.calls: list[tuple] = []
        for name in (COLLECTION_EMPTY, REMOVED_PROFILE, CHANGED):
            events.on(name, lambda *args, _name=name: self.calls.append((_name,) + args))

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]

    def payloads(self, name: str) -> list[tuple]:
        return [call[1:] for call in self.calls if call[0] == name]


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage(DEFAULT_PROFILE)


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(events: EventBus) -> EventRecorder:
    return EventRecorder(events)


@pytest.fixture
def store(storage: MemoryStorage, events: EventBus) -> ConfigStore:
    return ConfigStore(storage, events=events)
