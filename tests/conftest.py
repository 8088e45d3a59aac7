from __future__ import annotations

from datetime import datetime, timezone

import pytest

from plantrelay import create_app
from plantrelay.state import CommandStore, SnapshotStore


@pytest.fixture
def fixed_time() -> datetime:
    return datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)


@pytest.fixture
def app():
    return create_app({"TESTING": True})


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def commands() -> CommandStore:
    return CommandStore()


@pytest.fixture
def snapshots(commands: CommandStore, fixed_time: datetime) -> SnapshotStore:
    return SnapshotStore(commands, clock=lambda: fixed_time)
