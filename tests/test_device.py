from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest
import requests

from plantrelay import create_app
from plantrelay.config import SOIL_THRESHOLD, WATER_TIME_SEC
from plantrelay.device import (
    DeviceLoop,
    RelayClient,
    RelayClientError,
    RelayResponseError,
    RelayTimeoutError,
    SimulatedPump,
    SimulatedSensors,
)


class _FixedSensors(SimulatedSensors):
    def __init__(self, soil: int, light: int = 1500) -> None:
        super().__init__()
        self.soil = soil
        self.light = light

    def read_soil(self) -> int:
        return self.soil

    def read_light(self) -> int:
        return self.light


@dataclass
class _FakeClient:
    commands: list[Any] = field(default_factory=list)
    pushes: list[tuple[int, int, bool]] = field(default_factory=list)

    def push_reading(self, soil: int, light: int, is_watering: bool) -> None:
        self.pushes.append((soil, light, is_watering))

    def poll_command(self) -> dict[str, bool | None]:
        nxt = self.commands.pop(0) if self.commands else {"water_now": False, "auto_enabled": True}
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _loop(client: _FakeClient, soil: int, clock: _Clock, sleeps: list[float]) -> DeviceLoop:
    return DeviceLoop(
        client,  # type: ignore[arg-type]
        sensors=_FixedSensors(soil),
        pump=SimulatedPump(),
        clock=clock,
        sleep=sleeps.append,
    )


def _relay_transport(monkeypatch: pytest.MonkeyPatch, flask_client) -> list[tuple[str, str]]:
    """Route requests.request through a Flask test client."""
    calls: list[tuple[str, str]] = []

    def fake_request(method: str, url: str, timeout: float | None = None, **kwargs: Any) -> requests.Response:
        path = url.split("://", 1)[1]
        path = path[path.index("/"):]
        calls.append((method, path))
        resp = flask_client.open(path, method=method, json=kwargs.get("json"))
        out = requests.Response()
        out.status_code = resp.status_code
        out._content = resp.data
        out.encoding = "utf-8"
        out.url = url
        return out

    monkeypatch.setattr(requests, "request", fake_request)
    return calls


def test_first_step_polls_and_pushes() -> None:
    client = _FakeClient()
    sleeps: list[float] = []
    loop = _loop(client, soil=1200, clock=_Clock(), sleeps=sleeps)

    assert loop.step() is False
    assert loop.auto_enabled is True
    assert client.pushes == [(1200, 1500, False)]
    assert sleeps == []


def test_auto_watering_waits_for_mode_and_cooldown() -> None:
    client = _FakeClient()
    clock = _Clock()
    sleeps: list[float] = []
    loop = _loop(client, soil=SOIL_THRESHOLD - 100, clock=clock, sleeps=sleeps)

    # Device starts with automation off until the first poll
    assert loop.step() is False

    clock.now = 1.0
    assert loop.step() is True
    assert sleeps == [WATER_TIME_SEC]
    assert client.pushes[-1] == (SOIL_THRESHOLD - 100, 1500, True)
    assert loop.pump.is_on() is False

    clock.now = 30.0
    assert loop.step() is False

    clock.now = 61.0
    assert loop.step() is True


def test_no_auto_watering_when_soil_is_wet() -> None:
    client = _FakeClient()
    clock = _Clock()
    loop = _loop(client, soil=SOIL_THRESHOLD, clock=clock, sleeps=[])

    loop.step()
    clock.now = 1.0
    assert loop.step() is False


def test_no_auto_watering_when_mode_off() -> None:
    client = _FakeClient(commands=[{"water_now": False, "auto_enabled": False}] * 3)
    clock = _Clock()
    loop = _loop(client, soil=10, clock=clock, sleeps=[])

    loop.step()
    clock.now = 1.0
    assert loop.step() is False
    assert loop.auto_enabled is False


def test_manual_command_waters_once() -> None:
    client = _FakeClient(commands=[{"water_now": True, "auto_enabled": False}])
    clock = _Clock()
    sleeps: list[float] = []
    loop = _loop(client, soil=2000, clock=clock, sleeps=sleeps)

    assert loop.step() is True
    assert sleeps == [WATER_TIME_SEC]
    # Watering push, then the periodic push reporting the watering
    assert client.pushes == [(2000, 1500, True), (2000, 1500, True)]

    clock.now = 1.0
    assert loop.step() is False


def test_command_poll_respects_interval() -> None:
    client = _FakeClient(commands=[
        {"water_now": False, "auto_enabled": False},
        {"water_now": True, "auto_enabled": False},
    ])
    clock = _Clock()
    loop = _loop(client, soil=2000, clock=clock, sleeps=[])

    loop.step()
    clock.now = 0.2
    assert loop.step() is False
    assert len(client.commands) == 1

    clock.now = 0.6
    assert loop.step() is True


def test_failed_poll_counts_as_no_command() -> None:
    client = _FakeClient(commands=[RelayClientError("down")])
    loop = _loop(client, soil=10, clock=_Clock(), sleeps=[])

    assert loop.step() is False
    assert loop.auto_enabled is False


def test_run_forever_stops_after_steps() -> None:
    client = _FakeClient()
    sleeps: list[float] = []
    loop = _loop(client, soil=2000, clock=_Clock(), sleeps=sleeps)

    loop.run_forever(steps=3)

    assert len(sleeps) == 3


def test_simulated_sensors_stay_near_thresholds() -> None:
    sensors = SimulatedSensors()
    for _ in range(50):
        assert 990 <= sensors.read_soil() <= 1010
        assert 1490 <= sensors.read_light() <= 1510


def test_client_round_trip_against_relay(monkeypatch: pytest.MonkeyPatch) -> None:
    flask_client = create_app({"TESTING": True}).test_client()
    calls = _relay_transport(monkeypatch, flask_client)
    relay = RelayClient("http://relay.local:3000/")

    relay.push_reading(640, 1700, False)
    flask_client.post("/api/water")

    assert relay.poll_command() == {"water_now": True, "auto_enabled": True}
    assert relay.poll_command() == {"water_now": False, "auto_enabled": True}
    assert flask_client.get("/api/latest").get_json()["soil"] == 640
    assert calls[0] == ("POST", "/sensor")
    assert relay.get_status()["consecutive_errors"] == 0


def test_device_loop_against_relay(monkeypatch: pytest.MonkeyPatch) -> None:
    flask_client = create_app({"TESTING": True}).test_client()
    _relay_transport(monkeypatch, flask_client)
    flask_client.post("/api/auto", json={"enabled": False})
    flask_client.post("/api/water")

    sleeps: list[float] = []
    loop = DeviceLoop(
        RelayClient("http://relay.local:3000"),
        sensors=_FixedSensors(700),
        clock=_Clock(),
        sleep=sleeps.append,
    )

    assert loop.step() is True
    latest = flask_client.get("/api/latest").get_json()
    assert latest["is_watering"] is True
    assert latest["auto_enabled"] is False


def test_client_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_request(*args: Any, **kwargs: Any) -> requests.Response:
        raise requests.exceptions.Timeout("slow")

    monkeypatch.setattr(requests, "request", fake_request)
    relay = RelayClient("http://relay.local:3000", timeout=0.1)

    with pytest.raises(RelayTimeoutError):
        relay.poll_command()
    assert relay.get_status()["consecutive_errors"] == 1


def test_client_connection_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_request(*args: Any, **kwargs: Any) -> requests.Response:
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(requests, "request", fake_request)
    relay = RelayClient("http://relay.local:3000")

    with pytest.raises(RelayClientError):
        relay.push_reading(1, 2, False)
    with pytest.raises(RelayClientError):
        relay.push_reading(1, 2, False)

    status = relay.get_status()
    assert status["consecutive_errors"] == 2
    assert "Cannot reach relay" in status["last_error"]


def test_client_rejected_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    flask_client = create_app({"TESTING": True}).test_client()
    _relay_transport(monkeypatch, flask_client)
    relay = RelayClient("http://relay.local:3000")

    with pytest.raises(RelayResponseError):
        relay.push_reading("dry", 2, False)  # type: ignore[arg-type]

    relay.push_reading(1, 2, False)
    assert relay.get_status()["consecutive_errors"] == 0


def test_client_rejects_non_object_command(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_request(method: str, url: str, **kwargs: Any) -> requests.Response:
        out = requests.Response()
        out.status_code = 200
        out._content = b"[true]"
        out.encoding = "utf-8"
        return out

    monkeypatch.setattr(requests, "request", fake_request)

    with pytest.raises(RelayResponseError):
        RelayClient("http://relay.local:3000").poll_command()


def _command_response(monkeypatch: pytest.MonkeyPatch, content: bytes) -> None:
    def fake_request(method: str, url: str, **kwargs: Any) -> requests.Response:
        out = requests.Response()
        out.status_code = 200
        out._content = content
        out.encoding = "utf-8"
        return out

    monkeypatch.setattr(requests, "request", fake_request)


def test_poll_command_without_auto_key(monkeypatch: pytest.MonkeyPatch) -> None:
    _command_response(monkeypatch, b'{"water_now": true}')

    assert RelayClient("http://relay.local:3000").poll_command() == {
        "water_now": True,
        "auto_enabled": None,
    }


def test_poll_command_does_not_coerce_strings(monkeypatch: pytest.MonkeyPatch) -> None:
    _command_response(monkeypatch, b'{"water_now": "true", "auto_enabled": "false"}')

    assert RelayClient("http://relay.local:3000").poll_command() == {
        "water_now": False,
        "auto_enabled": None,
    }


def test_missing_auto_mode_keeps_previous_value() -> None:
    client = _FakeClient(commands=[
        {"water_now": False, "auto_enabled": True},
        {"water_now": False, "auto_enabled": None},
    ])
    clock = _Clock()
    loop = _loop(client, soil=2000, clock=clock, sleeps=[])

    loop.step()
    assert loop.auto_enabled is True

    clock.now = 1.0
    loop.step()
    assert loop.auto_enabled is True
