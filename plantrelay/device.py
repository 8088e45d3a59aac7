"""
Simulated watering device that talks to the relay over HTTP.

Mirrors the controller firmware: push a reading every few seconds, poll for
commands twice a second, water automatically when the soil is dry and
automation is on, and water once whenever the relay hands out a manual command.
"""
import logging
import random
import time
from typing import Callable, Dict, Optional

import requests

from .config import (
    COMMAND_INTERVAL_SEC,
    DATA_INTERVAL_SEC,
    DEVICE_TIMEOUT,
    LOOP_DELAY_SEC,
    SOIL_THRESHOLD,
    WATER_COOLDOWN_SEC,
    WATER_TIME_SEC,
)

logger = logging.getLogger(__name__)


class RelayClientError(Exception):
    """Base exception for relay communication errors."""
    pass


class RelayTimeoutError(RelayClientError):
    """Relay did not respond within timeout period."""
    pass


class RelayResponseError(RelayClientError):
    """Relay returned an error status or an unusable body."""
    pass


# ============================================================================
# HTTP client
# ============================================================================

class RelayClient:
    """
    Device side of the relay wire contract.
    Tracks consecutive failures for monitoring.
    """

    def __init__(self, base_url: str, timeout: float = DEVICE_TIMEOUT):
        """
        Args:
            base_url: Relay root URL, e.g. http://192.168.4.2:3000
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        # Error tracking
        self._consecutive_errors = 0
        self._last_error: Optional[str] = None

    def push_reading(self, soil: int, light: int, is_watering: bool):
        """POST one reading to /sensor."""
        payload = {"soil": soil, "light": light, "is_watering": is_watering}
        logger.info(f"[DEVICE] Send payload: {payload}")
        response = self._request("POST", "/sensor", json=payload)
        logger.debug(f"[DEVICE] Response {response.status_code}: {response.text}")

    def poll_command(self) -> Dict[str, Optional[bool]]:
        """
        GET /api/command.

        Returns:
            Dict with 'water_now' and 'auto_enabled' (None if missing)
        """
        response = self._request("GET", "/api/command")
        try:
            body = response.json()
        except ValueError as e:
            self._handle_error("Invalid JSON in command response")
            raise RelayResponseError("Invalid JSON in command response") from e

        if not isinstance(body, dict):
            self._handle_error(f"Unexpected command body: {body!r}")
            raise RelayResponseError(f"Unexpected command body: {body!r}")

        # auto_enabled is None when the relay did not send a usable value
        auto_enabled = body.get("auto_enabled")
        return {
            "water_now": body.get("water_now") is True,
            "auto_enabled": auto_enabled if isinstance(auto_enabled, bool) else None,
        }

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            error_msg = f"Relay timeout after {self.timeout}s on {method} {path}"
            self._handle_error(error_msg)
            raise RelayTimeoutError(error_msg) from e
        except requests.exceptions.HTTPError as e:
            error_msg = f"HTTP error from relay: {e.response.status_code} on {method} {path}"
            self._handle_error(error_msg)
            raise RelayResponseError(error_msg) from e
        except requests.exceptions.RequestException as e:
            error_msg = f"Cannot reach relay at {self.base_url}"
            self._handle_error(error_msg)
            raise RelayClientError(error_msg) from e

        self._consecutive_errors = 0
        self._last_error = None
        return response

    def _handle_error(self, error_msg: str):
        """Track errors for monitoring."""
        self._consecutive_errors += 1
        self._last_error = error_msg
        logger.warning(f"[DEVICE] Error #{self._consecutive_errors}: {error_msg}")

    def get_status(self) -> Dict:
        """Get client health status for monitoring."""
        return {
            "base_url": self.base_url,
            "consecutive_errors": self._consecutive_errors,
            "last_error": self._last_error,
        }


# ============================================================================
# Simulated hardware
# ============================================================================

class SimulatedPump:
    """Mock pump relay."""

    def __init__(self, name: str = "pump"):
        self.name = name
        self._state = False

    def on(self):
        self._state = True
        logger.info(f"[DEVICE] {self.name} → ON")

    def off(self):
        self._state = False
        logger.info(f"[DEVICE] {self.name} → OFF")

    def is_on(self) -> bool:
        return self._state


class SimulatedSensors:
    """Random readings hovering around the firmware thresholds."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def read_soil(self) -> int:
        return self._rng.randint(990, 1010)

    def read_light(self) -> int:
        return self._rng.randint(1490, 1510)


# ============================================================================
# Device loop
# ============================================================================

class DeviceLoop:
    """One simulated controller."""

    def __init__(self, client: RelayClient,
                 sensors: Optional[SimulatedSensors] = None,
                 pump: Optional[SimulatedPump] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.client = client
        self.sensors = sensors or SimulatedSensors()
        self.pump = pump or SimulatedPump()
        self._clock = clock
        self._sleep = sleep

        # Learned from the relay on each command poll
        self.auto_enabled = False

        self._last_water: Optional[float] = None
        self._last_data: Optional[float] = None
        self._last_command: Optional[float] = None

    @staticmethod
    def _due(last: Optional[float], now: float, interval: float) -> bool:
        return last is None or now - last >= interval

    def water_now(self):
        """Run the pump for one watering cycle."""
        self.pump.on()
        try:
            self._sleep(WATER_TIME_SEC)
        finally:
            self.pump.off()
        self._last_water = self._clock()

    def _push(self, soil: int, light: int, is_watering: bool):
        try:
            self.client.push_reading(soil, light, is_watering)
        except RelayClientError as e:
            logger.error(f"[DEVICE] POST failed: {e}")

    def _check_command(self) -> bool:
        try:
            command = self.client.poll_command()
        except RelayClientError as e:
            logger.error(f"[DEVICE] GET /api/command failed: {e}")
            return False
        if command["auto_enabled"] is not None:
            self.auto_enabled = command["auto_enabled"]
        return command["water_now"]

    def step(self):
        """
        Run one loop iteration.

        Returns:
            True if the pump ran during this iteration
        """
        soil = self.sensors.read_soil()
        light = self.sensors.read_light()
        watered = False
        now = self._clock()

        if (self.auto_enabled
                and soil < SOIL_THRESHOLD
                and self._due(self._last_water, now, WATER_COOLDOWN_SEC)):
            watered = True
            self._push(soil, light, True)
            logger.info("[DEVICE] AUTO watering")
            self.water_now()

        if self._due(self._last_command, now, COMMAND_INTERVAL_SEC):
            self._last_command = now
            if self._check_command():
                watered = True
                self._push(soil, light, True)
                logger.info("[DEVICE] MANUAL watering")
                self.water_now()

        if self._due(self._last_data, now, DATA_INTERVAL_SEC):
            self._last_data = now
            self._push(soil, light, watered)

        return watered

    def run_forever(self, steps: Optional[int] = None):
        """Loop until interrupted, or for a fixed number of steps."""
        count = 0
        while steps is None or count < steps:
            self.step()
            count += 1
            self._sleep(LOOP_DELAY_SEC)
