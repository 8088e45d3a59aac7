"""
Shared relay state: the latest sensor snapshot and the pending device command.
Thread-safe state management for concurrent access.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Condition, Lock
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Thread synchronization primitives
# ============================================================================

class ReadWriteLock:
    """
    Many readers or one writer.

    Once a writer is waiting, new readers block until it has finished so a
    steady stream of dashboard polls cannot starve a sensor push.
    """

    def __init__(self):
        self._cond = Condition(Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self):
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self):
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self):
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self):
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


# ============================================================================
# Value types
# ============================================================================

@dataclass(frozen=True)
class SensorSnapshot:
    """One sensor reading as pushed by the device."""

    soil: int
    light: int
    is_watering: bool
    auto_enabled: bool
    captured_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation used by /api/latest."""
        return {
            "soil": self.soil,
            "light": self.light,
            "is_watering": self.is_watering,
            "auto_enabled": self.auto_enabled,
            "updated_at": self.captured_at.isoformat(),
        }


@dataclass(frozen=True)
class CommandResult:
    """What the device learns from one command poll."""

    water_now: bool
    auto_enabled: bool

    def to_dict(self) -> Dict[str, bool]:
        return {"water_now": self.water_now, "auto_enabled": self.auto_enabled}


# ============================================================================
# Command state
# ============================================================================

class CommandStore:
    """
    Pending manual watering flag plus the automation mode.

    The manual flag is edge-triggered: set by the operator, handed to exactly
    one device poll by consume_command(), then cleared.
    """

    def __init__(self, auto_enabled: bool = True):
        self._lock = Lock()
        self._manual_water_pending = False
        self._auto_enabled = auto_enabled

    def trigger_manual_water(self):
        """Arm a one-shot watering. Repeated triggers do not queue."""
        with self._lock:
            already = self._manual_water_pending
            self._manual_water_pending = True
        if already:
            logger.info("[STATE] Manual watering already pending")
        else:
            logger.info("[STATE] Manual watering armed")

    def set_auto_enabled(self, enabled: bool):
        """Switch automation mode on or off."""
        with self._lock:
            self._auto_enabled = enabled
        logger.info(f"[STATE] Set auto_enabled = {enabled}")

    def consume_command(self) -> CommandResult:
        """
        Read and clear the pending manual command in one step.

        Returns:
            CommandResult with water_now=True for at most one caller per trigger
        """
        with self._lock:
            result = CommandResult(
                water_now=self._manual_water_pending,
                auto_enabled=self._auto_enabled,
            )
            self._manual_water_pending = False
        if result.water_now:
            logger.info("[STATE] Manual watering delivered to device")
        return result

    def is_auto_enabled(self) -> bool:
        with self._lock:
            return self._auto_enabled

    def peek(self) -> Dict[str, bool]:
        """Get a snapshot of command state without consuming it."""
        with self._lock:
            return {
                "manual_water_pending": self._manual_water_pending,
                "auto_enabled": self._auto_enabled,
            }


# ============================================================================
# Latest sensor snapshot
# ============================================================================

class SnapshotStore:
    """Holds only the most recent sensor reading."""

    def __init__(self, commands: CommandStore,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            commands: Command store the automation mode is copied from
            clock: Returns the capture time; defaults to the current UTC time
        """
        self._commands = commands
        self._clock = clock or utc_now
        self._rwlock = ReadWriteLock()
        self._latest: Optional[SensorSnapshot] = None

    def write(self, soil: int, light: int, is_watering: bool):
        """Replace the stored reading, embedding the current automation mode."""
        # Command lock is released before the snapshot lock is taken
        auto_enabled = self._commands.is_auto_enabled()
        snap = SensorSnapshot(
            soil=soil,
            light=light,
            is_watering=is_watering,
            auto_enabled=auto_enabled,
            captured_at=self._clock(),
        )
        with self._rwlock.write_locked():
            self._latest = snap
        logger.debug(f"[STATE] Stored reading: {snap}")

    def read(self) -> Optional[SensorSnapshot]:
        """Latest reading, or None if the device has not pushed yet."""
        with self._rwlock.read_locked():
            return self._latest
