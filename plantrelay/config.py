"""
Configuration settings for the plant watering relay.
"""
import os
import logging

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# ============================================================================
# Server Configuration
# ============================================================================

# Bind address for the relay server
HOST = os.environ.get("PLANTRELAY_HOST", "0.0.0.0")
PORT = int(os.environ.get("PLANTRELAY_PORT", "3000"))

SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")

# Log file written next to the process working directory
LOG_FILE = os.environ.get("PLANTRELAY_LOG_FILE", "plantrelay.log")

# ============================================================================
# Command State
# ============================================================================

# Automation mode at process start
DEFAULT_AUTO_ENABLED = _env_bool("PLANTRELAY_AUTO_DEFAULT", True)

# ============================================================================
# Dashboard Assets
# ============================================================================

WEB_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")

# ============================================================================
# Device Simulator Configuration
# ============================================================================

# Where the simulated device sends its readings
RELAY_URL = os.environ.get("PLANTRELAY_URL", "http://127.0.0.1:3000")

# HTTP request timeout for the device (seconds)
DEVICE_TIMEOUT = 5.0

# Raw soil reading below which the soil counts as dry
SOIL_THRESHOLD = 1000

# Pump run time per watering (seconds)
WATER_TIME_SEC = 5.0

# Minimum gap between automatic waterings (seconds)
WATER_COOLDOWN_SEC = 60.0

# How often the device pushes a reading (seconds)
DATA_INTERVAL_SEC = 5.0

# How often the device polls for commands (seconds)
COMMAND_INTERVAL_SEC = 0.5

# Sleep between device loop iterations (seconds)
LOOP_DELAY_SEC = 1.0

# ============================================================================
# Logging
# ============================================================================

logger.info("=" * 60)
logger.info("Configuration loaded from: %s", __file__)
logger.info("Bind address: %s:%s", HOST, PORT)
logger.info("Default auto mode: %s", DEFAULT_AUTO_ENABLED)
logger.info("Dashboard assets: %s", WEB_DIR)
logger.info("=" * 60)
