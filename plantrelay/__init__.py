"""
Flask application factory for the plant watering relay.
"""
import logging
from typing import Any, Mapping, Optional

from flask import Flask

from . import config
from .state import CommandStore, SnapshotStore
from .views import bp as main_bp

logger = logging.getLogger(__name__)


def create_app(overrides: Optional[Mapping[str, Any]] = None):
    """
    Create and configure the Flask application.

    Args:
        overrides: Config values applied on top of the module defaults,
            e.g. {"TESTING": True, "DEFAULT_AUTO_ENABLED": False}

    Returns:
        Configured Flask app instance
    """
    app = Flask(__name__)

    # Configure Flask
    app.config["SECRET_KEY"] = config.SECRET_KEY
    app.config["WEB_DIR"] = config.WEB_DIR
    app.config["DEFAULT_AUTO_ENABLED"] = config.DEFAULT_AUTO_ENABLED
    if overrides:
        app.config.update(overrides)

    # Each app owns its own stores
    commands = CommandStore(auto_enabled=app.config["DEFAULT_AUTO_ENABLED"])
    snapshots = SnapshotStore(commands)
    app.extensions["plantrelay"] = {
        "commands": commands,
        "snapshots": snapshots,
    }
    logger.info(
        f"[APP] State initialized (auto_enabled={app.config['DEFAULT_AUTO_ENABLED']})"
    )

    # Register blueprints
    app.register_blueprint(main_bp)
    logger.info("[APP] Registered main blueprint")

    logger.info("[APP] Application created successfully")
    return app
