"""
Flask views/routes for the device endpoints and the operator dashboard.
"""
import logging
from datetime import datetime, timezone

from flask import (
    Blueprint,
    Response,
    current_app,
    jsonify,
    request,
    send_from_directory,
)

from .payloads import PayloadError, parse_auto_payload, parse_sensor_payload

logger = logging.getLogger(__name__)

bp = Blueprint("main", __name__)


# ============================================================================
# Helper Functions
# ============================================================================

def _stores():
    return current_app.extensions["plantrelay"]


def _json_body():
    """Parsed JSON body, or None if the body is not JSON."""
    return request.get_json(force=True, silent=True)


def _bad_request(message: str):
    logger.warning(f"[VIEWS] Rejected {request.method} {request.path}: {message}")
    return jsonify({"error": message}), 400


# ============================================================================
# Dashboard Assets
# ============================================================================

@bp.route("/")
def index():
    """Main dashboard page."""
    return send_from_directory(current_app.config["WEB_DIR"], "index.html")


@bp.route("/styles.css")
def styles():
    return send_from_directory(
        current_app.config["WEB_DIR"], "styles.css", mimetype="text/css"
    )


@bp.route("/scripts.js")
def scripts():
    return send_from_directory(
        current_app.config["WEB_DIR"], "scripts.js", mimetype="application/javascript"
    )


# ============================================================================
# Device Routes
# ============================================================================

@bp.route("/sensor", methods=["POST"])
def receive_sensor():
    """Store a reading pushed by the device."""
    try:
        reading = parse_sensor_payload(_json_body())
    except PayloadError as e:
        return _bad_request(str(e))

    logger.info(f"[VIEWS] Payload: {reading}")
    _stores()["snapshots"].write(
        reading["soil"], reading["light"], reading["is_watering"]
    )
    return Response("OK", status=200, mimetype="text/plain")


@bp.route("/api/command")
def get_command():
    """Hand the pending command to the device and clear it."""
    result = _stores()["commands"].consume_command()
    return jsonify(result.to_dict())


# ============================================================================
# Dashboard API Routes
# ============================================================================

@bp.route("/api/latest")
def latest():
    """Latest reading as JSON, or null before the first push."""
    snap = _stores()["snapshots"].read()
    return jsonify(snap.to_dict() if snap is not None else None)


@bp.route("/api/water", methods=["POST"])
def trigger_water():
    """Arm a one-shot manual watering."""
    _stores()["commands"].trigger_manual_water()
    return "", 200


@bp.route("/api/auto", methods=["POST"])
def set_auto():
    """Switch automation mode."""
    try:
        enabled = parse_auto_payload(_json_body())
    except PayloadError as e:
        return _bad_request(str(e))

    _stores()["commands"].set_auto_enabled(enabled)
    return "", 200


@bp.route("/api/status")
def api_status():
    """
    Get relay status as JSON without consuming any command.

    'latest.auto_enabled' is the mode captured with the reading and can differ
    from 'command.auto_enabled', which is the live mode.
    """
    stores = _stores()
    snap = stores["snapshots"].read()
    return jsonify({
        "latest": snap.to_dict() if snap is not None else None,
        "command": stores["commands"].peek(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


# ============================================================================
# Error Handlers
# ============================================================================

@bp.app_errorhandler(404)
def not_found(error):
    """Handle 404 errors."""
    return jsonify({"error": "Not found"}), 404


@bp.app_errorhandler(405)
def method_not_allowed(error):
    return jsonify({"error": "Method not allowed"}), 405


@bp.app_errorhandler(500)
def internal_error(error):
    """Handle 500 errors."""
    original = getattr(error, "original_exception", None) or error
    logger.error("[VIEWS] Internal server error", exc_info=original)
    return jsonify({"error": "Internal server error"}), 500
