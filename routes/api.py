"""
API routes.

Handles:
- /health - Health check endpoint
"""

from flask import Blueprint, current_app


api_bp = Blueprint("api", __name__)


@api_bp.route("/health", methods=["GET"])
def health():
    """Liveness check with the number of open buy screens."""
    registry = current_app.config.get("SCREEN_REGISTRY")
    return {
        "status": "ok",
        "open_screens": len(registry) if registry is not None else 0,
        "booking_api": current_app.config.get("BOOKING_API_BASE_URL"),
    }
