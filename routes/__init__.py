"""
Flask route blueprints for TicketBookingWeb.

This module contains all route handlers organized by functionality:
- main: Home, login and tickets destinations
- buy: The buy-ticket screen
- api: Health check

Each blueprint is registered with the Flask app in create_app().
"""

from .main import main_bp
from .buy import buy_bp
from .api import api_bp

__all__ = [
    "main_bp",
    "buy_bp",
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(main_bp)
    app.register_blueprint(buy_bp)
    app.register_blueprint(api_bp)
