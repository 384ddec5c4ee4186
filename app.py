"""
TicketBookingWeb - Flask Application Entry Point.

This is a slim app factory that:
1. Configures logging
2. Creates the booking API client factory
3. Creates the screen registry (one buy screen per browser session)
4. Registers route blueprints
5. Sets up error handlers and the language switch

ARCHITECTURE:
    Main Thread
    ├── Flask request handling
    └── Cleanup on shutdown (wait for in-flight bookings)

    Loader Threads (two per screen load, joined before the request returns)
    └── Event details and ticket list, each with OWN API client

    Booking Threads (one per submission)
    └── Each with OWN API client, outcome routed back via the registry

NO SHARED API CLIENTS between threads.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, flash, redirect, request, session, url_for
from werkzeug.exceptions import InternalServerError, NotFound

from logging_config import setup_logging, get_logger
from core.api_client import BookingAPIClientFactory
from services.screen_registry import ScreenRegistry
from routes import register_blueprints
from modules.i18n import get_supported_languages, resolve_language, translate


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In PyInstaller bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def create_app(
    config_object: str = "config.Config",
    client_factory: Optional[BookingAPIClientFactory] = None
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Import path of the config class
        client_factory: Booking API client factory; built from config when omitted

    Returns:
        Configured Flask application
    """
    # Load .env from base path (next to executable in production)
    base_path = _get_base_path()
    env_file = base_path / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    # Create Flask app
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        app_name="ticket_booking_web",
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting TicketBookingWeb in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    if client_factory is None:
        client_factory = BookingAPIClientFactory(
            app.config["BOOKING_API_BASE_URL"],
            timeout=app.config.get("BOOKING_API_TIMEOUT", 10.0),
        )
    app.config["API_CLIENT_FACTORY"] = client_factory
    logger.info(f"Booking API at {client_factory.base_url}")

    screen_registry = ScreenRegistry(
        idle_timeout_seconds=app.config.get("SCREEN_IDLE_TIMEOUT")
    )
    app.config["SCREEN_REGISTRY"] = screen_registry

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")
        screen_registry.shutdown()
        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    def _current_language() -> str:
        return resolve_language(session.get("language", app.config.get("DEFAULT_LANGUAGE")))

    @app.errorhandler(NotFound)
    def handle_not_found(e):
        flash(translate("screen.page_not_found", lang=_current_language()), "warning")
        return redirect(url_for("main.index"))

    @app.errorhandler(InternalServerError)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        flash(translate("screen.unexpected_error", lang=_current_language()), "error")
        return redirect(url_for("main.index"))

    # =========================================================================
    # LANGUAGE ROUTE
    # =========================================================================

    @app.route("/set_language/<lang>", methods=["GET"])
    def set_language(lang: str):
        languages = get_supported_languages()
        if lang in languages:
            session["language"] = lang
            session.modified = True

            # The open buy screen speaks the new language from now on
            screen = screen_registry.get(session.get("screen_id"))
            if screen is not None:
                screen.machine.lang = lang

            flash(translate("screen.language_changed", lang=lang, name=languages[lang]["name"]), "success")
        else:
            flash(translate("screen.unsupported_language", lang=_current_language(), code=lang), "error")
        return redirect(request.referrer or url_for("main.index"))

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)
