"""
Configuration for TicketBookingWeb.

All settings come from environment variables (optionally from a .env file).
The booking service itself is external; only its address, timeout and the
names of the auth cookies to forward are configured here.
"""

import os

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)


def _split_names(value: str) -> tuple:
    return tuple(name.strip() for name in value.split(",") if name.strip())


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    SESSION_COOKIE_NAME = "ticket_booking_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Booking service
    # ==========================================================================
    # BOOKING_API_BASE_URL: root of the REST service that owns events,
    #   ticket inventory and bookings
    # BOOKING_API_TIMEOUT: seconds before any single call is abandoned
    # BOOKING_API_AUTH_COOKIES: comma-separated names of the browser cookies
    #   that carry the user's login; they are forwarded on every call
    # ==========================================================================
    BOOKING_API_BASE_URL = os.environ.get(
        "BOOKING_API_BASE_URL", "http://localhost:3001"
    )
    BOOKING_API_TIMEOUT = float(
        os.environ.get("BOOKING_API_TIMEOUT", "10")
    )
    BOOKING_API_AUTH_COOKIES = _split_names(
        os.environ.get("BOOKING_API_AUTH_COOKIES", "token")
    )

    # Bookings run in their own thread (False = inline, used by tests)
    SUBMIT_ASYNC = True

    # Unused screens are reclaimed after this many seconds
    SCREEN_IDLE_TIMEOUT = float(
        os.environ.get("SCREEN_IDLE_TIMEOUT", "1800")
    )

    # Language for notifications ('vi' or 'en')
    DEFAULT_LANGUAGE = os.environ.get("DEFAULT_LANGUAGE", "vi")


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 3600  # 1 hour


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    SECRET_KEY = "testing-secret-key"
    BOOKING_API_BASE_URL = "http://booking.test"
    DEFAULT_LANGUAGE = "en"
    SUBMIT_ASYNC = False
