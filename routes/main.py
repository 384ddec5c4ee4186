"""
Main routes (home, login, tickets).

The buy screen navigates to these. The real pages belong to other parts of
the product; here they only report which page the user landed on and the
messages flashed on the way.
"""

from flask import Blueprint, get_flashed_messages

main_bp = Blueprint("main", __name__)


def _page(name: str) -> dict:
    return {
        "page": name,
        "notifications": [
            {"category": category, "message": message}
            for category, message in get_flashed_messages(with_categories=True)
        ],
    }


@main_bp.route("/")
def index():
    """Home page (event list lives here)."""
    return _page("home")


@main_bp.route("/login", methods=["GET"])
def login():
    """Login page, reached when the session expired during booking."""
    return _page("login")


@main_bp.route("/tickets", methods=["GET"])
def tickets():
    """The user's tickets, reached after a successful booking."""
    return _page("tickets")
