"""Helper modules for the Ticket Booking Web application."""

__all__ = [
    "i18n",
    "selection_machine",
]
