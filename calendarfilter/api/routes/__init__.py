"""Route modules for calendarfilter server."""

from .filter_routes import register_filter_routes

__all__ = [
    "register_filter_routes",
]
