"""Route modules for calendarfilter_lite server."""

from .filter_routes import register_filter_routes

__all__ = ["register_filter_routes"]
