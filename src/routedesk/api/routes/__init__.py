"""Route group exports."""

from . import health, notes, orders, routes

__all__ = ["health", "notes", "orders", "routes"]
