"""Process-wide edit session and saved order store."""

from __future__ import annotations

from functools import lru_cache

from ...persistence.route_notes import append_changelog_entry
from ...persistence.routes import load_routes, save_routes
from ...persistence.saved_orders import JsonSavedOrderStore, SavedOrderStore
from .session import EditSession


@lru_cache()
def get_edit_session() -> EditSession:
    """The single edit session, seeded from the database on first use."""
    return EditSession(load_routes(), save_routes=save_routes, append_changelog=append_changelog_entry)


@lru_cache()
def get_saved_order_store() -> SavedOrderStore:
    return JsonSavedOrderStore()
