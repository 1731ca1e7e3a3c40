"""Route notes and changelog persistence."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, List

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import RouteNote
from ..services.routes.errors import ChangelogWriteError, PersistenceError
from .routes import parse_timestamp

logger = logging.getLogger(__name__)

NOTE = "note"
CHANGELOG = "changelog"


@dataclass(slots=True)
class RouteNotes:
    notes: List[RouteNote] = field(default_factory=list)
    changelog: List[RouteNote] = field(default_factory=list)


def _note_from_row(row: dict[str, Any]) -> RouteNote:
    return RouteNote(
        id=str(row["id"]),
        route_id=str(row["route_id"]),
        type=str(row.get("type") or NOTE),
        text=str(row.get("text") or ""),
        created_at=parse_timestamp(row.get("created_at")),
    )


def append_changelog_entry(route_id: str, text: str) -> None:
    """Record one changelog line against a route.

    Raises ``ChangelogWriteError`` on any failure; callers treat the
    changelog as best effort.
    """
    supabase = get_supabase_client()
    if not supabase:
        raise ChangelogWriteError("Supabase not configured")

    try:
        supabase.table(settings.route_notes_table).insert(
            {"id": uuid.uuid4().hex, "route_id": route_id, "type": CHANGELOG, "text": text}
        ).execute()
    except Exception as e:
        raise ChangelogWriteError(str(e)) from e


def list_route_notes(route_id: str) -> RouteNotes:
    """Notes and changelog of a route, newest first."""
    supabase = get_supabase_client()
    if not supabase:
        logger.warning("Supabase not configured - no route notes available")
        return RouteNotes()

    table = settings.route_notes_table
    try:
        notes = (
            supabase.table(table)
            .select("*")
            .eq("route_id", route_id)
            .eq("type", NOTE)
            .order("created_at", desc=True)
            .execute()
        )
        changelog = (
            supabase.table(table)
            .select("*")
            .eq("route_id", route_id)
            .eq("type", CHANGELOG)
            .order("created_at", desc=True)
            .limit(settings.changelog_limit)
            .execute()
        )
    except Exception as e:
        logger.error(f"Failed to load notes for route {route_id}: {e}")
        raise PersistenceError(f"Failed to load route notes: {e}") from e

    return RouteNotes(
        notes=[_note_from_row(row) for row in notes.data or []],
        changelog=[_note_from_row(row) for row in changelog.data or []],
    )


def add_route_note(route_id: str, text: str) -> RouteNote:
    supabase = get_supabase_client()
    if not supabase:
        raise PersistenceError("Supabase not configured - notes cannot be saved")

    note = RouteNote(id=uuid.uuid4().hex, route_id=route_id, type=NOTE, text=text)
    try:
        response = (
            supabase.table(settings.route_notes_table)
            .insert({"id": note.id, "route_id": route_id, "type": NOTE, "text": text})
            .execute()
        )
    except Exception as e:
        logger.error(f"Failed to add note to route {route_id}: {e}")
        raise PersistenceError(f"Failed to add note: {e}") from e

    if response.data:
        return _note_from_row(response.data[0])
    return note


def delete_route_note(note_id: str) -> bool:
    """Delete a note; changelog lines cannot be deleted."""
    supabase = get_supabase_client()
    if not supabase:
        raise PersistenceError("Supabase not configured - notes cannot be deleted")

    try:
        response = (
            supabase.table(settings.route_notes_table)
            .delete()
            .eq("id", note_id)
            .eq("type", NOTE)
            .execute()
        )
    except Exception as e:
        logger.error(f"Failed to delete note {note_id}: {e}")
        raise PersistenceError(f"Failed to delete note: {e}") from e
    return bool(response.data)
