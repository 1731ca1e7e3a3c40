"""Route notes and changelog endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...persistence import route_notes
from ...schemas.notes import RouteNoteCreateRequest, RouteNoteModel, RouteNotesResponse
from ...services.routes.errors import NotFoundError, RouteEngineError
from .errors import http_error

router = APIRouter(prefix="/routes", tags=["notes"])


@router.get("/{route_id}/notes", response_model=RouteNotesResponse)
def get_route_notes(route_id: str) -> RouteNotesResponse:
    try:
        result = route_notes.list_route_notes(route_id)
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return RouteNotesResponse(
        notes=[RouteNoteModel.from_domain(note) for note in result.notes],
        changelog=[RouteNoteModel.from_domain(note) for note in result.changelog],
    )


@router.post("/{route_id}/notes", response_model=RouteNoteModel, status_code=status.HTTP_201_CREATED)
def add_route_note(route_id: str, payload: RouteNoteCreateRequest) -> RouteNoteModel:
    try:
        note = route_notes.add_route_note(route_id, payload.text.strip())
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return RouteNoteModel.from_domain(note)


@router.delete("/notes/{note_id}", status_code=status.HTTP_200_OK)
def delete_route_note(note_id: str) -> dict:
    try:
        if not route_notes.delete_route_note(note_id):
            raise NotFoundError(f"Note {note_id} not found")
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return {"success": True, "message": f"Note {note_id} deleted"}
