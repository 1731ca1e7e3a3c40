"""Route notes schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import RouteNote


class RouteNoteModel(BaseModel):
    id: str
    routeId: str
    text: str
    createdAt: Optional[datetime] = None

    @classmethod
    def from_domain(cls, note: RouteNote) -> "RouteNoteModel":
        return cls(id=note.id, routeId=note.route_id, text=note.text, createdAt=note.created_at)


class RouteNotesResponse(BaseModel):
    notes: List[RouteNoteModel]
    changelog: List[RouteNoteModel]


class RouteNoteCreateRequest(BaseModel):
    text: str = Field(..., min_length=1)
