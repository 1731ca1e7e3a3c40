"""Route editing endpoints."""

from __future__ import annotations

import logging
import uuid
from typing import List, Literal, Optional

from fastapi import APIRouter, HTTPException, Query, status

from ...models.domain import Route
from ...schemas.routes import (
    CommitResponse,
    DeliveryPointModel,
    DeliveryPointPatch,
    MovePointRequest,
    PendingMarkerModel,
    RouteCreateRequest,
    RouteModel,
    RouteRowModel,
    RouteRowsResponse,
    RouteUpdateRequest,
    SessionStatusResponse,
)
from ...services.routes import registry
from ...services.routes.errors import RouteEngineError
from ...services.routes.listing import build_route_listing
from ...services.routes.ordering import ColumnSort, DefaultOrdering, SavedOrderOrdering, distance_mode_for
from ...services.routes.session import EditSession
from .errors import http_error

router = APIRouter(prefix="/routes", tags=["routes"])


def _session_status(session: EditSession) -> SessionStatusResponse:
    return SessionStatusResponse(
        state=session.state.value,
        hasUnsavedChanges=session.has_unsaved_changes,
        pending=[PendingMarkerModel(code=code, field=name) for code, name in sorted(session.pending)],
    )


def _session() -> EditSession:
    try:
        return registry.get_edit_session()
    except RouteEngineError as exc:
        raise http_error(exc) from exc


@router.get("", response_model=List[RouteModel])
def list_routes(
    refresh: bool = Query(default=False, description="Reload from the database when not editing."),
) -> List[RouteModel]:
    session = _session()
    try:
        if refresh and not session.is_editing:
            session.reload(registry.load_routes())
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return [RouteModel.from_domain(route) for route in session.working_set]


@router.get("/session", response_model=SessionStatusResponse)
def session_status() -> SessionStatusResponse:
    return _session_status(_session())


@router.post("/session/enter", response_model=SessionStatusResponse)
def enter_edit_mode() -> SessionStatusResponse:
    session = _session()
    session.enter()
    return _session_status(session)


@router.post("/session/discard", response_model=SessionStatusResponse)
def discard_changes() -> SessionStatusResponse:
    session = _session()
    session.discard()
    return _session_status(session)


@router.post("/session/commit", response_model=CommitResponse)
def commit_changes() -> CommitResponse:
    session = _session()
    try:
        result = session.commit()
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    except Exception as exc:
        logging.exception(f"Error saving routes: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save routes: {str(exc)}",
        ) from exc
    return CommitResponse(changes=result.changes, changelogWritten=result.changelog_written)


@router.post("", response_model=RouteModel, status_code=status.HTTP_201_CREATED)
def create_route(payload: RouteCreateRequest) -> RouteModel:
    session = _session()
    route = Route(
        id=(payload.id or "").strip() or uuid.uuid4().hex,
        name=payload.name.strip(),
        code=payload.code.strip(),
        shift=payload.shift.strip() or "AM",
        delivery_points=[point.to_domain() for point in payload.deliveryPoints],
    )
    try:
        session.add_route(route)
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return RouteModel.from_domain(route)


@router.patch("/{route_id}", response_model=RouteModel)
def update_route(route_id: str, payload: RouteUpdateRequest) -> RouteModel:
    session = _session()
    try:
        route = session.update_route(route_id, **payload.model_dump(exclude_unset=True))
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return RouteModel.from_domain(route)


@router.delete("/{route_id}", status_code=status.HTTP_200_OK)
def delete_route(route_id: str) -> dict:
    session = _session()
    try:
        route = session.remove_route(route_id)
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return {"success": True, "message": f'Route "{route.name}" removed'}


@router.get("/{route_id}/rows", response_model=RouteRowsResponse)
def route_rows(
    route_id: str,
    sort: Optional[Literal["code", "name", "delivery"]] = Query(default=None),
    direction: Literal["asc", "desc"] = Query(default="asc"),
    order_id: Optional[str] = Query(default=None, description="Saved row order to apply."),
) -> RouteRowsResponse:
    """Delivery points of a route in display order with their distances."""
    session = _session()
    if order_id:
        ordering = SavedOrderOrdering(order_id)
    elif sort:
        ordering = ColumnSort(sort, direction)
    else:
        ordering = DefaultOrdering()

    try:
        route = session.get_route(route_id)
        rows = build_route_listing(
            route,
            ordering,
            saved_orders=registry.get_saved_order_store().load_saved_orders(),
            pending=session.pending,
        )
    except RouteEngineError as exc:
        raise http_error(exc) from exc

    return RouteRowsResponse(
        routeId=route_id,
        mode=distance_mode_for(ordering),
        rows=[
            RouteRowModel(
                number=row.number,
                point=DeliveryPointModel.from_domain(row.point),
                activeToday=row.active_today,
                distanceKm=row.distance.display if row.distance else None,
                segmentKm=row.distance.segment if row.distance else None,
                km=row.km,
                pendingFields=row.pending_fields,
            )
            for row in rows
        ],
    )


@router.post("/{route_id}/points", response_model=DeliveryPointModel, status_code=status.HTTP_201_CREATED)
def add_point(
    route_id: str,
    payload: DeliveryPointModel,
    index: Optional[int] = Query(default=None, ge=0),
) -> DeliveryPointModel:
    session = _session()
    try:
        point = session.add_point(route_id, payload.to_domain(), index=index)
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return DeliveryPointModel.from_domain(point)


@router.patch("/points/{code}", response_model=DeliveryPointModel)
def edit_point(code: str, payload: DeliveryPointPatch) -> DeliveryPointModel:
    """Apply the sent fields as cell edits; a rejected field leaves the point untouched."""
    session = _session()
    try:
        point = session.update_point(code, **payload.changed_fields())
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return DeliveryPointModel.from_domain(point)


@router.delete("/points/{code}", status_code=status.HTTP_200_OK)
def remove_point(code: str) -> dict:
    session = _session()
    try:
        point = session.remove_point(code)
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return {"success": True, "message": f"Delivery point {point.code} removed"}


@router.post("/points/{code}/move", response_model=RouteModel)
def move_point(code: str, payload: MovePointRequest) -> RouteModel:
    session = _session()
    try:
        session.move_point(code, payload.toRouteId, index=payload.index)
        route = session.get_route(payload.toRouteId)
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return RouteModel.from_domain(route)
