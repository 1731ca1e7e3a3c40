"""Saved row order endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, status

from ...schemas.routes import (
    PositionDraftRequest,
    PositionDraftResponse,
    PositionRowModel,
    SavedOrderModel,
    SavedOrderRenameRequest,
)
from ...services.routes import registry
from ...services.routes.errors import RouteEngineError
from ...services.routes.ordering import RowPositionEditor, delete_saved_order, rename_saved_order
from .errors import http_error

router = APIRouter(prefix="/orders", tags=["orders"])


def _editor_for(payload: PositionDraftRequest) -> RowPositionEditor:
    route = registry.get_edit_session().get_route(payload.routeId)
    editor = RowPositionEditor(route.delivery_points)
    # Rows the client did not send start blank
    for row in editor.rows:
        row.position = ""
    for item in payload.positions:
        editor.set_position(item.code, item.position)
    return editor


@router.get("", response_model=List[SavedOrderModel])
def list_saved_orders() -> List[SavedOrderModel]:
    orders = registry.get_saved_order_store().load_saved_orders()
    return [SavedOrderModel.from_domain(order) for order in orders]


@router.post("/apply", response_model=PositionDraftResponse)
def apply_positions(payload: PositionDraftRequest) -> PositionDraftResponse:
    """Validate a position draft and return it sorted and renumbered."""
    try:
        rows = _editor_for(payload).apply_positions()
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return PositionDraftResponse(
        rows=[PositionRowModel(code=row.code, name=row.name, position=row.position) for row in rows]
    )


@router.post("", response_model=SavedOrderModel, status_code=status.HTTP_201_CREATED)
def save_order(payload: PositionDraftRequest) -> SavedOrderModel:
    try:
        saved = _editor_for(payload).save_order(registry.get_saved_order_store(), label=payload.label)
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return SavedOrderModel.from_domain(saved)


@router.patch("/{order_id}", response_model=SavedOrderModel)
def rename_order(order_id: str, payload: SavedOrderRenameRequest) -> SavedOrderModel:
    try:
        order = rename_saved_order(registry.get_saved_order_store(), order_id, payload.label)
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return SavedOrderModel.from_domain(order)


@router.delete("/{order_id}", status_code=status.HTTP_200_OK)
def delete_order(order_id: str) -> dict:
    try:
        delete_saved_order(registry.get_saved_order_store(), order_id)
    except RouteEngineError as exc:
        raise http_error(exc) from exc
    return {"success": True, "message": f"Saved order {order_id} deleted"}
