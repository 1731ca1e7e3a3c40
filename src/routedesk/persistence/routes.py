"""Database persistence for the route collection."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import DeliveryPoint, DeliveryType, Description, Route
from ..services.routes.errors import PersistenceError

logger = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.warning(f"Ignoring unparseable timestamp {value!r}")
        return None


def _float_or_zero(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def point_from_record(record: dict[str, Any]) -> DeliveryPoint:
    """Build a delivery point from its stored JSON form."""
    raw_delivery = record.get("delivery") or DeliveryType.DAILY.value
    try:
        delivery = DeliveryType(raw_delivery)
    except ValueError:
        logger.warning(f"Unknown delivery type {raw_delivery!r} for point {record.get('code')}, using Daily")
        delivery = DeliveryType.DAILY

    descriptions = [
        Description(key=str(item.get("key", "")), value=str(item.get("value", "")))
        for item in record.get("descriptions") or []
        if isinstance(item, dict)
    ]
    # Older rows carry a single free-text description
    legacy = record.get("description")
    if not descriptions and legacy:
        descriptions = [Description(key="Description", value=str(legacy))]

    return DeliveryPoint(
        code=str(record.get("code", "")),
        name=str(record.get("name", "")),
        delivery=delivery,
        latitude=_float_or_zero(record.get("latitude")),
        longitude=_float_or_zero(record.get("longitude")),
        descriptions=descriptions,
        qr_code_image_url=record.get("qrCodeImageUrl") or None,
        qr_code_destination_url=record.get("qrCodeDestinationUrl") or None,
    )


def point_to_record(point: DeliveryPoint) -> dict[str, Any]:
    record: dict[str, Any] = {
        "code": point.code,
        "name": point.name,
        "delivery": point.delivery.value,
        "latitude": point.latitude,
        "longitude": point.longitude,
        "descriptions": [{"key": item.key, "value": item.value} for item in point.descriptions],
    }
    if point.qr_code_image_url:
        record["qrCodeImageUrl"] = point.qr_code_image_url
    if point.qr_code_destination_url:
        record["qrCodeDestinationUrl"] = point.qr_code_destination_url
    return record


def route_from_row(row: dict[str, Any]) -> Route:
    return Route(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        code=str(row.get("code") or ""),
        shift=str(row.get("shift") or "AM"),
        delivery_points=[
            point_from_record(item) for item in row.get("delivery_points") or [] if isinstance(item, dict)
        ],
        updated_at=parse_timestamp(row.get("updated_at")),
    )


def route_to_row(route: Route) -> dict[str, Any]:
    return {
        "id": route.id,
        "name": route.name,
        "code": route.code,
        "shift": route.shift,
        "delivery_points": [point_to_record(point) for point in route.delivery_points],
    }


def load_routes() -> list[Route]:
    """Fetch the full route collection, oldest route first.

    Returns an empty list when Supabase is not configured. Query failures
    raise ``PersistenceError`` so an unreadable table is never mistaken for
    an empty one.
    """
    supabase = get_supabase_client()
    if not supabase:
        logger.warning("Supabase not configured - starting with an empty route list")
        return []

    try:
        response = supabase.table(settings.routes_table).select("*").order("created_at").execute()
    except Exception as e:
        logger.error(f"Failed to load routes from database: {e}")
        raise PersistenceError(f"Failed to load routes: {e}") from e

    routes = []
    for row in response.data or []:
        try:
            routes.append(route_from_row(row))
        except (KeyError, TypeError) as e:
            logger.warning(f"Skipping malformed route row {row.get('id', 'unknown')}: {e}")
    return routes


def save_routes(routes: Sequence[Route]) -> None:
    """Replace the stored route collection with ``routes``.

    Every route is upserted by id, then rows whose id is no longer present
    are deleted.
    """
    supabase = get_supabase_client()
    if not supabase:
        raise PersistenceError("Supabase not configured - routes cannot be saved")

    now = datetime.now(timezone.utc).isoformat()
    rows = [{**route_to_row(route), "updated_at": now} for route in routes]
    ids = [route.id for route in routes]

    try:
        if rows:
            supabase.table(settings.routes_table).upsert(rows, on_conflict="id").execute()
        if ids:
            supabase.table(settings.routes_table).delete().not_.in_("id", ids).execute()
        else:
            supabase.table(settings.routes_table).delete().neq("id", "").execute()
    except Exception as e:
        logger.error(f"Failed to save routes to database: {e}")
        raise PersistenceError(f"Failed to save routes: {e}") from e

    logger.info(f"Saved {len(rows)} routes to database")
