"""Row view of a route: display order, distances and unsaved-cell markers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from ...config import settings
from ...models.domain import DeliveryPoint, Route, SavedRowOrder
from ..geospatial import RowDistance, compute_distances, format_km, has_coordinates
from .ordering import Ordering, distance_mode_for, is_active_today, order_points


@dataclass(slots=True)
class ListingRow:
    number: int
    point: DeliveryPoint
    active_today: bool
    distance: Optional[RowDistance]
    km: Optional[str]
    pending_fields: List[str] = field(default_factory=list)


def build_route_listing(
    route: Route,
    ordering: Ordering | None = None,
    *,
    saved_orders: Iterable[SavedRowOrder] = (),
    origin: tuple[float, float] | None = None,
    pending: Iterable[tuple[str, str]] = (),
    today: date | None = None,
) -> list[ListingRow]:
    """Order a route's points and annotate each row for display.

    Rows without coordinates keep their place in the distance chain but get
    no distance or ``km`` text.
    """

    today = today or date.today()
    origin = origin or settings.origin
    points = order_points(route.delivery_points, ordering, saved_orders=saved_orders, today=today)
    distances = compute_distances(points, origin, distance_mode_for(ordering))

    pending_by_code: dict[str, list[str]] = {}
    for code, field_name in pending:
        pending_by_code.setdefault(code, []).append(field_name)

    rows: list[ListingRow] = []
    for number, (point, distance) in enumerate(zip(points, distances), start=1):
        located = has_coordinates(point)
        rows.append(
            ListingRow(
                number=number,
                point=point,
                active_today=is_active_today(point.delivery, today),
                distance=distance if located else None,
                km=format_km(distance.display) if located else None,
                pending_fields=sorted(pending_by_code.get(point.code, [])),
            )
        )
    return rows
