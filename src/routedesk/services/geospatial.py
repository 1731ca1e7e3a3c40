"""Geospatial helper functions for the delivery point list."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal, Sequence

from ..models.domain import DeliveryPoint

EARTH_RADIUS_KM = 6371.0

DistanceMode = Literal["direct", "chain"]


@dataclass(slots=True)
class RowDistance:
    display: float
    segment: float


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def has_coordinates(point: DeliveryPoint) -> bool:
    """Return False for the (0, 0) placeholder used when a point has no location."""

    return not (point.latitude == 0 and point.longitude == 0)


def compute_distances(
    points: Sequence[DeliveryPoint],
    origin: tuple[float, float],
    mode: DistanceMode = "direct",
) -> list[RowDistance]:
    """Annotate points, in display order, with their distances in km.

    In ``direct`` mode every row is measured from ``origin`` on its own. In
    ``chain`` mode each row is measured from the previous row (the first from
    ``origin``) and ``display`` carries the running total, modelling a visit
    in the displayed order.
    """

    if mode not in ("direct", "chain"):
        raise ValueError(f"Unknown distance mode '{mode}'.")

    origin_lat, origin_lon = origin
    distances: list[RowDistance] = []
    prev_lat, prev_lon = origin_lat, origin_lon
    total = 0.0
    for point in points:
        if mode == "direct":
            km = haversine_km(origin_lat, origin_lon, point.latitude, point.longitude)
            distances.append(RowDistance(display=km, segment=km))
            continue
        segment = haversine_km(prev_lat, prev_lon, point.latitude, point.longitude)
        total += segment
        distances.append(RowDistance(display=total, segment=segment))
        prev_lat, prev_lon = point.latitude, point.longitude
    return distances


def format_km(value: float) -> str:
    """Render a distance with one decimal, dropping a trailing ``.0``."""

    # Ties round up, not to even
    rounded = Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    if rounded == rounded.to_integral_value():
        return f"{int(rounded)} Km"
    return f"{rounded} Km"
