"""Domain models for routes, delivery points and saved row orders."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class DeliveryType(str, Enum):
    """Delivery schedule of a point."""

    DAILY = "Daily"
    WEEKDAY = "Weekday"
    ALT_1 = "Alt 1"
    ALT_2 = "Alt 2"


@dataclass(slots=True)
class Description:
    key: str
    value: str


@dataclass(slots=True)
class DeliveryPoint:
    """A single stop, identified by a code unique across all routes."""

    code: str
    name: str
    delivery: DeliveryType
    latitude: float
    longitude: float
    descriptions: List[Description] = field(default_factory=list)
    qr_code_image_url: Optional[str] = None
    qr_code_destination_url: Optional[str] = None


@dataclass(slots=True)
class Route:
    """A named delivery route owning an ordered list of delivery points."""

    id: str
    name: str
    code: str
    shift: str = "AM"
    delivery_points: List[DeliveryPoint] = field(default_factory=list)
    updated_at: Optional[datetime] = None


@dataclass(slots=True)
class SavedRowOrder:
    """A user-defined ordering of delivery point codes."""

    id: str
    label: str
    order: List[str] = field(default_factory=list)


@dataclass(slots=True)
class RouteNote:
    """A free-form note or changelog line attached to a route."""

    id: str
    route_id: str
    type: str
    text: str
    created_at: Optional[datetime] = None
