"""Display ordering of a route's delivery points.

Three base orderings are supported: the default natural code order, an
ad-hoc column sort, and a saved row order. Whatever the base ordering,
points delivered today are always grouped ahead of the others.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Literal, Sequence, Union

from ...models.domain import DeliveryPoint, DeliveryType, SavedRowOrder
from ...persistence.saved_orders import SavedOrderStore
from ..geospatial import DistanceMode
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ColumnKey = Literal["code", "name", "delivery"]
SortDirection = Literal["asc", "desc"]

COLUMN_KEYS: tuple[str, ...] = ("code", "name", "delivery")

_DIGIT_RUN = re.compile(r"(\d+)")


@dataclass(frozen=True, slots=True)
class DefaultOrdering:
    pass


@dataclass(frozen=True, slots=True)
class ColumnSort:
    key: ColumnKey
    direction: SortDirection = "asc"

    def __post_init__(self) -> None:
        if self.key not in COLUMN_KEYS:
            raise ValidationError("invalid", f"Cannot sort by '{self.key}'.")
        if self.direction not in ("asc", "desc"):
            raise ValidationError("invalid", f"Unknown sort direction '{self.direction}'.")


@dataclass(frozen=True, slots=True)
class SavedOrderOrdering:
    order_id: str


Ordering = Union[DefaultOrdering, ColumnSort, SavedOrderOrdering]

DEFAULT_ORDERING = DefaultOrdering()


def natural_key(value: str) -> tuple:
    """Sort key comparing digit runs numerically and text case-insensitively."""

    parts = []
    for chunk in _DIGIT_RUN.split(value):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk), ""))
        else:
            parts.append((1, 0, chunk.casefold()))
    return (tuple(parts), value)


def is_active_today(delivery: DeliveryType | str, today: date) -> bool:
    """Return True when a point with this schedule is delivered on ``today``."""

    try:
        delivery_type = DeliveryType(delivery)
    except ValueError:
        return False

    match delivery_type:
        case DeliveryType.DAILY:
            return True
        case DeliveryType.ALT_1:
            return today.day % 2 == 1
        case DeliveryType.ALT_2:
            return today.day % 2 == 0
        case DeliveryType.WEEKDAY:
            # Sunday=0 .. Thursday=4
            return (today.weekday() + 1) % 7 <= 4
    return False


def distance_mode_for(ordering: Ordering | None) -> DistanceMode:
    """Explicit orderings imply a visiting order, so distances are chained."""

    if ordering is None or isinstance(ordering, DefaultOrdering):
        return "direct"
    return "chain"


def _column_value(point: DeliveryPoint, key: str) -> str:
    value = getattr(point, key)
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _by_natural_code(points: Iterable[DeliveryPoint]) -> list[DeliveryPoint]:
    return sorted(points, key=lambda point: natural_key(point.code))


def _by_saved_order(points: Iterable[DeliveryPoint], order: SavedRowOrder) -> list[DeliveryPoint]:
    index = {code: position for position, code in enumerate(order.order)}
    unmatched = len(index)
    return sorted(points, key=lambda point: index.get(point.code, unmatched))


def find_saved_order(saved_orders: Iterable[SavedRowOrder], order_id: str) -> SavedRowOrder | None:
    for order in saved_orders:
        if order.id == order_id:
            return order
    return None


def partition_active(points: Iterable[DeliveryPoint], today: date) -> list[DeliveryPoint]:
    """Stable partition putting points active today first."""

    return sorted(points, key=lambda point: 0 if is_active_today(point.delivery, today) else 1)


def order_points(
    points: Sequence[DeliveryPoint],
    ordering: Ordering | None = None,
    *,
    saved_orders: Iterable[SavedRowOrder] = (),
    today: date | None = None,
) -> list[DeliveryPoint]:
    """Return ``points`` in display order for the given ordering."""

    ordering = ordering or DEFAULT_ORDERING
    today = today or date.today()

    match ordering:
        case ColumnSort(key=key, direction=direction):
            base = sorted(
                points,
                key=lambda point: _column_value(point, key),
                reverse=direction == "desc",
            )
        case SavedOrderOrdering(order_id=order_id):
            order = find_saved_order(saved_orders, order_id)
            if order is None:
                logger.warning(f"Saved order '{order_id}' not found, using default ordering")
                base = _by_natural_code(points)
            else:
                base = _by_saved_order(points, order)
        case _:
            base = _by_natural_code(points)

    return partition_active(base, today)


@dataclass(slots=True)
class PositionRow:
    code: str
    name: str
    position: str


class RowPositionEditor:
    """Draft of 1-based row positions used to build a saved row order."""

    def __init__(self, points: Sequence[DeliveryPoint]) -> None:
        self.rows: list[PositionRow] = [
            PositionRow(code=point.code, name=point.name, position=str(index))
            for index, point in enumerate(points, start=1)
        ]

    @property
    def order(self) -> list[str]:
        return [row.code for row in self.rows]

    def set_position(self, code: str, position: str) -> None:
        for row in self.rows:
            if row.code == code:
                row.position = position
                return
        raise NotFoundError(f"Delivery point '{code}' is not part of this order.")

    def _parsed_positions(self) -> list[int | None]:
        parsed: list[int | None] = []
        for row in self.rows:
            text = row.position.strip()
            if not text:
                parsed.append(None)
                continue
            try:
                value = int(text)
            except ValueError as exc:
                raise ValidationError("invalid", f"Position '{row.position}' is not a number.") from exc
            if value < 1:
                raise ValidationError("invalid", f"Position '{row.position}' must be 1 or greater.")
            parsed.append(value)
        return parsed

    @staticmethod
    def _check_duplicates(positions: Sequence[int | None]) -> None:
        seen: set[int] = set()
        for value in positions:
            if value is None:
                continue
            if value in seen:
                raise ValidationError("duplicate", f"Position {value} is used more than once.")
            seen.add(value)

    def _reorder(self, positions: Sequence[int | None]) -> None:
        # Blank positions sort after every numbered row, keeping their order.
        ranked = sorted(
            zip(positions, self.rows),
            key=lambda item: (item[0] is None, item[0] or 0),
        )
        self.rows = [row for _, row in ranked]
        for index, row in enumerate(self.rows, start=1):
            row.position = str(index)

    def apply_positions(self) -> list[PositionRow]:
        """Sort rows by their positions and renumber them from 1.

        Raises ``ValidationError`` with kind ``duplicate`` when two rows share
        a position and ``incomplete`` when any position is blank. The draft
        is left untouched on failure.
        """
        positions = self._parsed_positions()
        self._check_duplicates(positions)
        if any(value is None for value in positions):
            raise ValidationError("incomplete", "Every row needs a position.")
        self._reorder(positions)
        return self.rows

    def save_order(self, store: SavedOrderStore, label: str | None = None) -> SavedRowOrder:
        """Persist the drafted positions as a new saved row order.

        Gaps and blank positions are accepted here; duplicates are not.
        """
        positions = self._parsed_positions()
        self._check_duplicates(positions)
        self._reorder(positions)

        existing = store.load_saved_orders()
        saved = SavedRowOrder(
            id=uuid.uuid4().hex,
            label=(label or "").strip() or f"Order {len(existing) + 1}",
            order=self.order,
        )
        store.save_saved_orders([*existing, saved])
        logger.info(f"Saved row order '{saved.label}' with {len(saved.order)} codes")
        return saved


def delete_saved_order(store: SavedOrderStore, order_id: str) -> None:
    orders = store.load_saved_orders()
    remaining = [order for order in orders if order.id != order_id]
    if len(remaining) == len(orders):
        raise NotFoundError(f"Saved order '{order_id}' not found.")
    store.save_saved_orders(remaining)


def rename_saved_order(store: SavedOrderStore, order_id: str, label: str) -> SavedRowOrder:
    label = label.strip()
    if not label:
        raise ValidationError("incomplete", "Saved order label cannot be empty.")
    orders = store.load_saved_orders()
    order = find_saved_order(orders, order_id)
    if order is None:
        raise NotFoundError(f"Saved order '{order_id}' not found.")
    order.label = label
    store.save_saved_orders(orders)
    return order
