"""Edit session over the route collection.

The session owns the live working set, the snapshot taken when edit mode is
entered, and the set of ``(code, field)`` cells changed since the last save.
``enter``, ``discard`` and ``commit`` are the only state transitions.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Sequence

from ...models.domain import DeliveryPoint, DeliveryType, Description, Route
from .changelog import ChangelogSink, diff_routes, publish_changes
from .errors import (
    CommitInProgressError,
    NotFoundError,
    PersistenceError,
    SessionStateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

SaveRoutes = Callable[[list[Route]], object]

ROUTE_FIELDS: tuple[str, ...] = ("name", "code", "shift")


class SessionState(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"
    COMMITTING = "committing"


@dataclass(slots=True)
class CommitResult:
    changes: dict[str, list[str]] = field(default_factory=dict)
    changelog_written: int = 0


def find_point(routes: Iterable[Route], code: str) -> tuple[Route, int] | None:
    """Locate a delivery point by code across every route."""

    for route in routes:
        for index, point in enumerate(route.delivery_points):
            if point.code == code:
                return route, index
    return None


def ensure_unique_code(routes: Iterable[Route], code: str, *, ignore: DeliveryPoint | None = None) -> None:
    """Reject ``code`` if any point in any route already uses it."""

    for route in routes:
        for point in route.delivery_points:
            if point.code == code and point is not ignore:
                raise ValidationError(
                    "duplicate_code",
                    f'Code "{code}" is already used by "{point.name}" in route "{route.name}".',
                )


def _coerce_point_value(field_name: str, value: Any) -> Any:
    match field_name:
        case "code" | "name":
            text = str(value or "").strip()
            if field_name == "code" and not text:
                raise ValidationError("incomplete", "Delivery point code cannot be empty.")
            return text
        case "delivery":
            try:
                return DeliveryType(value)
            except ValueError as exc:
                raise ValidationError("invalid", f"Unknown delivery type '{value}'.") from exc
        case "latitude" | "longitude":
            try:
                return float(value)
            except (TypeError, ValueError) as exc:
                raise ValidationError("invalid", f"{field_name.title()} must be a number.") from exc
        case "descriptions":
            items = []
            for item in value or []:
                if isinstance(item, Description):
                    items.append(Description(key=item.key, value=item.value))
                    continue
                try:
                    items.append(Description(key=str(item["key"]), value=str(item.get("value", ""))))
                except (AttributeError, KeyError, TypeError) as exc:
                    raise ValidationError("invalid", f"Malformed description {item!r}.") from exc
            return items
        case "qr_code_image_url" | "qr_code_destination_url":
            if value is None:
                return None
            return str(value).strip() or None
    raise ValidationError("unknown_field", f"Delivery points have no field '{field_name}'.")


class EditSession:
    """Single edit session over the full route collection."""

    def __init__(
        self,
        routes: Sequence[Route],
        *,
        save_routes: SaveRoutes,
        append_changelog: Optional[ChangelogSink] = None,
    ) -> None:
        self.working_set: list[Route] = list(routes)
        self.snapshot: list[Route] | None = None
        self.pending: set[tuple[str, str]] = set()
        self.state = SessionState.VIEWING
        self._save_routes = save_routes
        self._append_changelog = append_changelog
        self._commit_lock = threading.Lock()

    @property
    def is_editing(self) -> bool:
        return self.state is SessionState.EDITING

    @property
    def has_unsaved_changes(self) -> bool:
        return self.is_editing and (bool(self.pending) or self.working_set != self.snapshot)

    # -- transitions -------------------------------------------------------

    def enter(self) -> bool:
        """Start editing; returns False if a session is already active."""
        if self.state is not SessionState.VIEWING:
            return False
        self.snapshot = copy.deepcopy(self.working_set)
        self.pending.clear()
        self.state = SessionState.EDITING
        return True

    def discard(self) -> None:
        """Restore the working set to the state it had when editing started."""
        if self.state is SessionState.EDITING and self.snapshot is not None:
            self.working_set = copy.deepcopy(self.snapshot)
        if self.state is not SessionState.COMMITTING:
            self.snapshot = None
            self.pending.clear()
            self.state = SessionState.VIEWING

    def commit(self) -> CommitResult:
        """Persist the working set and record what changed since ``enter``.

        On a failed save the session stays in edit mode with the working set
        and pending markers exactly as they were, and ``PersistenceError`` is
        raised so the caller can retry.
        """
        if not self._commit_lock.acquire(blocking=False):
            raise CommitInProgressError("A save is already in progress.")
        try:
            if self.state is not SessionState.EDITING:
                raise SessionStateError("Enter edit mode before saving.")
            self.state = SessionState.COMMITTING
            try:
                self._save_routes(copy.deepcopy(self.working_set))
            except PersistenceError:
                self.state = SessionState.EDITING
                raise
            except Exception as exc:
                self.state = SessionState.EDITING
                raise PersistenceError(f"Failed to save routes: {exc}") from exc

            result = self._record_changes(self.snapshot or [], self.working_set)
            self.pending.clear()
            self.snapshot = copy.deepcopy(self.working_set)
            self.state = SessionState.VIEWING
            logger.info(f"Saved {len(self.working_set)} routes ({len(result.changes)} with changes)")
            return result
        finally:
            self._commit_lock.release()

    def reload(self, routes: Sequence[Route]) -> None:
        """Replace the working set with freshly loaded routes."""
        if self.state is not SessionState.VIEWING:
            raise SessionStateError("Cannot reload routes while editing.")
        self.working_set = list(routes)

    def _record_changes(self, before: list[Route], after: list[Route]) -> CommitResult:
        # The save already succeeded; nothing here may turn it into a failure.
        try:
            changes = diff_routes(before, after)
        except Exception:
            logger.exception("Failed to compute route changelog")
            return CommitResult()
        written = 0
        if self._append_changelog is not None:
            written = publish_changes(changes, self._append_changelog)
        return CommitResult(changes=changes, changelog_written=written)

    # -- lookups -----------------------------------------------------------

    def _require_editing(self) -> None:
        if self.state is not SessionState.EDITING:
            raise SessionStateError("Enter edit mode to change routes.")

    def get_route(self, route_id: str) -> Route:
        for route in self.working_set:
            if route.id == route_id:
                return route
        raise NotFoundError(f"Route '{route_id}' not found.")

    def get_point(self, code: str) -> tuple[Route, DeliveryPoint]:
        located = find_point(self.working_set, code)
        if located is None:
            raise NotFoundError(f"Delivery point '{code}' not found.")
        route, index = located
        return route, route.delivery_points[index]

    # -- mutations ---------------------------------------------------------

    def update_route(self, route_id: str, **fields: Any) -> Route:
        self._require_editing()
        route = self.get_route(route_id)
        updates = {}
        for name, value in fields.items():
            if name not in ROUTE_FIELDS:
                raise ValidationError("unknown_field", f"Routes have no field '{name}'.")
            updates[name] = str(value or "").strip()
        if "name" in updates and not updates["name"]:
            raise ValidationError("incomplete", "Route name cannot be empty.")
        for name, value in updates.items():
            setattr(route, name, value)
        return route

    def edit_point(self, code: str, field_name: str, value: Any) -> DeliveryPoint:
        self._require_editing()
        _, point = self.get_point(code)
        new_value = _coerce_point_value(field_name, value)
        if field_name == "code" and new_value != code:
            ensure_unique_code(self.working_set, new_value, ignore=point)
            self.pending = {
                (new_value if marker_code == code else marker_code, marker_field)
                for marker_code, marker_field in self.pending
            }
        setattr(point, field_name, new_value)
        self.pending.add((point.code, field_name))
        return point

    def update_point(self, code: str, /, **fields: Any) -> DeliveryPoint:
        """Apply several field edits to one point, all or nothing.

        Every value is checked before anything is written; a code change is
        applied last so the other fields still find the point by ``code``.
        """
        self._require_editing()
        _, point = self.get_point(code)
        coerced = {name: _coerce_point_value(name, value) for name, value in fields.items()}
        new_code = coerced.pop("code", None)
        if new_code is not None and new_code != code:
            ensure_unique_code(self.working_set, new_code, ignore=point)

        for name, value in coerced.items():
            self.edit_point(code, name, value)
        if new_code is not None:
            self.edit_point(code, "code", new_code)
        return point

    def add_point(self, route_id: str, point: DeliveryPoint, index: int | None = None) -> DeliveryPoint:
        self._require_editing()
        route = self.get_route(route_id)
        point.code = _coerce_point_value("code", point.code)
        ensure_unique_code(self.working_set, point.code)
        if index is None:
            route.delivery_points.append(point)
        else:
            route.delivery_points.insert(index, point)
        return point

    def remove_point(self, code: str) -> DeliveryPoint:
        self._require_editing()
        route, point = self.get_point(code)
        route.delivery_points = [item for item in route.delivery_points if item is not point]
        self.pending = {marker for marker in self.pending if marker[0] != code}
        return point

    def move_point(self, code: str, to_route_id: str, index: int | None = None) -> DeliveryPoint:
        self._require_editing()
        source, point = self.get_point(code)
        target = self.get_route(to_route_id)

        remaining = [item for item in source.delivery_points if item is not point]
        destination = remaining if target is source else list(target.delivery_points)
        if index is None:
            destination.append(point)
        else:
            destination.insert(index, point)

        source.delivery_points = remaining
        target.delivery_points = destination
        return point

    def add_route(self, route: Route) -> Route:
        self._require_editing()
        if any(existing.id == route.id for existing in self.working_set):
            raise ValidationError("duplicate", f"Route id '{route.id}' already exists.")
        if not route.name.strip():
            raise ValidationError("incomplete", "Route name cannot be empty.")
        codes = [_coerce_point_value("code", point.code) for point in route.delivery_points]
        seen: set[str] = set()
        for code in codes:
            if code in seen:
                raise ValidationError("duplicate_code", f'Code "{code}" appears twice in the new route.')
            seen.add(code)
            ensure_unique_code(self.working_set, code)
        for point, code in zip(route.delivery_points, codes):
            point.code = code
        self.working_set.append(route)
        return route

    def remove_route(self, route_id: str) -> Route:
        self._require_editing()
        route = self.get_route(route_id)
        self.working_set = [item for item in self.working_set if item is not route]
        codes = {point.code for point in route.delivery_points}
        self.pending = {marker for marker in self.pending if marker[0] not in codes}
        return route
