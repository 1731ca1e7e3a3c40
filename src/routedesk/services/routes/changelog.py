"""Human-readable changelog built from before/after route collections."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from ...models.domain import DeliveryPoint, Route
from .errors import ChangelogWriteError

logger = logging.getLogger(__name__)

ChangelogSink = Callable[[str, str], object]

_SCALAR_FIELDS: tuple[tuple[str, str], ...] = (
    ("name", "Name"),
    ("code", "Code"),
    ("shift", "Shift"),
)
_EDITABLE_POINT_FIELDS: tuple[str, ...] = ("name", "delivery", "latitude", "longitude")


@dataclass(frozen=True, slots=True)
class PointMove:
    code: str
    name: str
    from_route_id: str
    to_route_id: str


def _label(point: DeliveryPoint) -> str:
    return point.name.strip() or point.code


def _codes(route: Route | None) -> dict[str, DeliveryPoint]:
    if route is None:
        return {}
    return {point.code: point for point in route.delivery_points}


def _group(moves: Iterable[PointMove], attr: str) -> dict[str, list[PointMove]]:
    grouped: dict[str, list[PointMove]] = {}
    for move in moves:
        grouped.setdefault(getattr(move, attr), []).append(move)
    return grouped


def detect_moves(before: Sequence[Route], after: Sequence[Route]) -> list[PointMove]:
    """Find points that left one route and arrived in another.

    A code counts as moved from X to Y only if it was in X before, is gone
    from X after, and is new to Y. A new code that was never elsewhere is an
    addition, not a move.
    """

    before_by_id = {route.id: _codes(route) for route in before}
    after_by_id = {route.id: _codes(route) for route in after}

    moves: list[PointMove] = []
    for route in after:
        previous = before_by_id.get(route.id, {})
        for code, point in after_by_id[route.id].items():
            if code in previous:
                continue
            for source in before:
                if source.id == route.id:
                    continue
                if code in before_by_id[source.id] and code not in after_by_id.get(source.id, {}):
                    moves.append(PointMove(code, _label(point), source.id, route.id))
                    break
    return moves


def _summary(verb: str, points: Sequence[DeliveryPoint]) -> str:
    names = ", ".join(_label(point) for point in points)
    return f"{verb} {len(points)} location(s): {names}"


def diff_routes(before: Sequence[Route], after: Sequence[Route]) -> dict[str, list[str]]:
    """Describe what changed per route id.

    Entries for a route are ordered: route field changes, points moved out,
    points moved in, added, removed, edited. Routes without changes are
    left out of the result.
    """

    before_by_id = {route.id: route for route in before}
    names = {route.id: route.name for route in before}
    names.update({route.id: route.name for route in after})

    moves = detect_moves(before, after)
    outgoing = _group(moves, "from_route_id")
    incoming = _group(moves, "to_route_id")

    changes: dict[str, list[str]] = {}
    for route in after:
        previous = before_by_id.get(route.id)
        if previous is None:
            changes[route.id] = [f'Route "{route.name}" created']
            continue

        entries: list[str] = []
        for field_name, label in _SCALAR_FIELDS:
            old, new = getattr(previous, field_name), getattr(route, field_name)
            if old != new:
                entries.append(f"{label} changed: {old} → {new}")

        for dest_id, group in _group(outgoing.get(route.id, []), "to_route_id").items():
            entries.append(
                f'Moved {len(group)} location(s) to "{names.get(dest_id, dest_id)}": '
                + ", ".join(move.name for move in group)
            )
        for source_id, group in _group(incoming.get(route.id, []), "from_route_id").items():
            entries.append(
                f'Received {len(group)} location(s) from "{names.get(source_id, source_id)}": '
                + ", ".join(move.name for move in group)
            )

        moved_out = {move.code for move in outgoing.get(route.id, [])}
        moved_in = {move.code for move in incoming.get(route.id, [])}
        old_points = _codes(previous)
        new_points = _codes(route)

        added = [
            point for code, point in new_points.items() if code not in old_points and code not in moved_in
        ]
        removed = [
            point for code, point in old_points.items() if code not in new_points and code not in moved_out
        ]
        edited = [
            point
            for code, point in new_points.items()
            if code in old_points
            and any(getattr(old_points[code], attr) != getattr(point, attr) for attr in _EDITABLE_POINT_FIELDS)
        ]

        if added:
            entries.append(_summary("Added", added))
        if removed:
            entries.append(_summary("Removed", removed))
        if edited:
            entries.append(_summary("Edited", edited))

        if entries:
            changes[route.id] = entries
    return changes


def publish_changes(changes: dict[str, list[str]], append: ChangelogSink) -> int:
    """Hand every entry to ``append``; failures are logged and skipped."""

    written = 0
    for route_id, entries in changes.items():
        for text in entries:
            try:
                append(route_id, text)
            except ChangelogWriteError as exc:
                logger.warning(f"Changelog entry for route {route_id} was not recorded: {exc}")
                continue
            except Exception:
                logger.exception(f"Unexpected error recording changelog entry for route {route_id}")
                continue
            written += 1
    return written
