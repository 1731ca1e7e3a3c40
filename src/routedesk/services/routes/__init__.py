"""Route editing engine: ordering, edit session and changelog."""

from .changelog import detect_moves, diff_routes, publish_changes
from .errors import (
    ChangelogWriteError,
    CommitInProgressError,
    NotFoundError,
    PersistenceError,
    RouteEngineError,
    SessionStateError,
    ValidationError,
)
from .listing import ListingRow, build_route_listing
from .ordering import (
    ColumnSort,
    DefaultOrdering,
    RowPositionEditor,
    SavedOrderOrdering,
    is_active_today,
    order_points,
)
from .session import CommitResult, EditSession, SessionState

__all__ = [
    "ChangelogWriteError",
    "ColumnSort",
    "CommitInProgressError",
    "CommitResult",
    "DefaultOrdering",
    "EditSession",
    "ListingRow",
    "NotFoundError",
    "PersistenceError",
    "RouteEngineError",
    "RowPositionEditor",
    "SavedOrderOrdering",
    "SessionState",
    "SessionStateError",
    "ValidationError",
    "build_route_listing",
    "detect_moves",
    "diff_routes",
    "is_active_today",
    "order_points",
    "publish_changes",
]
