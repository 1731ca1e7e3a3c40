"""Storage for saved row orders, kept apart from the route collection."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Sequence

from ..config import settings
from ..models.domain import SavedRowOrder
from .filesystem import FileStorage

logger = logging.getLogger(__name__)


class SavedOrderStore(ABC):
    """Contract for saved row order persistence."""

    @abstractmethod
    def load_saved_orders(self) -> list[SavedRowOrder]:
        raise NotImplementedError

    @abstractmethod
    def save_saved_orders(self, orders: Sequence[SavedRowOrder]) -> None:
        raise NotImplementedError


def _order_to_record(order: SavedRowOrder) -> dict[str, Any]:
    return {"id": order.id, "label": order.label, "order": list(order.order)}


def _order_from_record(record: dict[str, Any]) -> SavedRowOrder:
    return SavedRowOrder(
        id=str(record["id"]),
        label=str(record.get("label") or ""),
        order=[str(code) for code in record.get("order") or []],
    )


class JsonSavedOrderStore(SavedOrderStore):
    """Saved row orders stored as a JSON list in a single file."""

    def __init__(self, path: Path | None = None, storage: FileStorage | None = None) -> None:
        if path is None:
            path = settings.saved_orders_path
        self.path = path
        self.storage = storage or FileStorage(root=path.parent)

    def load_saved_orders(self) -> list[SavedRowOrder]:
        try:
            records = self.storage.read_json(self.path, default=[])
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"Could not read saved orders from {self.path}: {exc}")
            return []
        if not isinstance(records, list):
            logger.warning(f"Ignoring saved orders file {self.path}: expected a JSON list")
            return []

        orders: list[SavedRowOrder] = []
        for record in records:
            try:
                orders.append(_order_from_record(record))
            except (AttributeError, KeyError, TypeError) as exc:
                logger.warning(f"Skipping malformed saved order {record!r}: {exc}")
        return orders

    def save_saved_orders(self, orders: Sequence[SavedRowOrder]) -> None:
        self.storage.write_json(self.path, [_order_to_record(order) for order in orders])
