from __future__ import annotations

import itertools
import logging
import threading
from typing import Optional

from src.meal_decoder.domain.models import Dish, DishStatus
from src.meal_decoder.infra.db.base import DishRepository

logger = logging.getLogger(__name__)


def _copy(dish: Dish | None) -> Dish | None:
    if dish is None:
        return None
    return Dish(
        name=dish.name,
        message_id=dish.message_id,
        status=dish.status,
        ingredients=list(dish.ingredients),
        id=dish.id,
        channel_id=dish.channel_id,
    )


class InMemoryDishRepository(DishRepository):
    """Process-local dish store. All mutations run under one lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, Dish] = {}
        self._ids = itertools.count(1)

    def find_by_message_id(self, message_id: str) -> Dish | None:
        with self._lock:
            return _copy(self._rows.get(message_id))

    def find_by_id(self, dish_id: int) -> Dish | None:
        with self._lock:
            for dish in self._rows.values():
                if dish.id == dish_id:
                    return _copy(dish)
        return None

    def find_by_name(self, name: str) -> Dish | None:
        wanted = name.strip().lower()
        with self._lock:
            matches = [dish for dish in self._rows.values() if dish.name.lower() == wanted]
            if not matches:
                return None
            return _copy(max(matches, key=lambda dish: dish.id or 0))

    def create_or_update(
        self,
        name: str,
        status: DishStatus,
        message_id: str,
        ingredients: Optional[list[str]] = None,
        channel_id: Optional[str] = None,
    ) -> Dish:
        with self._lock:
            existing = self._rows.get(message_id)

            if existing is None:
                dish = Dish(
                    name=name,
                    message_id=message_id,
                    status=status,
                    ingredients=list(ingredients or []),
                    id=next(self._ids),
                    channel_id=channel_id,
                )
                self._rows[message_id] = dish
                return _copy(dish)

            if not existing.status.can_transition_to(status):
                logger.warning(
                    "dish.store_keep_terminal message_id=%s current=%s requested=%s",
                    message_id,
                    existing.status.value,
                    status.value,
                )
                return _copy(existing)

            existing.name = name
            existing.status = status
            if ingredients is not None:
                existing.ingredients = list(ingredients)
            if existing.channel_id is None:
                existing.channel_id = channel_id
            return _copy(existing)

    def update_status(self, message_id: str, status: DishStatus) -> Dish | None:
        with self._lock:
            existing = self._rows.get(message_id)
            if existing is None:
                return None
            if existing.status.can_transition_to(status):
                existing.status = status
            return _copy(existing)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)
