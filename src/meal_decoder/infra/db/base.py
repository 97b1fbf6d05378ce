# src/meal_decoder/infra/db/base.py
"""
Abstract base class for the dish store.
This interface allows swapping between the Postgres-backed store and the
in-memory store used for local runs and tests.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from src.meal_decoder.domain.models import Dish, DishStatus


class DishRepository(ABC):
    """
    Abstract interface for dish persistence.

    Every method returns a fully rebuilt Dish, ingredients included.
    Implementations must make `create_or_update` and `update_status` atomic
    per row and must never move a dish out of a terminal status.

    Implementations:
    - SupabaseDishRepository: Postgres table behind Supabase
    - InMemoryDishRepository: process-local store
    """

    @abstractmethod
    def find_by_message_id(self, message_id: str) -> Optional[Dish]:
        """
        Get the dish created for a correlation message id.

        Args:
            message_id: Correlation key minted by the producer

        Returns:
            The dish, or None if no row carries that message id
        """
        pass

    @abstractmethod
    def find_by_id(self, dish_id: int) -> Optional[Dish]:
        """
        Get a dish by its store-assigned id.

        Args:
            dish_id: The store id

        Returns:
            The dish, or None if not found
        """
        pass

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[Dish]:
        """
        Get the most recently created dish with this name (case-insensitive).

        Args:
            name: Dish name as typed by a user

        Returns:
            The dish, or None if not found
        """
        pass

    @abstractmethod
    def create_or_update(
        self,
        name: str,
        status: DishStatus,
        message_id: str,
        ingredients: Optional[list[str]] = None,
        channel_id: Optional[str] = None,
    ) -> Dish:
        """
        Upsert the dish keyed by message id.

        Creates the row when no dish carries `message_id`, otherwise updates
        it in place. A row that is already terminal is returned unchanged.

        Args:
            name: Dish name
            status: Target status
            message_id: Idempotency key
            ingredients: Replaces the stored ingredient list when given
            channel_id: Progress channel, kept from the first write

        Returns:
            The stored dish after the write
        """
        pass

    @abstractmethod
    def update_status(self, message_id: str, status: DishStatus) -> Optional[Dish]:
        """
        Move the dish to a new status.

        Args:
            message_id: Idempotency key
            status: Target status

        Returns:
            The stored dish (unchanged if it was already terminal),
            or None if no row carries that message id
        """
        pass
