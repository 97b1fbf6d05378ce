from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from src.meal_decoder.domain.errors import PersistenceError
from src.meal_decoder.domain.models import Dish, DishStatus
from src.meal_decoder.infra.db.base import DishRepository

logger = logging.getLogger(__name__)

STORE_ERRORS = (APIError, httpx.HTTPError, ConnectionError, TimeoutError)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _safe_str(value: object) -> str | None:
    return str(value) if value else None


def _ingredient_names(value: object) -> list[str]:
    if not value:
        return []
    if isinstance(value, list):
        return [str(item) for item in value if item]
    return []


def _row_to_dish(row: dict[str, Any]) -> Dish:
    return Dish(
        id=int(row["id"]) if row.get("id") is not None else None,
        name=str(row["name"]),
        message_id=str(row["message_id"]),
        status=DishStatus(str(row.get("status") or DishStatus.PROCESSING.value)),
        ingredients=_ingredient_names(row.get("ingredients")),
        channel_id=_safe_str(row.get("channel_id")),
    )


class SupabaseDishRepository(DishRepository):
    """
    Dish store on a Postgres table behind Supabase.

    Expects a unique constraint on `message_id`; ingredients are a text[]
    column. Updates are conditional on `status = 'processing'` so a racing
    duplicate delivery cannot pull a finished dish back.
    """

    TABLE_NAME = "dishes"

    def __init__(self, client: Client):
        self._client = client
        logger.info("SupabaseDishRepository initialized")

    def find_by_message_id(self, message_id: str) -> Dish | None:
        return self._find_one("find_by_message_id", "message_id", message_id)

    def find_by_id(self, dish_id: int) -> Dish | None:
        return self._find_one("find_by_id", "id", dish_id)

    def find_by_name(self, name: str) -> Dish | None:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .ilike("name", name.strip())
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
        except STORE_ERRORS as error:
            logger.error("Store error finding dish by name: %s", error)
            raise PersistenceError("find_by_name", str(error)) from error

        return _row_to_dish(result.data[0]) if result.data else None

    def _find_one(self, operation: str, column: str, value: object) -> Dish | None:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq(column, value)
                .limit(1)
                .execute()
            )
        except STORE_ERRORS as error:
            logger.error("Store error during %s: %s", operation, error)
            raise PersistenceError(operation, str(error)) from error

        return _row_to_dish(result.data[0]) if result.data else None

    def create_or_update(
        self,
        name: str,
        status: DishStatus,
        message_id: str,
        ingredients: list[str] | None = None,
        channel_id: str | None = None,
    ) -> Dish:
        existing = self.find_by_message_id(message_id)

        if existing is None:
            created = self._insert_if_absent(name, status, message_id, ingredients, channel_id)
            if created is not None:
                return created
            # Another worker inserted the row first.
            existing = self.find_by_message_id(message_id)
            if existing is None:
                raise PersistenceError("create_or_update", f"row for {message_id} vanished")

        if not existing.status.can_transition_to(status):
            logger.warning(
                "dish.store_keep_terminal message_id=%s current=%s requested=%s",
                message_id,
                existing.status.value,
                status.value,
            )
            return existing

        update_data: dict[str, Any] = {
            "name": name,
            "status": status.value,
            "updated_at": _now_utc().isoformat(),
        }
        if ingredients is not None:
            update_data["ingredients"] = list(ingredients)
        if existing.channel_id is None and channel_id:
            update_data["channel_id"] = channel_id

        updated = self._conditional_update("create_or_update", message_id, update_data)
        return updated or self.find_by_message_id(message_id) or existing

    def _insert_if_absent(
        self,
        name: str,
        status: DishStatus,
        message_id: str,
        ingredients: list[str] | None,
        channel_id: str | None,
    ) -> Dish | None:
        now = _now_utc().isoformat()
        row: dict[str, Any] = {
            "name": name,
            "status": status.value,
            "message_id": message_id,
            "ingredients": list(ingredients or []),
            "created_at": now,
            "updated_at": now,
        }
        if channel_id:
            row["channel_id"] = channel_id

        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .upsert(row, on_conflict="message_id", ignore_duplicates=True)
                .execute()
            )
        except STORE_ERRORS as error:
            logger.error("Store error inserting dish: %s", error)
            raise PersistenceError("create_or_update", str(error)) from error

        if not result.data:
            return None

        dish = _row_to_dish(result.data[0])
        logger.info("Created dish: id=%s, name=%s, message_id=%s", dish.id, name, message_id)
        return dish

    def _conditional_update(
        self,
        operation: str,
        message_id: str,
        update_data: dict[str, Any],
    ) -> Dish | None:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .update(update_data)
                .eq("message_id", message_id)
                .eq("status", DishStatus.PROCESSING.value)
                .execute()
            )
        except STORE_ERRORS as error:
            logger.error("Store error during %s: %s", operation, error)
            raise PersistenceError(operation, str(error)) from error

        return _row_to_dish(result.data[0]) if result.data else None

    def update_status(self, message_id: str, status: DishStatus) -> Dish | None:
        existing = self.find_by_message_id(message_id)
        if existing is None:
            return None

        if not existing.status.can_transition_to(status) or existing.status == status:
            return existing

        updated = self._conditional_update(
            "update_status",
            message_id,
            {"status": status.value, "updated_at": _now_utc().isoformat()},
        )
        if updated:
            logger.info("Dish status updated: message_id=%s, status=%s", message_id, status.value)
        return updated or self.find_by_message_id(message_id)
