from __future__ import annotations

import pytest

from src.meal_decoder.domain.errors import DishNotFoundError
from src.meal_decoder.domain.models import DishStatus
from src.meal_decoder.infra.db.memory_dishes_repo import InMemoryDishRepository
from src.meal_decoder.services.fetch_dish_status import FetchDishStatus


class TestFetchDishStatus:
    def test_unknown_message_id_raises(self) -> None:
        service = FetchDishStatus(InMemoryDishRepository())

        with pytest.raises(DishNotFoundError) as exc_info:
            service.status_for("does-not-exist")

        assert exc_info.value.message_id == "does-not-exist"

    def test_processing_dish(self) -> None:
        repository = InMemoryDishRepository()
        repository.create_or_update("Pho", DishStatus.PROCESSING, "m1")

        payload = FetchDishStatus(repository).status_for("m1")

        assert payload.to_dict() == {"status": "processing", "message_id": "m1"}

    def test_completed_dish_returns_ingredients(self) -> None:
        repository = InMemoryDishRepository()
        repository.create_or_update(
            "Spaghetti Carbonara",
            DishStatus.COMPLETED,
            "m1",
            ingredients=["Spaghetti", "Eggs", "Pancetta", "Parmesan"],
        )

        payload = FetchDishStatus(repository).status_for("m1")

        assert payload.status == DishStatus.COMPLETED
        assert payload.name == "Spaghetti Carbonara"
        assert payload.ingredients == ["Spaghetti", "Eggs", "Pancetta", "Parmesan"]

    def test_failed_dish(self) -> None:
        repository = InMemoryDishRepository()
        repository.create_or_update("Zzznonexistent", DishStatus.PROCESSING, "m1")
        repository.update_status("m1", DishStatus.FAILED)

        payload = FetchDishStatus(repository).status_for("m1")

        assert payload.to_dict() == {"status": "failed", "message_id": "m1"}
