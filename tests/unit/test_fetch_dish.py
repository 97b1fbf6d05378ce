from __future__ import annotations

import pytest

from src.meal_decoder.domain.errors import DishNameNotFoundError
from src.meal_decoder.domain.models import DishStatus
from src.meal_decoder.infra.db.memory_dishes_repo import InMemoryDishRepository
from src.meal_decoder.services.fetch_dish import FetchDish


class TestFetchDish:
    def test_unknown_name_raises(self) -> None:
        with pytest.raises(DishNameNotFoundError) as exc_info:
            FetchDish(InMemoryDishRepository()).by_name("Ramen")

        assert str(exc_info.value) == "Could not find dish: Ramen"

    def test_returns_most_recent_dish_with_name(self) -> None:
        repository = InMemoryDishRepository()
        repository.create_or_update("Pho", DishStatus.COMPLETED, "m1", ingredients=["Beef"])
        repository.create_or_update("Pho", DishStatus.PROCESSING, "m2")

        dish = FetchDish(repository).by_name("pho")

        assert dish.message_id == "m2"
        assert dish.status == DishStatus.PROCESSING
