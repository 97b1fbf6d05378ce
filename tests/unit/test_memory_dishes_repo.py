from __future__ import annotations

import threading

from src.meal_decoder.domain.models import DishStatus
from src.meal_decoder.infra.db.memory_dishes_repo import InMemoryDishRepository


class TestCreateOrUpdate:
    def test_creates_row_with_id(self) -> None:
        repository = InMemoryDishRepository()

        dish = repository.create_or_update("Pho", DishStatus.PROCESSING, "m1", channel_id="c1")

        assert dish.id == 1
        assert dish.status == DishStatus.PROCESSING
        assert dish.ingredients == []
        assert dish.channel_id == "c1"

    def test_same_message_id_updates_in_place(self) -> None:
        repository = InMemoryDishRepository()
        created = repository.create_or_update("Pho", DishStatus.PROCESSING, "m1")

        updated = repository.create_or_update("Pho", DishStatus.COMPLETED, "m1", ingredients=["Beef"])

        assert updated.id == created.id
        assert updated.ingredients == ["Beef"]
        assert len(repository) == 1

    def test_same_name_different_message_ids_are_separate_rows(self) -> None:
        repository = InMemoryDishRepository()

        first = repository.create_or_update("Pho", DishStatus.PROCESSING, "m1")
        second = repository.create_or_update("pho", DishStatus.PROCESSING, "m2")

        assert first.id != second.id
        assert len(repository) == 2

    def test_terminal_row_is_not_regressed(self) -> None:
        repository = InMemoryDishRepository()
        repository.create_or_update("Pho", DishStatus.COMPLETED, "m1", ingredients=["Beef"])

        result = repository.create_or_update("Pho", DishStatus.PROCESSING, "m1", ingredients=[])

        assert result.status == DishStatus.COMPLETED
        assert result.ingredients == ["Beef"]

    def test_returned_dish_is_a_copy(self) -> None:
        repository = InMemoryDishRepository()
        dish = repository.create_or_update("Pho", DishStatus.PROCESSING, "m1")

        dish.ingredients.append("mutated")

        assert repository.find_by_message_id("m1").ingredients == []

    def test_concurrent_upserts_create_one_row(self) -> None:
        repository = InMemoryDishRepository()
        barrier = threading.Barrier(8)

        def upsert() -> None:
            barrier.wait()
            repository.create_or_update("Pho", DishStatus.PROCESSING, "m1")

        threads = [threading.Thread(target=upsert) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(repository) == 1


class TestUpdateStatus:
    def test_unknown_message_id_returns_none(self) -> None:
        assert InMemoryDishRepository().update_status("m1", DishStatus.FAILED) is None

    def test_processing_to_failed(self) -> None:
        repository = InMemoryDishRepository()
        repository.create_or_update("Pho", DishStatus.PROCESSING, "m1")

        dish = repository.update_status("m1", DishStatus.FAILED)

        assert dish.status == DishStatus.FAILED

    def test_failed_never_becomes_completed(self) -> None:
        repository = InMemoryDishRepository()
        repository.create_or_update("Pho", DishStatus.PROCESSING, "m1")
        repository.update_status("m1", DishStatus.FAILED)

        dish = repository.update_status("m1", DishStatus.COMPLETED)

        assert dish.status == DishStatus.FAILED


class TestFinders:
    def test_find_by_id(self) -> None:
        repository = InMemoryDishRepository()
        created = repository.create_or_update("Pho", DishStatus.PROCESSING, "m1")

        assert repository.find_by_id(created.id).message_id == "m1"
        assert repository.find_by_id(999) is None

    def test_find_by_name_is_case_insensitive_and_latest(self) -> None:
        repository = InMemoryDishRepository()
        repository.create_or_update("Pho", DishStatus.PROCESSING, "m1")
        repository.create_or_update("Pho", DishStatus.PROCESSING, "m2")

        dish = repository.find_by_name("PHO")

        assert dish.message_id == "m2"
        assert repository.find_by_name("Ramen") is None
