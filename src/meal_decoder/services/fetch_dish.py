from __future__ import annotations

import logging

from src.meal_decoder.domain.errors import DishNameNotFoundError
from src.meal_decoder.domain.models import Dish
from src.meal_decoder.infra.db.base import DishRepository

logger = logging.getLogger(__name__)


class FetchDish:
    """
    Human-facing lookup by dish name.

    Names are not unique; the most recent dish with that name wins. Clients
    tracking one request should poll by message id instead.
    """

    def __init__(self, repository: DishRepository):
        self._repo = repository

    def by_name(self, dish_name: str) -> Dish:
        dish = self._repo.find_by_name(dish_name)
        if dish is None:
            logger.info("dish.name_unknown name=%s", dish_name)
            raise DishNameNotFoundError(dish_name)
        return dish
