from __future__ import annotations

import logging

from src.meal_decoder.domain.errors import DishNotFoundError
from src.meal_decoder.domain.models import StatusPayload
from src.meal_decoder.infra.db.base import DishRepository

logger = logging.getLogger(__name__)


class FetchDishStatus:
    """Maps a message id to the current status of its dish for polling clients."""

    def __init__(self, repository: DishRepository):
        self._repo = repository

    def status_for(self, message_id: str) -> StatusPayload:
        dish = self._repo.find_by_message_id(message_id)
        if dish is None:
            logger.info("dish.status_unknown message_id=%s", message_id)
            raise DishNotFoundError(message_id)

        return StatusPayload.from_dish(dish)
