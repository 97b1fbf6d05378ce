# src/meal_decoder/services/create_dish.py
"""
Accepts dish creation requests and hands them to the worker through the queue.
The caller gets correlation ids back immediately and polls or subscribes
for the outcome.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError

from src.meal_decoder.domain.errors import DishValidationError, PersistenceError
from src.meal_decoder.domain.models import AcceptedInfo, CorrelationIdentity, DishStatus, QueueMessage
from src.meal_decoder.infra.db.base import DishRepository
from src.meal_decoder.infra.messaging.base import MessageQueue
from src.meal_decoder.schemas.dish import DishRequest

logger = logging.getLogger(__name__)

_PYDANTIC_VALUE_ERROR_PREFIX = "Value error, "


def _field_errors(error: ValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for detail in error.errors():
        field = ".".join(str(part) for part in detail.get("loc", ())) or "dish_name"
        message = str(detail.get("msg", "is invalid"))
        if message.startswith(_PYDANTIC_VALUE_ERROR_PREFIX):
            message = message[len(_PYDANTIC_VALUE_ERROR_PREFIX):]
        errors.setdefault(field, []).append(message)
    return errors


def validate_dish_name(dish_name: Any) -> str:
    """Apply the shared dish-name rule and return the trimmed name."""
    try:
        request = DishRequest.model_validate({"dish_name": dish_name})
    except ValidationError as error:
        raise DishValidationError(_field_errors(error)) from error
    return request.dish_name


class CreateDish:
    """
    Producer side of the enrichment pipeline.

    When a repository is given, a `processing` row is recorded after the
    message is sent so pollers see the request before the worker picks it
    up. That write is insert-if-absent through the repository upsert and
    never regresses a dish the worker already finished.
    """

    def __init__(
        self,
        queue: MessageQueue,
        repository: Optional[DishRepository] = None,
    ):
        self._queue = queue
        self._repo = repository

    def submit(self, dish_name: Any) -> AcceptedInfo:
        """
        Validate and enqueue a dish request.

        Raises:
            DishValidationError: Input failed the dish-name rule; nothing was sent
            QueueTransportError: The queue could not be reached; caller should retry
        """
        name = validate_dish_name(dish_name)
        identity = CorrelationIdentity.new()
        message = QueueMessage.for_request(name, identity)

        delivery_id = self._queue.send(message.to_body())

        logger.info(
            "dish.enqueued name=%s message_id=%s delivery_id=%s",
            name,
            identity.message_id,
            delivery_id,
        )

        self._record_processing(message)

        return AcceptedInfo(
            dish_name=name,
            message_id=identity.message_id,
            channel_id=identity.channel_id,
        )

    def _record_processing(self, message: QueueMessage) -> None:
        if self._repo is None:
            return

        try:
            self._repo.create_or_update(
                name=message.dish_name,
                status=DishStatus.PROCESSING,
                message_id=message.message_id,
                channel_id=message.channel_id,
            )
        except PersistenceError as error:
            # The worker creates the row on first touch.
            logger.warning(
                "dish.preinsert_failed message_id=%s error=%s",
                message.message_id,
                error,
            )
