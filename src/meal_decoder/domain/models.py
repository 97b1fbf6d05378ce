# src/meal_decoder/domain/models.py
"""
Domain models for the dish enrichment pipeline.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from src.meal_decoder.domain.errors import InvalidStatusTransitionError, MalformedMessageError

ERROR_PERCENTAGE = -1


def _epoch_seconds() -> int:
    return int(time.time())


class DishStatus(str, Enum):
    """Status enum for dishes moving through the enrichment pipeline."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DishStatus.COMPLETED, DishStatus.FAILED)

    def can_transition_to(self, target: "DishStatus") -> bool:
        if self.is_terminal:
            return target == self
        return True


@dataclass(frozen=True)
class CorrelationIdentity:
    """Message and channel identifiers minted once per creation request."""
    message_id: str
    channel_id: str

    @classmethod
    def new(cls) -> "CorrelationIdentity":
        return cls(message_id=str(uuid4()), channel_id=str(uuid4()))


@dataclass
class Dish:
    """
    A dish and its enrichment state.

    `id` stays None until the store assigns one. `message_id` is the
    idempotency key for the worker; `name` is only used for human lookups.
    """
    name: str
    message_id: str
    status: DishStatus = DishStatus.PROCESSING
    ingredients: list[str] = field(default_factory=list)
    id: Optional[int] = None
    channel_id: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.status.is_terminal

    def with_status(self, target: DishStatus) -> "Dish":
        """Return a copy in `target` status, refusing to leave a terminal status."""
        if not self.status.can_transition_to(target):
            raise InvalidStatusTransitionError(self.status.value, target.value)
        return Dish(
            name=self.name,
            message_id=self.message_id,
            status=target,
            ingredients=list(self.ingredients),
            id=self.id,
            channel_id=self.channel_id,
        )

    def completed_with(self, ingredients: list[str]) -> "Dish":
        dish = self.with_status(DishStatus.COMPLETED)
        dish.ingredients = list(ingredients)
        return dish


@dataclass(frozen=True)
class QueueMessage:
    """Payload carried by the message queue from the producer to the worker."""
    dish_name: str
    message_id: str
    channel_id: Optional[str] = None
    enqueued_at: int = field(default_factory=_epoch_seconds)

    @classmethod
    def for_request(cls, dish_name: str, identity: CorrelationIdentity) -> "QueueMessage":
        return cls(
            dish_name=dish_name,
            message_id=identity.message_id,
            channel_id=identity.channel_id,
        )

    def to_body(self) -> dict[str, Any]:
        return {
            "dish_name": self.dish_name,
            "message_id": self.message_id,
            "channel_id": self.channel_id,
            "timestamp": self.enqueued_at,
        }

    @classmethod
    def from_body(
        cls,
        body: str | bytes | dict[str, Any],
        delivery_id: Optional[str] = None,
    ) -> "QueueMessage":
        """
        Parse a queue body.

        Args:
            body: Raw JSON text or an already decoded document
            delivery_id: Transport id of the delivery, stable across redeliveries.
                Used as the message id when the body carries none.

        Raises:
            MalformedMessageError: Not a JSON object, no dish name, or no usable message id
        """
        if isinstance(body, (str, bytes)):
            try:
                body = json.loads(body)
            except ValueError as decode_error:
                raise MalformedMessageError("Body is not valid JSON", body) from decode_error

        if not isinstance(body, dict):
            raise MalformedMessageError("Body is not a JSON object", body)

        dish_name = body.get("dish_name")
        if not isinstance(dish_name, str) or not dish_name.strip():
            raise MalformedMessageError("Missing dish_name", body)

        # Older producers did not send correlation ids.
        message_id = body.get("message_id") or delivery_id
        if not message_id:
            raise MalformedMessageError("Missing message_id", body)
        timestamp = body.get("timestamp")

        return cls(
            dish_name=dish_name.strip(),
            message_id=str(message_id),
            channel_id=str(body["channel_id"]) if body.get("channel_id") else None,
            enqueued_at=int(timestamp) if isinstance(timestamp, (int, float)) else _epoch_seconds(),
        )


@dataclass(frozen=True)
class ProgressEvent:
    """Transient progress notification; never persisted."""
    percentage: int
    message: str
    dish_name: str
    timestamp: int = field(default_factory=_epoch_seconds)

    @classmethod
    def failure(cls, dish_name: str, message: str) -> "ProgressEvent":
        return cls(percentage=ERROR_PERCENTAGE, message=message, dish_name=dish_name)

    @property
    def is_error(self) -> bool:
        return self.percentage < 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "percentage": self.percentage,
            "message": self.message,
            "dish_name": self.dish_name,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class AcceptedInfo:
    """Result of a successful submission: the request is queued, not done."""
    dish_name: str
    message_id: str
    channel_id: str
    status: str = DishStatus.PROCESSING.value
    message: str = "Dish request is being processed"


STATUS_MESSAGES = {
    DishStatus.PROCESSING: "Dish is still being processed",
    DishStatus.COMPLETED: "Dish processing completed",
    DishStatus.FAILED: "Dish processing failed",
}


@dataclass(frozen=True)
class StatusPayload:
    """What a polling client sees for a message id."""
    status: DishStatus
    message_id: str
    name: Optional[str] = None
    ingredients: Optional[list[str]] = None

    @classmethod
    def from_dish(cls, dish: Dish) -> "StatusPayload":
        if dish.status == DishStatus.COMPLETED:
            return cls(
                status=dish.status,
                message_id=dish.message_id,
                name=dish.name,
                ingredients=list(dish.ingredients),
            )
        return cls(status=dish.status, message_id=dish.message_id)

    @property
    def message(self) -> str:
        return STATUS_MESSAGES[self.status]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status.value, "message_id": self.message_id}
        if self.status == DishStatus.COMPLETED:
            data["name"] = self.name
            data["ingredients"] = list(self.ingredients or [])
        return data
