from __future__ import annotations

from typing import Any


class MealDecoderError(Exception):
    pass


class DishValidationError(MealDecoderError):
    def __init__(self, errors: dict[str, list[str]]):
        details = "; ".join(f"{field} {', '.join(messages)}" for field, messages in errors.items())
        super().__init__(f"Invalid dish request: {details}")
        self.errors = errors


class QueueTransportError(MealDecoderError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Queue error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class MalformedMessageError(MealDecoderError):
    def __init__(self, reason: str, body: Any = None):
        super().__init__(f"Malformed queue message: {reason}")
        self.reason = reason
        self.body = body


class EnrichmentError(MealDecoderError):
    pass


class UnknownDishError(EnrichmentError):
    def __init__(self, dish_name: str):
        super().__init__(f"Unknown dish: {dish_name}")
        self.dish_name = dish_name


class EnrichmentTimeoutError(EnrichmentError):
    def __init__(self, dish_name: str, timeout_seconds: float):
        super().__init__(f"Enrichment of {dish_name} timed out after {timeout_seconds}s")
        self.dish_name = dish_name
        self.timeout_seconds = timeout_seconds


class PersistenceError(MealDecoderError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Dish store error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class NotificationError(MealDecoderError):
    def __init__(self, channel_id: str, reason: str):
        super().__init__(f"Failed to publish progress to {channel_id}: {reason}")
        self.channel_id = channel_id
        self.reason = reason


class DishNotFoundError(MealDecoderError):
    def __init__(self, message_id: str):
        super().__init__(f"No dish found for message ID: {message_id}")
        self.message_id = message_id


class DishNameNotFoundError(MealDecoderError):
    def __init__(self, dish_name: str):
        super().__init__(f"Could not find dish: {dish_name}")
        self.dish_name = dish_name


class DishProcessingFailedError(MealDecoderError):
    def __init__(self, message_id: str, reason: str = "Dish processing failed"):
        super().__init__(f"{reason}: {message_id}")
        self.message_id = message_id
        self.reason = reason


class InvalidStatusTransitionError(MealDecoderError):
    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move dish from {current} to {target}")
        self.current = current
        self.target = target


class WorkerConfigurationError(MealDecoderError):
    def __init__(self, errors: list[str]):
        super().__init__(f"Worker configuration errors: {', '.join(errors)}")
        self.errors = errors
