from __future__ import annotations

from src.meal_decoder.domain.errors import (
    DishNotFoundError,
    DishProcessingFailedError,
    DishValidationError,
    EnrichmentError,
    EnrichmentTimeoutError,
    MalformedMessageError,
    MealDecoderError,
    NotificationError,
    PersistenceError,
    QueueTransportError,
    UnknownDishError,
    WorkerConfigurationError,
)


class TestMealDecoderError:
    def test_base_exception(self) -> None:
        error = MealDecoderError("Base error")
        assert str(error) == "Base error"
        assert isinstance(error, Exception)


class TestDishValidationError:
    def test_keeps_field_errors(self) -> None:
        error = DishValidationError({"dish_name": ["must not be empty"]})

        assert error.errors == {"dish_name": ["must not be empty"]}
        assert "dish_name must not be empty" in str(error)


class TestQueueTransportError:
    def test_includes_operation_and_reason(self) -> None:
        error = QueueTransportError("send", "AccessDenied")

        assert "send" in str(error)
        assert "AccessDenied" in str(error)
        assert error.operation == "send"
        assert error.reason == "AccessDenied"


class TestMalformedMessageError:
    def test_keeps_body(self) -> None:
        error = MalformedMessageError("Missing dish_name", {"foo": 1})

        assert error.reason == "Missing dish_name"
        assert error.body == {"foo": 1}


class TestEnrichmentErrors:
    def test_unknown_dish_is_enrichment_error(self) -> None:
        error = UnknownDishError("Zzznonexistent")

        assert isinstance(error, EnrichmentError)
        assert str(error) == "Unknown dish: Zzznonexistent"
        assert error.dish_name == "Zzznonexistent"

    def test_timeout_includes_seconds(self) -> None:
        error = EnrichmentTimeoutError("Pho", 30)

        assert isinstance(error, EnrichmentError)
        assert "30" in str(error)
        assert error.timeout_seconds == 30


class TestPersistenceError:
    def test_includes_operation(self) -> None:
        error = PersistenceError("update_status", "connection reset")

        assert "update_status" in str(error)
        assert error.reason == "connection reset"


class TestNotificationError:
    def test_includes_channel(self) -> None:
        error = NotificationError("c1", "503")

        assert "c1" in str(error)
        assert error.channel_id == "c1"


class TestDishNotFoundError:
    def test_includes_message_id(self) -> None:
        error = DishNotFoundError("m-404")

        assert "m-404" in str(error)
        assert error.message_id == "m-404"


class TestDishProcessingFailedError:
    def test_includes_message_id(self) -> None:
        error = DishProcessingFailedError("m1")

        assert "m1" in str(error)
        assert isinstance(error, MealDecoderError)


class TestWorkerConfigurationError:
    def test_joins_errors(self) -> None:
        error = WorkerConfigurationError(["A is required", "B is required"])

        assert "A is required, B is required" in str(error)
        assert error.errors == ["A is required", "B is required"]
