from __future__ import annotations

import logging
import signal
import sys
import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from src.meal_decoder.domain.errors import (
    DishProcessingFailedError,
    EnrichmentError,
    EnrichmentTimeoutError,
    MalformedMessageError,
    MealDecoderError,
    PersistenceError,
    QueueTransportError,
    UnknownDishError,
    WorkerConfigurationError,
)
from src.meal_decoder.domain.models import Dish, DishStatus, ProgressEvent, QueueMessage
from src.meal_decoder.infra.db.base import DishRepository
from src.meal_decoder.infra.enrichment.base import IngredientProvider
from src.meal_decoder.infra.messaging.base import MessageQueue, ReceivedMessage
from src.meal_decoder.services.progress_publisher import ProgressPublisher
from workers.dish_enricher.config import WorkerConfig, get_config
from workers.dish_enricher.progress import (
    COMPLETED_PERCENT,
    FETCHING_PERCENT,
    PERSISTING_PERCENT,
    STARTED_PERCENT,
    EnrichmentProgressTicker,
)

logger = logging.getLogger("dish-worker")

ENRICHMENT_THREAD_NAME = "enrichment-call"


class ProcessingStage(str, Enum):
    RECEIVED = "received"
    LOCATED_OR_CREATED = "located_or_created"
    ENRICHING = "enriching"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"


class DishProcessor:
    """
    Runs one queue message through the enrichment state machine.

    `perform` returns the completed dish or raises after recording the
    failure, leaving retry decisions to the queue transport. Safe to call
    again for the same message: the dish is keyed by message id and a
    finished dish is never enriched twice.
    """

    def __init__(
        self,
        repository: DishRepository,
        provider: IngredientProvider,
        publisher: ProgressPublisher,
        enrichment_timeout_seconds: float = 60,
        progress_tick_seconds: float = 0,
    ):
        self.repo = repository
        self.provider = provider
        self.publisher = publisher
        self.enrichment_timeout_seconds = enrichment_timeout_seconds
        self.progress_tick_seconds = progress_tick_seconds
        self.stage: ProcessingStage | None = None

    def perform(self, body: str | bytes | dict[str, Any], delivery_id: str | None = None) -> Dish:
        message = self._parse(body, delivery_id)

        try:
            dish = self._locate_or_create(message)
        except PersistenceError as error:
            self._fail(message, error)
            raise

        if dish.is_complete:
            return self._replay_terminal(message, dish)

        self._publish(message, STARTED_PERCENT, f"Processing started for {message.dish_name}")

        try:
            ingredients = self._enrich(message)
            completed = self._persist(message, dish, ingredients)
        except (EnrichmentError, PersistenceError) as error:
            self._fail(message, error)
            raise

        self._enter(ProcessingStage.COMPLETED, message)
        self._publish(message, COMPLETED_PERCENT, "Dish processing completed")
        logger.info(
            "dish.worker_done message_id=%s name=%s ingredients=%d",
            message.message_id,
            completed.name,
            len(completed.ingredients),
        )
        return completed

    def _parse(self, body: str | bytes | dict[str, Any], delivery_id: str | None) -> QueueMessage:
        self.stage = ProcessingStage.RECEIVED
        try:
            message = QueueMessage.from_body(body, delivery_id=delivery_id)
        except MalformedMessageError as error:
            logger.error("dish.worker_malformed error=%s body=%r", error.reason, error.body)
            raise

        logger.info(
            "dish.worker_received message_id=%s name=%s",
            message.message_id,
            message.dish_name,
        )
        return message

    def _locate_or_create(self, message: QueueMessage) -> Dish:
        dish = self.repo.find_by_message_id(message.message_id)

        if dish is None:
            dish = self.repo.create_or_update(
                name=message.dish_name,
                status=DishStatus.PROCESSING,
                message_id=message.message_id,
                channel_id=message.channel_id,
            )
            logger.info("dish.worker_created message_id=%s id=%s", message.message_id, dish.id)
        else:
            logger.info(
                "dish.worker_found message_id=%s id=%s status=%s",
                message.message_id,
                dish.id,
                dish.status.value,
            )

        self._enter(ProcessingStage.LOCATED_OR_CREATED, message)
        return dish

    def _replay_terminal(self, message: QueueMessage, dish: Dish) -> Dish:
        logger.warning(
            "dish.worker_redelivered message_id=%s status=%s",
            message.message_id,
            dish.status.value,
        )

        if dish.status == DishStatus.COMPLETED:
            self._enter(ProcessingStage.COMPLETED, message)
            self._publish(message, COMPLETED_PERCENT, "Dish processing completed")
            return dish

        self._enter(ProcessingStage.FAILED, message)
        self.publisher.publish(
            message.channel_id,
            ProgressEvent.failure(message.dish_name, "Dish processing failed"),
        )
        raise DishProcessingFailedError(message.message_id, "Dish processing already failed")

    def _enrich(self, message: QueueMessage) -> list[str]:
        self._enter(ProcessingStage.ENRICHING, message)
        self._publish(message, FETCHING_PERCENT, f"Fetching ingredients for {message.dish_name}")

        ticker = EnrichmentProgressTicker(
            publisher=self.publisher,
            channel_id=message.channel_id,
            dish_name=message.dish_name,
            interval_seconds=self.progress_tick_seconds,
        )
        with ticker:
            ingredients = self._call_provider(message.dish_name)

        cleaned = [name.strip() for name in ingredients if name and name.strip()]
        if not cleaned:
            raise EnrichmentError(f"No ingredients returned for {message.dish_name}")
        return cleaned

    def _call_provider(self, dish_name: str) -> list[str]:
        """
        Run the provider on a daemon thread bounded by the enrichment timeout.

        A call that outlives the timeout is abandoned; being a daemon thread it
        never holds up interpreter exit.
        """
        outcome: dict[str, Any] = {}

        def call() -> None:
            try:
                outcome["ingredients"] = list(self.provider.fetch_ingredients(dish_name))
            except Exception as error:
                outcome["error"] = error

        thread = threading.Thread(target=call, name=ENRICHMENT_THREAD_NAME, daemon=True)
        thread.start()
        thread.join(timeout=self.enrichment_timeout_seconds)

        if thread.is_alive():
            logger.warning(
                "dish.worker_provider_abandoned name=%s timeout=%ss",
                dish_name,
                self.enrichment_timeout_seconds,
            )
            raise EnrichmentTimeoutError(dish_name, self.enrichment_timeout_seconds)

        error = outcome.get("error")
        if isinstance(error, EnrichmentError):
            raise error
        if error is not None:
            raise EnrichmentError(f"Enrichment provider error: {error}") from error
        return outcome["ingredients"]

    def close(self) -> None:
        self.publisher.close()

    def _persist(self, message: QueueMessage, dish: Dish, ingredients: list[str]) -> Dish:
        self._enter(ProcessingStage.PERSISTING, message)
        self._publish(message, PERSISTING_PERCENT, f"Saving {message.dish_name}")

        completed = dish.completed_with(ingredients)
        stored = self.repo.create_or_update(
            name=completed.name,
            status=completed.status,
            message_id=completed.message_id,
            ingredients=completed.ingredients,
            channel_id=completed.channel_id,
        )

        if stored.status != DishStatus.COMPLETED:
            raise PersistenceError(
                "create_or_update",
                f"dish {message.message_id} is {stored.status.value}, expected completed",
            )
        return stored

    def _fail(self, message: QueueMessage, error: Exception) -> None:
        self._enter(ProcessingStage.FAILED, message)
        reason = str(error)

        if isinstance(error, UnknownDishError):
            logger.warning("dish.worker_unknown_dish message_id=%s name=%s", message.message_id, message.dish_name)
        else:
            logger.error("dish.worker_failed message_id=%s error=%s", message.message_id, reason)

        try:
            stored = self.repo.update_status(message.message_id, DishStatus.FAILED)
        except PersistenceError as store_error:
            logger.error(
                "dish.worker_status_unrecorded message_id=%s error=%s",
                message.message_id,
                store_error,
            )
        else:
            if stored is None:
                logger.error("dish.worker_status_unrecorded message_id=%s error=no row", message.message_id)

        self.publisher.publish(message.channel_id, ProgressEvent.failure(message.dish_name, reason))

    def _publish(self, message: QueueMessage, percentage: int, text: str) -> None:
        self.publisher.publish(
            message.channel_id,
            ProgressEvent(percentage=percentage, message=text, dish_name=message.dish_name),
        )

    def _enter(self, stage: ProcessingStage, message: QueueMessage) -> None:
        self.stage = stage
        logger.debug("dish.worker_stage message_id=%s stage=%s", message.message_id, stage.value)


class DishWorker:
    """Long-running consumer: pulls one message at a time and acknowledges on success."""

    def __init__(
        self,
        config: WorkerConfig,
        queue: MessageQueue,
        processor: DishProcessor,
    ):
        self.config = config
        self.queue = queue
        self.processor = processor
        self.running = False
        self.current_delivery_id: str | None = None
        self.jobs_processed = 0
        self.jobs_failed = 0
        self.last_job_time: datetime | None = None
        self._stop_event = threading.Event()

    def start(self) -> None:
        self._validate_configuration()
        self._check_queue_reachable()
        self._setup_signal_handlers()
        self._log_startup_info()
        self.run()

    def run(self) -> None:
        self.running = True
        self._stop_event.clear()
        self._run_main_loop()
        self._shutdown()

    def stop(self) -> None:
        self.running = False
        self._stop_event.set()

    def _validate_configuration(self) -> None:
        errors = self.config.validate()
        if errors:
            raise WorkerConfigurationError(errors)

    def _check_queue_reachable(self) -> None:
        if not self.queue.exists():
            raise WorkerConfigurationError(["Dish queue is not reachable with the configured credentials"])

    def _setup_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_shutdown_signal)
        signal.signal(signal.SIGINT, self._handle_shutdown_signal)

    def _log_startup_info(self) -> None:
        logger.info(
            "Starting dish worker: id=%s, queue=%s, store=%s, wait=%ds",
            self.config.worker_id,
            self.config.queue_backend,
            self.config.store_backend,
            self.config.receive_wait_seconds,
        )

    def _run_main_loop(self) -> None:
        empty_polls = 0
        poll_interval = float(self.config.poll_interval_seconds)

        while self.running:
            messages = self._try_receive()

            if messages:
                empty_polls = 0
                poll_interval = float(self.config.poll_interval_seconds)
                for message in messages:
                    self._handle_delivery(message)

                if self._reached_max_jobs():
                    break
                continue

            empty_polls += 1
            poll_interval = self._calculate_backoff_interval(poll_interval)

            if self._should_shutdown_on_empty_queue():
                break

            logger.debug(
                "No messages available, sleeping %.1fs (empty_polls=%d)",
                poll_interval,
                empty_polls,
            )
            self._stop_event.wait(poll_interval)

    def _try_receive(self) -> list[ReceivedMessage]:
        try:
            return self.queue.receive(max_messages=1, wait_seconds=self.config.receive_wait_seconds)
        except QueueTransportError as error:
            logger.warning("Queue receive failed: %s", error)
            return []

    def _handle_delivery(self, delivery: ReceivedMessage) -> None:
        self.current_delivery_id = delivery.delivery_id
        self.last_job_time = datetime.now(timezone.utc)

        logger.info(
            "Processing delivery: id=%s, receive_count=%d",
            delivery.delivery_id,
            delivery.receive_count,
        )

        try:
            self.processor.perform(delivery.body, delivery_id=delivery.delivery_id)
        except MalformedMessageError as error:
            self.jobs_failed += 1
            logger.error("Dropping to dead-letter policy: id=%s, error=%s", delivery.delivery_id, error)
        except MealDecoderError as error:
            self.jobs_failed += 1
            logger.warning("Delivery failed, left for redelivery: id=%s, error=%s", delivery.delivery_id, error)
        except Exception:
            self.jobs_failed += 1
            logger.exception("Unexpected error processing delivery: id=%s", delivery.delivery_id)
        else:
            self._acknowledge(delivery)
            self.jobs_processed += 1
        finally:
            self.current_delivery_id = None

    def _acknowledge(self, delivery: ReceivedMessage) -> None:
        try:
            self.queue.delete(delivery.receipt_handle)
        except QueueTransportError as error:
            # The message comes back and is replayed against the finished dish.
            logger.warning("Failed to acknowledge delivery %s: %s", delivery.delivery_id, error)

    def _reached_max_jobs(self) -> bool:
        if self.config.max_jobs_per_run <= 0:
            return False

        if self.jobs_processed + self.jobs_failed >= self.config.max_jobs_per_run:
            logger.info(
                "Reached max jobs per run (%d), shutting down",
                self.config.max_jobs_per_run,
            )
            return True
        return False

    def _calculate_backoff_interval(self, current_interval: float) -> float:
        return min(
            current_interval * 1.5,
            float(self.config.max_poll_interval_seconds),
        )

    def _should_shutdown_on_empty_queue(self) -> bool:
        if not self.config.shutdown_on_empty:
            return False

        if self.last_job_time is None:
            return False

        idle_time = datetime.now(timezone.utc) - self.last_job_time
        shutdown_threshold = timedelta(minutes=self.config.empty_queue_shutdown_minutes)

        if idle_time > shutdown_threshold:
            logger.info(
                "Queue empty for %d minutes, shutting down",
                self.config.empty_queue_shutdown_minutes,
            )
            return True
        return False

    def _handle_shutdown_signal(self, signum: int, frame: object) -> None:
        logger.info("Received shutdown signal %d", signum)
        self.stop()

    def _shutdown(self) -> None:
        logger.info(
            "Worker shutting down: jobs_processed=%d, jobs_failed=%d",
            self.jobs_processed,
            self.jobs_failed,
        )

        if self.current_delivery_id:
            logger.info("Waiting for current delivery to complete: %s", self.current_delivery_id)

        self.processor.close()
        self.running = False
        logger.info("Worker shutdown complete")


def create_default_dependencies(config: WorkerConfig) -> tuple[
    DishRepository,
    MessageQueue,
    IngredientProvider,
    ProgressPublisher,
]:
    from src.meal_decoder.infra.enrichment.gemini_provider import GeminiIngredientProvider
    from src.meal_decoder.infra.notifications.faye_transport import FayeProgressTransport

    if config.store_backend == "memory":
        from src.meal_decoder.infra.db.memory_dishes_repo import InMemoryDishRepository

        repository: DishRepository = InMemoryDishRepository()
    else:
        from supabase import create_client

        from src.meal_decoder.infra.db.supabase_dishes_repo import SupabaseDishRepository

        repository = SupabaseDishRepository(create_client(config.supabase_url, config.supabase_key))

    if config.queue_backend == "memory":
        from src.meal_decoder.infra.messaging.memory_queue import InMemoryMessageQueue

        queue: MessageQueue = InMemoryMessageQueue(
            visibility_timeout_seconds=config.memory_queue_visibility_seconds,
            max_receive_count=config.memory_queue_max_receives,
        )
    else:
        from src.meal_decoder.infra.messaging.sqs_queue import SqsMessageQueue

        queue = SqsMessageQueue(
            queue_url=config.dish_queue_url,
            access_key_id=config.aws_access_key_id,
            secret_access_key=config.aws_secret_access_key,
            region=config.aws_region,
        )

    provider = GeminiIngredientProvider(
        api_key=config.gemini_api_key,
        model_name=config.gemini_model,
        timeout_seconds=config.enrichment_timeout_seconds,
    )
    publisher = ProgressPublisher(FayeProgressTransport(config.api_host))

    return repository, queue, provider, publisher


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    config = get_config()
    repository, queue, provider, publisher = create_default_dependencies(config)

    processor = DishProcessor(
        repository=repository,
        provider=provider,
        publisher=publisher,
        enrichment_timeout_seconds=config.enrichment_timeout_seconds,
        progress_tick_seconds=config.progress_tick_seconds,
    )
    worker = DishWorker(config=config, queue=queue, processor=processor)

    worker.start()


if __name__ == "__main__":
    main()
