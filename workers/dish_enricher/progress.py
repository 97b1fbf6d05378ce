from __future__ import annotations

import logging
import threading
from typing import Optional

from src.meal_decoder.domain.models import ProgressEvent
from src.meal_decoder.services.progress_publisher import ProgressPublisher

logger = logging.getLogger("dish-worker.progress")

STARTED_PERCENT = 5
FETCHING_PERCENT = 30
PERSISTING_PERCENT = 70
COMPLETED_PERCENT = 100


class ProgressCalculator:
    """Linear interpolation from start_percent to end_percent over a number of steps."""

    def __init__(self, steps: int, start_percent: int, end_percent: int) -> None:
        self.steps = max(steps, 1)
        self.start_percent = start_percent
        self.end_percent = end_percent
        self._step = (end_percent - start_percent) / float(self.steps)

    def current_percent(self, iteration: int) -> int:
        value = round(self.start_percent + self._step * iteration)
        return min(max(value, self.start_percent), self.end_percent)


class EnrichmentProgressTicker:
    """
    Emits interpolated progress while the enrichment call is in flight.

    Once `stop` returns nothing else is published, so the caller's next
    checkpoint is never overtaken by a late tick.
    """

    def __init__(
        self,
        publisher: ProgressPublisher,
        channel_id: Optional[str],
        dish_name: str,
        interval_seconds: float,
        steps: int = 10,
        start_percent: int = FETCHING_PERCENT,
        end_percent: int = PERSISTING_PERCENT - 1,
    ) -> None:
        self.publisher = publisher
        self.channel_id = channel_id
        self.dish_name = dish_name
        self.interval_seconds = interval_seconds
        self.calculator = ProgressCalculator(steps, start_percent, end_percent)
        self.last_percent = start_percent
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._stopped = False
        self._thread: threading.Thread | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.channel_id) and self.interval_seconds > 0

    def start(self) -> None:
        if not self.enabled:
            return
        self._thread = threading.Thread(target=self._run, name="enrichment-progress", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        with self._lock:
            self._stopped = True
            self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval_seconds)
            self._thread = None

    def __enter__(self) -> "EnrichmentProgressTicker":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _run(self) -> None:
        iteration = 1
        while not self._stop_event.wait(self.interval_seconds):
            percent = self.calculator.current_percent(iteration)
            with self._lock:
                if self._stopped:
                    return
                if percent > self.last_percent:
                    self.publisher.publish(
                        self.channel_id,
                        ProgressEvent(
                            percentage=percent,
                            message=f"Fetching ingredients for {self.dish_name}",
                            dish_name=self.dish_name,
                        ),
                    )
                    self.last_percent = percent
            if percent >= self.calculator.end_percent:
                return
            iteration += 1
