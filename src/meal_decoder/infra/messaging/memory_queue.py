from __future__ import annotations

import json
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Optional
from uuid import uuid4

from src.meal_decoder.infra.messaging.base import MessageQueue, ReceivedMessage

logger = logging.getLogger(__name__)


@dataclass
class _Envelope:
    delivery_id: str
    body: str
    receive_count: int = 0
    received_at: float = 0.0


class InMemoryMessageQueue(MessageQueue):
    """
    Single-process queue with SQS-like visibility.

    Received messages stay in flight until deleted. With
    `visibility_timeout_seconds` set, an unacknowledged message becomes
    visible again once the timeout passes; without it only
    `release_unacked` brings it back. A message received
    `max_receive_count` times without being deleted moves to
    `dead_letters` instead of being redelivered, like an SQS redrive policy.
    """

    def __init__(
        self,
        visibility_timeout_seconds: Optional[float] = None,
        max_receive_count: Optional[int] = None,
    ) -> None:
        self.visibility_timeout_seconds = visibility_timeout_seconds
        self.max_receive_count = max_receive_count
        self._condition = threading.Condition()
        self._visible: deque[_Envelope] = deque()
        self._in_flight: dict[str, _Envelope] = {}
        self.dead_letters: list[str] = []
        self.sent_count = 0

    def send(self, payload: dict[str, Any]) -> str:
        envelope = _Envelope(delivery_id=str(uuid4()), body=json.dumps(payload))
        with self._condition:
            self._visible.append(envelope)
            self.sent_count += 1
            self._condition.notify()
        logger.debug("Queued message: delivery_id=%s", envelope.delivery_id)
        return envelope.delivery_id

    def receive(self, max_messages: int = 1, wait_seconds: int = 20) -> list[ReceivedMessage]:
        with self._condition:
            self._expire_in_flight()
            if not self._visible and wait_seconds > 0:
                self._condition.wait(timeout=wait_seconds)
                self._expire_in_flight()

            received: list[ReceivedMessage] = []
            while self._visible and len(received) < max_messages:
                envelope = self._visible.popleft()
                envelope.receive_count += 1
                envelope.received_at = time.monotonic()
                receipt_handle = str(uuid4())
                self._in_flight[receipt_handle] = envelope
                received.append(
                    ReceivedMessage(
                        delivery_id=envelope.delivery_id,
                        receipt_handle=receipt_handle,
                        body=envelope.body,
                        receive_count=envelope.receive_count,
                    )
                )
            return received

    def delete(self, receipt_handle: str) -> None:
        with self._condition:
            self._in_flight.pop(receipt_handle, None)

    def exists(self) -> bool:
        return True

    def release_unacked(self) -> int:
        """Make every in-flight message visible again. Returns how many were released."""
        with self._condition:
            released = list(self._in_flight.values())
            self._in_flight.clear()
            for envelope in released:
                self._requeue(envelope)
            if released:
                self._condition.notify_all()
            return len(released)

    def _expire_in_flight(self) -> None:
        if self.visibility_timeout_seconds is None:
            return

        deadline = time.monotonic() - self.visibility_timeout_seconds
        expired = [handle for handle, envelope in self._in_flight.items() if envelope.received_at <= deadline]
        for handle in expired:
            self._requeue(self._in_flight.pop(handle))

    def _requeue(self, envelope: _Envelope) -> None:
        if self.max_receive_count is not None and envelope.receive_count >= self.max_receive_count:
            self.dead_letters.append(envelope.body)
            logger.warning(
                "Message dead-lettered: delivery_id=%s, receive_count=%d",
                envelope.delivery_id,
                envelope.receive_count,
            )
            return
        self._visible.append(envelope)

    @property
    def visible_count(self) -> int:
        with self._condition:
            return len(self._visible)

    @property
    def in_flight_count(self) -> int:
        with self._condition:
            return len(self._in_flight)
