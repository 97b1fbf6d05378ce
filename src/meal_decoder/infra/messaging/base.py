# src/meal_decoder/infra/messaging/base.py
"""
Abstract base class for the dish request queue.
Delivery is at-least-once and unordered; consumers must be idempotent.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ReceivedMessage:
    """A delivery handed to a consumer. Delete it by receipt handle to acknowledge."""
    delivery_id: str
    receipt_handle: str
    body: str
    receive_count: int = 1


class MessageQueue(ABC):
    """
    Abstract interface for queue transport.

    Redelivery, visibility timeouts and dead-letter routing belong to the
    transport configuration, not to callers.

    Implementations:
    - SqsMessageQueue: AWS SQS
    - InMemoryMessageQueue: single process, for local runs and tests
    """

    @abstractmethod
    def send(self, payload: dict[str, Any]) -> str:
        """
        Enqueue a message.

        Args:
            payload: Flat JSON-serializable document

        Returns:
            Transport delivery id

        Raises:
            QueueTransportError: queue unreachable, auth or configuration failure
        """
        pass

    @abstractmethod
    def receive(self, max_messages: int = 1, wait_seconds: int = 20) -> list[ReceivedMessage]:
        """
        Long-poll for messages.

        Args:
            max_messages: Upper bound on messages returned
            wait_seconds: How long to wait when the queue is empty

        Returns:
            Zero or more deliveries
        """
        pass

    @abstractmethod
    def delete(self, receipt_handle: str) -> None:
        """
        Acknowledge a delivery so it is not redelivered.

        Args:
            receipt_handle: Handle from ReceivedMessage
        """
        pass

    @abstractmethod
    def exists(self) -> bool:
        """
        Check the queue is reachable.

        Returns:
            True if the queue answers with the configured credentials
        """
        pass
