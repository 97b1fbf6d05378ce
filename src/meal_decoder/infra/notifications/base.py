from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ProgressTransport(ABC):
    """
    Delivers a progress document to subscribers of a channel.

    No acknowledgement is awaited beyond the transport call itself.
    Implementations raise NotificationError on failure.
    """

    @abstractmethod
    def deliver(self, channel_id: str, data: dict[str, Any]) -> None:
        pass

    def close(self) -> None:
        """Release connections held by the transport."""
