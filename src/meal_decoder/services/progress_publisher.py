# src/meal_decoder/services/progress_publisher.py
"""
Best-effort progress notifications keyed by channel id.
A lost event only costs responsiveness; it never fails a job.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from src.meal_decoder.domain.errors import NotificationError
from src.meal_decoder.domain.models import ProgressEvent
from src.meal_decoder.infra.notifications.base import ProgressTransport

logger = logging.getLogger(__name__)


class ProgressPublisher:
    def __init__(self, transport: ProgressTransport):
        self._transport = transport
        self.published_count = 0
        self.dropped_count = 0
        self.failures_published = 0

    def publish(self, channel_id: Optional[str], event: ProgressEvent) -> None:
        if not channel_id:
            return

        try:
            self._transport.deliver(channel_id, event.to_dict())
        except (NotificationError, httpx.HTTPError, OSError) as error:
            self.dropped_count += 1
            logger.warning(
                "progress.publish_failed channel=%s percentage=%s error=%s",
                channel_id,
                event.percentage,
                error,
            )
            return
        except Exception:
            self.dropped_count += 1
            logger.exception("progress.publish_unexpected_error channel=%s", channel_id)
            return

        self.published_count += 1
        if event.is_error:
            self.failures_published += 1
            logger.info("progress.failure_published channel=%s message=%s", channel_id, event.message)

    def close(self) -> None:
        self._transport.close()
