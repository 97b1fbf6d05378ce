from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from src.meal_decoder.domain.errors import NotificationError
from src.meal_decoder.infra.notifications.base import ProgressTransport

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


def channel_path(channel_id: str) -> str:
    return f"/progress/{channel_id}"


class FayeProgressTransport(ProgressTransport):
    """Publishes to a Faye (Bayeux) server through its HTTP endpoint."""

    def __init__(
        self,
        api_host: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ) -> None:
        self.faye_url = f"{api_host.rstrip('/')}/faye"
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def deliver(self, channel_id: str, data: dict[str, Any]) -> None:
        body = {"channel": channel_path(channel_id), "data": json.dumps(data)}

        try:
            response = self._client.post(self.faye_url, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as error:
            raise NotificationError(
                channel_id,
                f"{error.response.status_code} - {error.response.text}",
            ) from error
        except httpx.HTTPError as error:
            raise NotificationError(channel_id, str(error)) from error

        logger.debug("Published progress: channel=%s", body["channel"])

    def close(self) -> None:
        self._client.close()
