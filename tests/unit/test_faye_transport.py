from __future__ import annotations

import json

import httpx
import pytest

from src.meal_decoder.domain.errors import NotificationError
from src.meal_decoder.infra.notifications.faye_transport import FayeProgressTransport, channel_path


def _transport_with(handler) -> FayeProgressTransport:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return FayeProgressTransport("http://localhost:9292/", client=client)


class TestFayeProgressTransport:
    def test_channel_path(self) -> None:
        assert channel_path("abc") == "/progress/abc"

    def test_posts_channel_and_encoded_data(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[{"successful": True}])

        transport = _transport_with(handler)
        transport.deliver("c1", {"percentage": 30, "message": "Fetching"})

        assert len(requests) == 1
        assert str(requests[0].url) == "http://localhost:9292/faye"
        body = json.loads(requests[0].content)
        assert body["channel"] == "/progress/c1"
        assert json.loads(body["data"]) == {"percentage": 30, "message": "Fetching"}

    def test_non_2xx_raises_notification_error(self) -> None:
        transport = _transport_with(lambda request: httpx.Response(503, text="unavailable"))

        with pytest.raises(NotificationError) as exc_info:
            transport.deliver("c1", {"percentage": 5})

        assert "503" in exc_info.value.reason
        assert exc_info.value.channel_id == "c1"

    def test_network_error_raises_notification_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = _transport_with(handler)

        with pytest.raises(NotificationError):
            transport.deliver("c1", {"percentage": 5})

    def test_close_closes_http_client(self) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        transport = FayeProgressTransport("http://localhost:9292", client=client)

        transport.close()

        assert client.is_closed is True
