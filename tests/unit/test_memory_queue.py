from __future__ import annotations

import json

from src.meal_decoder.infra.messaging.memory_queue import InMemoryMessageQueue


class TestInMemoryMessageQueue:
    def test_send_then_receive(self) -> None:
        queue = InMemoryMessageQueue()
        delivery_id = queue.send({"dish_name": "Pho", "message_id": "m1"})

        received = queue.receive(wait_seconds=0)

        assert len(received) == 1
        assert received[0].delivery_id == delivery_id
        assert json.loads(received[0].body) == {"dish_name": "Pho", "message_id": "m1"}
        assert received[0].receive_count == 1

    def test_empty_queue_returns_nothing(self) -> None:
        assert InMemoryMessageQueue().receive(wait_seconds=0) == []

    def test_received_message_is_invisible_until_released(self) -> None:
        queue = InMemoryMessageQueue()
        queue.send({"dish_name": "Pho"})
        queue.receive(wait_seconds=0)

        assert queue.receive(wait_seconds=0) == []
        assert queue.in_flight_count == 1

        assert queue.release_unacked() == 1
        redelivered = queue.receive(wait_seconds=0)

        assert len(redelivered) == 1
        assert redelivered[0].receive_count == 2

    def test_delete_acknowledges(self) -> None:
        queue = InMemoryMessageQueue()
        queue.send({"dish_name": "Pho"})
        received = queue.receive(wait_seconds=0)

        queue.delete(received[0].receipt_handle)

        assert queue.in_flight_count == 0
        assert queue.release_unacked() == 0
        assert queue.visible_count == 0

    def test_receive_respects_max_messages(self) -> None:
        queue = InMemoryMessageQueue()
        for name in ("Pho", "Ramen", "Laksa"):
            queue.send({"dish_name": name})

        received = queue.receive(max_messages=2, wait_seconds=0)

        assert len(received) == 2
        assert queue.visible_count == 1
        assert queue.sent_count == 3

    def test_exists(self) -> None:
        assert InMemoryMessageQueue().exists() is True


class TestInMemoryMessageQueueVisibility:
    def test_unacked_message_returns_after_visibility_timeout(self) -> None:
        queue = InMemoryMessageQueue(visibility_timeout_seconds=0)
        delivery_id = queue.send({"dish_name": "Pho"})
        queue.receive(wait_seconds=0)

        redelivered = queue.receive(wait_seconds=0)

        assert len(redelivered) == 1
        assert redelivered[0].delivery_id == delivery_id
        assert redelivered[0].receive_count == 2

    def test_acknowledged_message_is_not_redelivered(self) -> None:
        queue = InMemoryMessageQueue(visibility_timeout_seconds=0)
        queue.send({"dish_name": "Pho"})
        received = queue.receive(wait_seconds=0)
        queue.delete(received[0].receipt_handle)

        assert queue.receive(wait_seconds=0) == []

    def test_message_stays_in_flight_within_timeout(self) -> None:
        queue = InMemoryMessageQueue(visibility_timeout_seconds=60)
        queue.send({"dish_name": "Pho"})
        queue.receive(wait_seconds=0)

        assert queue.receive(wait_seconds=0) == []
        assert queue.in_flight_count == 1

    def test_dead_letters_after_max_receive_count(self) -> None:
        queue = InMemoryMessageQueue(visibility_timeout_seconds=0, max_receive_count=2)
        queue.send({"dish_name": "Pho"})
        queue.receive(wait_seconds=0)
        queue.receive(wait_seconds=0)

        assert queue.receive(wait_seconds=0) == []
        assert [json.loads(body) for body in queue.dead_letters] == [{"dish_name": "Pho"}]

    def test_release_unacked_respects_max_receive_count(self) -> None:
        queue = InMemoryMessageQueue(max_receive_count=1)
        queue.send({"dish_name": "Pho"})
        queue.receive(wait_seconds=0)

        assert queue.release_unacked() == 1
        assert queue.visible_count == 0
        assert len(queue.dead_letters) == 1
