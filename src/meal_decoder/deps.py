# src/meal_decoder/deps.py
"""
FastAPI dependency providers.
Concrete queue and store clients live on `app.state`; they are built once
per application in `main.create_app` and can be replaced there in tests.
"""
from __future__ import annotations

from fastapi import Depends, Request

from src.meal_decoder.config import Settings
from src.meal_decoder.infra.db.base import DishRepository
from src.meal_decoder.infra.messaging.base import MessageQueue
from src.meal_decoder.services.create_dish import CreateDish
from src.meal_decoder.services.fetch_dish import FetchDish
from src.meal_decoder.services.fetch_dish_status import FetchDishStatus


def build_repository(settings: Settings) -> DishRepository:
    if settings.STORE_BACKEND == "memory":
        from src.meal_decoder.infra.db.memory_dishes_repo import InMemoryDishRepository

        return InMemoryDishRepository()

    from supabase import create_client

    from src.meal_decoder.infra.db.supabase_dishes_repo import SupabaseDishRepository

    if settings.SUPABASE_URL is None or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")
    client = create_client(str(settings.SUPABASE_URL), settings.SUPABASE_SERVICE_ROLE_KEY)
    return SupabaseDishRepository(client)


def build_queue(settings: Settings) -> MessageQueue:
    if settings.QUEUE_BACKEND == "memory":
        from src.meal_decoder.infra.messaging.memory_queue import InMemoryMessageQueue

        return InMemoryMessageQueue(
            visibility_timeout_seconds=settings.MEMORY_QUEUE_VISIBILITY_SECONDS,
            max_receive_count=settings.MEMORY_QUEUE_MAX_RECEIVES,
        )

    from src.meal_decoder.infra.messaging.sqs_queue import SqsMessageQueue

    return SqsMessageQueue(
        queue_url=settings.DISH_QUEUE_URL,
        access_key_id=settings.AWS_ACCESS_KEY_ID,
        secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        region=settings.AWS_REGION,
        timeout_seconds=settings.QUEUE_SEND_TIMEOUT_SECONDS,
    )


def get_dish_repository(request: Request) -> DishRepository:
    return request.app.state.repository


def get_message_queue(request: Request) -> MessageQueue:
    return request.app.state.queue


def get_create_dish(
    queue: MessageQueue = Depends(get_message_queue),
    repository: DishRepository = Depends(get_dish_repository),
) -> CreateDish:
    return CreateDish(queue=queue, repository=repository)


def get_fetch_dish(
    repository: DishRepository = Depends(get_dish_repository),
) -> FetchDish:
    return FetchDish(repository)


def get_fetch_dish_status(
    repository: DishRepository = Depends(get_dish_repository),
) -> FetchDishStatus:
    return FetchDishStatus(repository)
