# src/meal_decoder/main.py
from __future__ import annotations

import logging
import sys
import threading
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.meal_decoder.config import Settings, get_settings
from src.meal_decoder.deps import build_queue, build_repository
from src.meal_decoder.infra.db.base import DishRepository
from src.meal_decoder.infra.messaging.base import MessageQueue
from src.meal_decoder.routers.dishes import router as dishes_router

logger = logging.getLogger(__name__)


def _start_in_process_worker(app: FastAPI, settings: Settings) -> None:
    """With the in-memory queue the worker has to share the API process."""
    if not settings.GEMINI_API_KEY:
        logger.warning("In-memory queue without GEMINI_API_KEY: dish requests will stay queued")
        return

    from src.meal_decoder.infra.enrichment.gemini_provider import GeminiIngredientProvider
    from src.meal_decoder.infra.notifications.faye_transport import FayeProgressTransport
    from src.meal_decoder.services.progress_publisher import ProgressPublisher
    from workers.dish_enricher.config import WorkerConfig
    from workers.dish_enricher.main import DishProcessor, DishWorker

    config = WorkerConfig(
        worker_id="in-process",
        queue_backend="memory",
        store_backend=settings.STORE_BACKEND,
        receive_wait_seconds=1,
        enrichment_timeout_seconds=settings.ENRICHMENT_TIMEOUT_SECONDS,
    )
    processor = DishProcessor(
        repository=app.state.repository,
        provider=GeminiIngredientProvider(
            api_key=settings.GEMINI_API_KEY,
            model_name=settings.GEMINI_MODEL,
            timeout_seconds=settings.ENRICHMENT_TIMEOUT_SECONDS,
        ),
        publisher=ProgressPublisher(FayeProgressTransport(settings.API_HOST)),
        enrichment_timeout_seconds=settings.ENRICHMENT_TIMEOUT_SECONDS,
        progress_tick_seconds=config.progress_tick_seconds,
    )
    worker = DishWorker(config=config, queue=app.state.queue, processor=processor)
    thread = threading.Thread(target=worker.run, name="dish-worker", daemon=True)
    thread.start()
    app.state.worker = worker
    app.state.worker_thread = thread


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[DishRepository] = None,
    queue: Optional[MessageQueue] = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "repository", None) is None:
            app.state.repository = build_repository(settings)
        if getattr(app.state, "queue", None) is None:
            app.state.queue = build_queue(settings)
        if settings.QUEUE_BACKEND == "memory" and getattr(app.state, "worker", None) is None:
            _start_in_process_worker(app, settings)
        yield
        worker = getattr(app.state, "worker", None)
        if worker is not None:
            worker.stop()
            app.state.worker_thread.join(timeout=5)
            app.state.worker = None

    app = FastAPI(title="Meal Decoder API", version="0.3.0", lifespan=lifespan)
    app.state.repository = repository
    app.state.queue = queue
    app.state.worker = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.FRONTEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(dishes_router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

app = create_app()
