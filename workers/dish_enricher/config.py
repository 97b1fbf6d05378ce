# workers/dish_enricher/config.py
"""
Configuration for the dish enrichment worker.
"""
from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class WorkerConfig:
    """Configuration for the dish enrichment worker."""

    # Worker identification
    worker_id: str = os.getenv("WORKER_ID", f"worker-{os.getpid()}")

    # Polling configuration
    receive_wait_seconds: int = int(os.getenv("WORKER_RECEIVE_WAIT", "20"))
    poll_interval_seconds: int = int(os.getenv("WORKER_POLL_INTERVAL", "1"))
    max_poll_interval_seconds: int = int(os.getenv("WORKER_MAX_POLL_INTERVAL", "30"))

    # Processing configuration
    max_jobs_per_run: int = int(os.getenv("WORKER_MAX_JOBS_PER_RUN", "0"))  # 0 = infinite
    shutdown_on_empty: bool = os.getenv("WORKER_SHUTDOWN_ON_EMPTY", "false").lower() == "true"
    empty_queue_shutdown_minutes: int = int(os.getenv("WORKER_EMPTY_SHUTDOWN_MINUTES", "10"))

    # Enrichment
    enrichment_timeout_seconds: int = int(os.getenv("ENRICHMENT_TIMEOUT_SECONDS", "60"))
    progress_tick_seconds: float = float(os.getenv("WORKER_PROGRESS_TICK_SECONDS", "1"))
    gemini_api_key: str = os.getenv("GEMINI_API_KEY", "")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    # Backends
    queue_backend: str = os.getenv("QUEUE_BACKEND", "sqs")
    store_backend: str = os.getenv("STORE_BACKEND", "supabase")
    memory_queue_visibility_seconds: float = float(os.getenv("MEMORY_QUEUE_VISIBILITY_SECONDS", "30"))
    memory_queue_max_receives: int = int(os.getenv("MEMORY_QUEUE_MAX_RECEIVES", "3"))

    # Supabase
    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_key: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    # SQS
    dish_queue_url: str = os.getenv("DISH_QUEUE_URL", "")
    aws_access_key_id: str = os.getenv("AWS_ACCESS_KEY_ID", "")
    aws_secret_access_key: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
    aws_region: str = os.getenv("AWS_REGION", "us-east-1")

    # Progress relay
    api_host: str = os.getenv("API_HOST", "http://localhost:9292")

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if self.queue_backend not in ("sqs", "memory"):
            errors.append("QUEUE_BACKEND must be 'sqs' or 'memory'")
        if self.store_backend not in ("supabase", "memory"):
            errors.append("STORE_BACKEND must be 'supabase' or 'memory'")

        if self.store_backend == "supabase":
            if not self.supabase_url:
                errors.append("SUPABASE_URL is required")
            if not self.supabase_key:
                errors.append("SUPABASE_SERVICE_ROLE_KEY is required")

        if self.queue_backend == "sqs" and not self.dish_queue_url:
            errors.append("DISH_QUEUE_URL is required")

        if not self.gemini_api_key:
            errors.append("GEMINI_API_KEY is required")
        if self.enrichment_timeout_seconds <= 0:
            errors.append("ENRICHMENT_TIMEOUT_SECONDS must be positive")

        return errors


def get_config() -> WorkerConfig:
    """Get worker configuration from environment."""
    return WorkerConfig()
