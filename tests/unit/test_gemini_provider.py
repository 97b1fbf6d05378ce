from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import httpx
import pytest
from google.genai.errors import APIError

from src.meal_decoder.domain.errors import EnrichmentError, EnrichmentTimeoutError, UnknownDishError
from src.meal_decoder.infra.enrichment.gemini_provider import (
    GeminiConfigurationError,
    GeminiIngredientProvider,
    looks_like_unknown_dish,
    parse_ingredients,
)


class ModelsStub:
    def __init__(self, text: str | None = None, error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def generate_content(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


def _provider(text: str | None = None, error: Exception | None = None) -> tuple[GeminiIngredientProvider, ModelsStub]:
    models = ModelsStub(text=text, error=error)
    client = SimpleNamespace(models=models)
    return GeminiIngredientProvider(api_key="", client=client), models


class TestParseIngredients:
    def test_one_per_line(self) -> None:
        assert parse_ingredients("Spaghetti\nEggs\nPancetta\nParmesan") == [
            "Spaghetti",
            "Eggs",
            "Pancetta",
            "Parmesan",
        ]

    def test_strips_list_markers_and_blank_lines(self) -> None:
        text = "- Rice noodles\n\n* Beef.\n1. Star anise\n2) Basil,"

        assert parse_ingredients(text) == ["Rice noodles", "Beef", "Star anise", "Basil"]

    def test_removes_duplicates_case_insensitively(self) -> None:
        assert parse_ingredients("Salt\nsalt\nPepper") == ["Salt", "Pepper"]


class TestLooksLikeUnknownDish:
    def test_detects_refusal(self) -> None:
        assert looks_like_unknown_dish("I’m not familiar with Zzznonexistent.") is True

    def test_ingredient_list_is_not_refusal(self) -> None:
        assert looks_like_unknown_dish("Spaghetti\nEggs") is False


class TestGeminiIngredientProvider:
    def test_missing_api_key_raises(self) -> None:
        with pytest.raises(GeminiConfigurationError):
            GeminiIngredientProvider(api_key="")

    def test_returns_parsed_ingredients(self) -> None:
        provider, models = _provider(text="Spaghetti\nEggs\nPancetta\nParmesan\n")

        assert provider.fetch_ingredients("Spaghetti Carbonara") == [
            "Spaghetti",
            "Eggs",
            "Pancetta",
            "Parmesan",
        ]
        assert "Spaghetti Carbonara" in models.calls[0]["contents"]
        assert models.calls[0]["model"] == "gemini-2.5-flash"

    def test_unknown_dish_raises(self) -> None:
        provider, _ = _provider(text="I'm not sure what dish Zzznonexistent is.")

        with pytest.raises(UnknownDishError):
            provider.fetch_ingredients("Zzznonexistent")

    def test_empty_response_raises(self) -> None:
        provider, _ = _provider(text="")

        with pytest.raises(EnrichmentError):
            provider.fetch_ingredients("Pho")

    def test_timeout_raises_timeout_error(self) -> None:
        provider, _ = _provider(error=httpx.ReadTimeout("timed out"))

        with pytest.raises(EnrichmentTimeoutError):
            provider.fetch_ingredients("Pho")

    def test_api_error_raises_enrichment_error(self) -> None:
        error = APIError(429, {"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}})
        provider, _ = _provider(error=error)

        with pytest.raises(EnrichmentError) as exc_info:
            provider.fetch_ingredients("Pho")

        assert "rate limit" in str(exc_info.value)
