from __future__ import annotations

import logging
import re

import httpx
from google import genai
from google.genai import types
from google.genai.errors import APIError

from src.meal_decoder.domain.errors import EnrichmentError, EnrichmentTimeoutError, UnknownDishError
from src.meal_decoder.infra.enrichment.base import IngredientProvider

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant that lists ingredients. Provide only the "
    "ingredient names, one per line. Do not include measurements, numbers, "
    "or any other text. If you do not know the dish, say so directly."
)

UNKNOWN_DISH_PHRASES = (
    "i'm not sure",
    "i don't have information",
    "i'm not familiar with",
    "i don't know",
    "unable to provide ingredients",
    "not a recognized dish",
    "doesn't appear to be a specific dish",
    "i don't have enough information",
    "it's unclear what dish you're referring to",
    "i'm sorry, but i can't provide information",
)

_LIST_MARKER_RE = re.compile(r"^\s*(?:[-*•]+|\d+[.)])\s*")


class GeminiConfigurationError(EnrichmentError):
    pass


def looks_like_unknown_dish(text: str) -> bool:
    lowered = text.lower().replace("’", "'")
    return any(phrase in lowered for phrase in UNKNOWN_DISH_PHRASES)


def parse_ingredients(text: str) -> list[str]:
    """One ingredient per line; list markers dropped, duplicates removed keeping order."""
    ingredients: list[str] = []
    seen: set[str] = set()

    for line in text.splitlines():
        name = _LIST_MARKER_RE.sub("", line).strip().rstrip(".,;")
        if not name:
            continue
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        ingredients.append(name)

    return ingredients


class GeminiIngredientProvider(IngredientProvider):
    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-2.5-flash",
        timeout_seconds: int = 60,
        client: genai.Client | None = None,
    ) -> None:
        if not api_key and client is None:
            raise GeminiConfigurationError("Missing Gemini API key.")
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self._client = client or genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=timeout_seconds * 1000),
        )

    def fetch_ingredients(self, dish_name: str) -> list[str]:
        text = self._generate(dish_name)

        if looks_like_unknown_dish(text):
            logger.info("Gemini does not recognise dish: %s", dish_name)
            raise UnknownDishError(dish_name)

        ingredients = parse_ingredients(text)
        if not ingredients:
            raise EnrichmentError(f"No ingredients returned for {dish_name}")

        return ingredients

    def _generate(self, dish_name: str) -> str:
        try:
            response = self._client.models.generate_content(
                model=self.model_name,
                contents=f"List the ingredients in {dish_name}, providing only the ingredient names:",
                config=types.GenerateContentConfig(
                    system_instruction=SYSTEM_PROMPT,
                    temperature=0.7,
                ),
            )
        except httpx.TimeoutException as error:
            raise EnrichmentTimeoutError(dish_name, self.timeout_seconds) from error
        except APIError as error:
            if error.code == 429:
                raise EnrichmentError("Gemini rate limit reached, try again shortly") from error
            raise EnrichmentError(f"Gemini API error: {error}") from error
        except httpx.HTTPError as error:
            raise EnrichmentError(f"Network error calling Gemini: {error}") from error

        text = response.text if response else None
        if not text:
            raise EnrichmentError(f"Empty response from Gemini for {dish_name}")
        return text.strip()
