from __future__ import annotations

from abc import ABC, abstractmethod


class IngredientProvider(ABC):
    """
    Looks up the ingredients of a dish from an external service.

    Implementations raise UnknownDishError when the service does not
    recognise the dish and EnrichmentError for any other failure.
    """

    @abstractmethod
    def fetch_ingredients(self, dish_name: str) -> list[str]:
        pass
