from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

MAX_DISH_NAME_LENGTH = 100


def _is_allowed_character(char: str) -> bool:
    return char.isalpha() or char.isdigit() or char.isspace()


class DishRequest(BaseModel):
    """Shared dish-name rule: letters, digits and spaces from any script, at most 100 characters."""
    dish_name: str

    @field_validator("dish_name")
    @classmethod
    def validate_dish_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be empty")
        if len(value) > MAX_DISH_NAME_LENGTH:
            raise ValueError(f"must be less than {MAX_DISH_NAME_LENGTH} characters")
        if not all(_is_allowed_character(char) for char in stripped):
            raise ValueError("must contain only letters and spaces")
        return stripped


class AcceptedResponse(BaseModel):
    status: str = Field(..., description="Always 'processing' on acceptance")
    message: str
    dish_name: str
    message_id: str = Field(..., description="Poll GET /v1/dishes/status/{message_id}")
    channel_id: str = Field(..., description="Subscribe to /progress/{channel_id} for updates")


class DishStatusResponse(BaseModel):
    status: str = Field(..., description="processing, completed or failed")
    message_id: str
    message: str
    name: Optional[str] = None
    ingredients: Optional[list[str]] = None


class DishResponse(BaseModel):
    id: Optional[int] = None
    name: str
    status: str
    message_id: str
    ingredients: list[str] = Field(default_factory=list)
