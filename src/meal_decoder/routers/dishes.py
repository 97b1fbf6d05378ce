# src/meal_decoder/routers/dishes.py
"""
Dish request routes for async enrichment.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from src.meal_decoder.deps import get_create_dish, get_fetch_dish, get_fetch_dish_status
from src.meal_decoder.domain.errors import (
    DishNameNotFoundError,
    DishNotFoundError,
    DishValidationError,
    PersistenceError,
    QueueTransportError,
)
from src.meal_decoder.schemas.dish import AcceptedResponse, DishResponse, DishStatusResponse
from src.meal_decoder.services.create_dish import CreateDish
from src.meal_decoder.services.fetch_dish import FetchDish
from src.meal_decoder.services.fetch_dish_status import FetchDishStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/dishes", tags=["Dishes"])


class CreateDishBody(BaseModel):
    dish_name: Optional[Any] = None


@router.post("", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
def create_dish(
    body: CreateDishBody,
    service: CreateDish = Depends(get_create_dish),
):
    """
    Queue a dish for ingredient enrichment.

    Poll GET /v1/dishes/status/{message_id} or subscribe to
    /progress/{channel_id} for the outcome.
    """
    try:
        accepted = service.submit(body.dish_name)
    except DishValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"message": "Invalid dish request", "errors": e.errors},
        )
    except QueueTransportError as e:
        logger.error("Failed to queue dish request: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dish queue unavailable, please retry",
        )

    return AcceptedResponse(
        status=accepted.status,
        message=accepted.message,
        dish_name=accepted.dish_name,
        message_id=accepted.message_id,
        channel_id=accepted.channel_id,
    )


@router.get("/status/{message_id}", response_model=DishStatusResponse, response_model_exclude_none=True)
def get_dish_status(
    message_id: str,
    service: FetchDishStatus = Depends(get_fetch_dish_status),
):
    """
    Current status of a queued dish.

    Recommended polling interval: 2-5 seconds.
    """
    try:
        payload = service.status_for(message_id)
    except DishNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        logger.error("Failed to read dish status: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dish store unavailable, please retry",
        )

    return DishStatusResponse(message=payload.message, **payload.to_dict())


@router.get("/{dish_name}", response_model=DishResponse)
def get_dish(
    dish_name: str,
    service: FetchDish = Depends(get_fetch_dish),
):
    """Most recent dish stored under this name, in any status."""
    try:
        dish = service.by_name(dish_name)
    except DishNameNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        logger.error("Failed to read dish: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dish store unavailable, please retry",
        )

    return DishResponse(
        id=dish.id,
        name=dish.name,
        status=dish.status.value,
        message_id=dish.message_id,
        ingredients=dish.ingredients,
    )
