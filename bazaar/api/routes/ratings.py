"""Rating routes."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from bazaar.api.deps import Principal, get_services, require_user
from bazaar.container import Services

router = APIRouter(prefix="/api/ratings", tags=["ratings"])


class RatingCreate(BaseModel):
    order_id: str
    score: int
    comment: Optional[str] = None


class RatingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    rater_id: str
    target_user_id: str
    order_id: str
    score: int
    comment: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class RatingStatsResponse(BaseModel):
    total_reviews: int
    average_rating: float


@router.post("", response_model=RatingResponse)
async def submit_rating(
    data: RatingCreate,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    """Rate the other party of a completed order."""
    return await services.ratings.submit_rating(user.user_id, data.order_id, data.score, data.comment)


@router.get("/{user_id}/stats", response_model=RatingStatsResponse)
async def rating_stats(user_id: str, services: Services = Depends(get_services)):
    stats = await services.ratings.get_user_stats(user_id)
    return RatingStatsResponse(total_reviews=stats.total_reviews, average_rating=stats.average_rating)
