"""User ratings left after a completed order."""

import logging
from dataclasses import dataclass
from typing import Optional

from bazaar import metrics
from bazaar.db.models import Rating
from bazaar.errors import ForbiddenError, NotFoundError, ValidationError
from bazaar.repositories.base import Repositories

logger = logging.getLogger(__name__)

MIN_SCORE = 1
MAX_SCORE = 5
MAX_COMMENT_LENGTH = 1000


@dataclass
class RatingStats:
    total_reviews: int
    average_rating: float


class RatingService:
    """
    Buyers and sellers rate each other once their order is completed.

    A rater holds one rating per counterpart; rating the same user again
    (for example after a second order) replaces the earlier score.
    """

    def __init__(self, repos: Repositories):
        self.repos = repos

    async def submit_rating(
        self,
        rater_id: str,
        order_id: str,
        score: int,
        comment: Optional[str] = None,
    ) -> Rating:
        if isinstance(score, bool) or not isinstance(score, int):
            raise ValidationError("INVALID_RATING_SCORE")
        if not MIN_SCORE <= score <= MAX_SCORE:
            raise ValidationError("INVALID_RATING_SCORE")

        comment = (comment or "").strip() or None
        if comment is not None and len(comment) > MAX_COMMENT_LENGTH:
            raise ValidationError("INVALID_DATA")

        order = await self.repos.orders.get(order_id)
        if order is None:
            raise NotFoundError("ORDER_NOT_FOUND")
        if rater_id not in (order.buyer_id, order.seller_id):
            raise ForbiddenError("NOT_ORDER_PARTY")
        if order.status != "completed":
            raise ValidationError("ORDER_NOT_COMPLETED")

        target_id = order.seller_id if rater_id == order.buyer_id else order.buyer_id
        rating = await self.repos.ratings.upsert(rater_id, target_id, order_id, score, comment)

        metrics.ratings_submitted_total.labels(score=str(score)).inc()
        logger.info(f"User {rater_id} rated {target_id} {score}/5 for order {order_id}")
        return rating

    async def get_user_stats(self, user_id: str) -> RatingStats:
        total, average = await self.repos.ratings.stats_for(user_id)
        if not total or average is None:
            return RatingStats(total_reviews=0, average_rating=0)
        return RatingStats(total_reviews=total, average_rating=round(average, 2))
