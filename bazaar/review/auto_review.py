"""Automated moderation of listings waiting for review.

Listings are processed one at a time with a fixed pause between them so the
AI provider's rate limits are respected. Each listing's update is its own
write; a failure on one listing never rolls back another.
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from bazaar import metrics
from bazaar.ai.content_service import AIContentService
from bazaar.ai.schemas import AuditResult
from bazaar.ai.translation_cache import TranslationCache
from bazaar.catalog.categories import classify, normalize_subcategory
from bazaar.config import Settings, settings as default_settings
from bazaar.db.models import Product, utcnow
from bazaar.notify.indexnow import IndexNowClient
from bazaar.repositories.base import ProductRepository

logger = logging.getLogger(__name__)

APPROVED_NOTE = "[AI auto-review] approved, confidence: {confidence}%"
CORRECTED_NOTE = '[AI auto-review] approved, category corrected from "{old}" to "{new}"'
FLAGGED_NOTE = "[AI flagged] {reason}"
DEFAULT_FLAG_REASON = "Safety needs human confirmation"


@dataclass
class ReviewStats:
    approved: int = 0
    category_corrected: int = 0
    flagged: int = 0
    errors: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ReviewCandidate:
    """Listing fields read once before the run.

    A failed write rolls the session back and expires loaded rows, so the
    loop works on these plain values rather than on ORM instances.
    """

    id: str
    title: str
    description: str
    category: str

    @classmethod
    def from_product(cls, product: Product) -> "ReviewCandidate":
        return cls(
            id=product.id,
            title=product.title,
            description=product.description or "",
            category=product.category or "other",
        )


class AutoReviewPipeline:
    """
    Audits ``pending_review`` listings and approves or flags them.

    Approval requires ``is_safe`` and a confidence strictly above the
    configured threshold. Flagged listings stay in ``pending_review`` for a
    human; nothing is auto-rejected.
    """

    def __init__(
        self,
        products: ProductRepository,
        ai: AIContentService,
        translation_cache: Optional[TranslationCache] = None,
        indexnow: Optional[IndexNowClient] = None,
        config: Settings = default_settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.products = products
        self.ai = ai
        self.translation_cache = translation_cache
        self.indexnow = indexnow
        self.config = config
        self._sleep = sleep

    async def run(self, limit: int = 50, hours_ago: Optional[int] = None) -> ReviewStats:
        """
        Review up to ``limit`` pending listings, oldest first.

        Args:
            limit: Maximum number of listings to process
            hours_ago: Only consider listings created within this many hours

        Returns:
            Counts of approved, category-corrected, flagged and errored listings
        """
        stats = ReviewStats()
        created_after = utcnow() - timedelta(hours=hours_ago) if hours_ago else None

        candidates = [
            ReviewCandidate.from_product(product)
            for product in await self.products.find_pending_review(limit, created_after)
        ]
        if not candidates:
            logger.info("No pending listings to review")
            return stats

        logger.info(f"Auto-review processing {len(candidates)} listings")

        for index, candidate in enumerate(candidates):
            try:
                await self._review_one(candidate, stats)
            except Exception as e:
                stats.errors += 1
                metrics.auto_review_decisions_total.labels(decision="error").inc()
                logger.error(f"Auto-review failed for listing {candidate.id}: {e}", exc_info=True)

            if index < len(candidates) - 1:
                await self._sleep(self.config.auto_review_item_delay_seconds)

        metrics.auto_review_last_run_timestamp.set(time.time())
        logger.info(
            f"Auto-review complete: approved={stats.approved}, "
            f"category_corrected={stats.category_corrected}, "
            f"flagged={stats.flagged}, errors={stats.errors}"
        )
        return stats

    async def _review_one(self, product: ReviewCandidate, stats: ReviewStats) -> None:
        audit = await self.ai.audit_listing(
            title=product.title,
            description=product.description,
            category=product.category,
        )
        if audit is None:
            stats.errors += 1
            metrics.auto_review_decisions_total.labels(decision="error").inc()
            return

        if audit.is_safe and audit.confidence > self.config.auto_review_confidence_threshold:
            await self._approve(product, audit, stats)
        else:
            await self._flag(product, audit, stats)

    async def _approve(self, product: ReviewCandidate, audit: AuditResult, stats: ReviewStats) -> None:
        current_category = product.category
        final_category = current_category
        note = APPROVED_NOTE.format(confidence=f"{audit.confidence * 100:.0f}")
        corrected = False

        if not audit.category_correct and audit.suggested_category:
            mapped = classify(audit.suggested_category)
            if mapped != current_category:
                final_category = mapped
                note = CORRECTED_NOTE.format(old=current_category, new=mapped)
                corrected = True

        values = {
            "status": "active",
            "category": final_category,
            "review_note": note,
            "reviewed_at": utcnow(),
        }
        subcategory = normalize_subcategory(final_category, audit.suggested_subcategory)
        if subcategory:
            values["subcategory"] = subcategory
        elif corrected:
            # The old subcategory belonged to the old category
            values["subcategory"] = None

        await self.products.update(product.id, values)

        stats.approved += 1
        metrics.auto_review_decisions_total.labels(decision="approved").inc()
        if corrected:
            stats.category_corrected += 1
            metrics.auto_review_decisions_total.labels(decision="category_corrected").inc()
            logger.info(f"Approved {product.id} (category: {current_category} -> {final_category})")
        else:
            logger.info(f"Approved {product.id}")

        await self._translate(product)
        if self.indexnow is not None:
            await self.indexnow.submit_listing(product.id)

    async def _flag(self, product: ReviewCandidate, audit: AuditResult, stats: ReviewStats) -> None:
        reason = audit.flagged_reason or DEFAULT_FLAG_REASON
        await self.products.update(
            product.id,
            {"review_note": FLAGGED_NOTE.format(reason=reason), "reviewed_at": utcnow()},
        )
        stats.flagged += 1
        metrics.auto_review_decisions_total.labels(decision="flagged").inc()
        logger.info(f"Flagged {product.id} for human review: {reason}")

    async def _translate(self, product: ReviewCandidate) -> None:
        """Store zh/en/es variants on the listing and in the cache. Never raises."""
        try:
            translations = await self.ai.translate_listing(product.title, product.description)
            if translations is None:
                return

            values = {}
            for language in ("zh", "en", "es"):
                text = getattr(translations, language)
                values[f"title_{language}"] = text.title
                values[f"description_{language}"] = text.description
            await self.products.update(product.id, values)

            if self.translation_cache is not None:
                for language in ("zh", "en", "es"):
                    text = getattr(translations, language)
                    await self.translation_cache.save(
                        language, [(product.id, text.title, text.description)]
                    )
        except Exception as e:
            logger.warning(f"Post-approval translation failed for {product.id}: {e}")
