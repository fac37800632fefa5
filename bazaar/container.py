"""Process-wide dependencies and the per-request service bundle.

Everything with a process lifetime (engine, session factory, LLM client,
IndexNow HTTP client, review lock) is built once at startup; services that
hold a database session are built per request from ``services()``.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from bazaar.ai.content_service import AIContentService
from bazaar.ai.llm_service import LLMService, build_llm_service
from bazaar.ai.translation_cache import TranslationCache
from bazaar.chat.service import ChatService, NegotiationService
from bazaar.config import Settings, settings as default_settings
from bazaar.db.session import build_engine, build_session_factory
from bazaar.listings.service import ListingService
from bazaar.notify.indexnow import IndexNowClient
from bazaar.notify.order_notifications import NotificationWriter
from bazaar.orders.service import OrderService
from bazaar.ratings.service import RatingService
from bazaar.repositories.base import Repositories
from bazaar.repositories.sql import build_sql_repositories
from bazaar.review.auto_review import AutoReviewPipeline
from bazaar.worker.review_lock import ReviewLockManager

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Services sharing one unit of work."""

    repos: Repositories
    ai: AIContentService
    translation_cache: TranslationCache
    notifier: NotificationWriter
    listings: ListingService
    orders: OrderService
    chat: ChatService
    negotiations: NegotiationService
    ratings: RatingService
    auto_review: AutoReviewPipeline


class ServiceContainer:
    def __init__(
        self,
        config: Settings,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession],
        llm: LLMService,
        indexnow: IndexNowClient,
        review_lock: Optional[ReviewLockManager] = None,
    ):
        self.config = config
        self.engine = engine
        self.session_factory = session_factory
        self.llm = llm
        self.indexnow = indexnow
        self.review_lock = review_lock

    @classmethod
    def build(
        cls,
        config: Settings = default_settings,
        engine: Optional[AsyncEngine] = None,
        llm: Optional[LLMService] = None,
    ) -> "ServiceContainer":
        engine = engine or build_engine(config.database_url, config.database_echo)
        review_lock = None
        if config.redis_url:
            review_lock = ReviewLockManager(config.redis_url, config.auto_review_lock_ttl_seconds)
        else:
            logger.info("REDIS_URL not set; auto-review runs are not lock-protected")

        return cls(
            config=config,
            engine=engine,
            session_factory=build_session_factory(engine),
            llm=llm or build_llm_service(config),
            indexnow=IndexNowClient(config),
            review_lock=review_lock,
        )

    def services(self, session: AsyncSession) -> Services:
        repos = build_sql_repositories(session)
        cache = TranslationCache(repos.translations)
        ai = AIContentService(self.llm, cache, self.config)
        notifier = NotificationWriter(repos)
        return Services(
            repos=repos,
            ai=ai,
            translation_cache=cache,
            notifier=notifier,
            listings=ListingService(repos.products, ai, self.config),
            orders=OrderService(repos, notifier, self.config),
            chat=ChatService(repos),
            negotiations=NegotiationService(repos, notifier),
            ratings=RatingService(repos),
            auto_review=AutoReviewPipeline(
                repos.products, ai, cache, self.indexnow, self.config
            ),
        )

    async def close(self):
        await self.indexnow.close()
        if self.review_lock is not None:
            await self.review_lock.close()
        await self.engine.dispose()
