"""Read-through cache for listing translations."""

import logging
from typing import Dict, Sequence, Tuple

from bazaar import metrics
from bazaar.repositories.base import TranslationRepository

logger = logging.getLogger(__name__)


class TranslationCache:
    """
    Persistent (product_id, language) -> (title, description) cache.

    Reads propagate persistence errors; writes are best-effort and only log.
    """

    def __init__(self, repository: TranslationRepository):
        self.repository = repository

    async def get_many(
        self, product_ids: Sequence[str], language: str
    ) -> Dict[str, Tuple[str, str]]:
        if not product_ids:
            return {}

        cached = await self.repository.get_many(product_ids, language)
        hits = len(cached)
        misses = len(set(product_ids)) - hits
        if hits:
            metrics.translation_cache_lookups_total.labels(language=language, result="hit").inc(hits)
        if misses > 0:
            metrics.translation_cache_lookups_total.labels(language=language, result="miss").inc(misses)
        return cached

    async def save(self, language: str, rows: Sequence[Tuple[str, str, str]]) -> bool:
        """Upsert (product_id, title, description) rows. Returns False on failure."""
        if not rows:
            return True
        try:
            await self.repository.upsert_many(language, rows)
            logger.debug(f"Cached {len(rows)} translations for language {language}")
            return True
        except Exception as e:
            logger.error(f"Failed to save translations to cache ({language}): {e}")
            return False
