"""AI-assisted listing content: draft extraction, moderation audit and translation.

All operations here are best-effort: on any failure they log and return a
fallback (None for draft/audit, the original items for translation) instead
of propagating. ``extract_listing_draft_strict`` is the one exception, used by
the HTTP route that must report the reason for a failure.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Dict, List, Optional

from bazaar.ai.llm_service import ImageInput, LLMService
from bazaar.ai.prompts import (
    AUDIT_SYSTEM_PROMPT,
    LISTING_DRAFT_SYSTEM_PROMPT,
    TRANSLATION_SYSTEM_PROMPT,
    BatchTranslationPrompt,
    ListingAuditPrompt,
    ListingDraftPrompt,
    ListingTranslationPrompt,
)
from bazaar.ai.schemas import AuditResult, BatchTranslation, ListingDraft, ListingTranslations
from bazaar.ai.translation_cache import TranslationCache
from bazaar.catalog.categories import classify, normalize_subcategory
from bazaar.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

# English language-name prefix -> language code
LANGUAGE_PREFIXES = (
    ("chinese", "zh"),
    ("english", "en"),
    ("spanish", "es"),
)


def language_code_for(target_language: str) -> Optional[str]:
    """Resolve "Chinese", "english (US)" ... to a language code, or None."""
    name = (target_language or "").strip().lower()
    for prefix, code in LANGUAGE_PREFIXES:
        if name.startswith(prefix):
            return code
    return None


@dataclass(frozen=True)
class TranslatableItem:
    id: str
    title: str
    description: str = ""


class AIContentService:
    """Listing-content operations on top of an injected LLM capability."""

    def __init__(
        self,
        llm: LLMService,
        cache: Optional[TranslationCache] = None,
        config: Settings = default_settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.llm = llm
        self.cache = cache
        self.config = config
        self._sleep = sleep

    async def extract_listing_draft_strict(
        self, image: ImageInput, language: str = "es"
    ) -> ListingDraft:
        """
        Analyze a product photo and return a listing draft.

        Raises:
            ConfigurationError: no API key configured
            UpstreamEmptyResponse: the model returned no text
            MalformedResponse: the model returned invalid JSON
        """
        draft = await self.llm.call_llm_structured(
            prompt=ListingDraftPrompt(language=language).to_prompt(),
            response_model=ListingDraft,
            system_prompt=LISTING_DRAFT_SYSTEM_PROMPT,
            image=image,
            temperature=self.config.llm_draft_temperature,
            operation="extract_listing_draft",
        )
        draft.category = classify(draft.category)
        draft.subcategory = normalize_subcategory(draft.category, draft.subcategory)
        return draft

    async def extract_listing_draft(
        self, image: ImageInput, language: str = "es"
    ) -> Optional[ListingDraft]:
        try:
            return await self.extract_listing_draft_strict(image, language)
        except Exception as e:
            logger.error(f"Listing draft extraction failed: {e}")
            return None

    async def audit_listing(
        self, title: str, description: str = "", category: str = "other"
    ) -> Optional[AuditResult]:
        """Moderate one listing. Confidence is returned exactly as the model produced it."""
        prompt = ListingAuditPrompt(
            title=title, description=description or "", category=category or "other"
        )
        try:
            return await self.llm.call_llm_structured(
                prompt=prompt.to_prompt(),
                response_model=AuditResult,
                system_prompt=AUDIT_SYSTEM_PROMPT,
                temperature=self.config.llm_audit_temperature,
                operation="audit_listing",
            )
        except Exception as e:
            logger.error(f"Listing audit failed for '{title[:50]}': {e}")
            return None

    async def translate(
        self, items: List[TranslatableItem], target_language: str
    ) -> List[TranslatableItem]:
        """
        Translate listing titles and descriptions.

        Cached translations are served without calling the model. At most
        ``translation_batch_limit`` uncached items (by input order) are sent
        per call; the rest come back untranslated. Output order matches input.
        """
        if not items:
            return items

        language = language_code_for(target_language)
        if language is None:
            logger.warning(f"Unsupported translation language: {target_language}")
            return items

        cached: Dict[str, tuple] = {}
        if self.cache is not None:
            try:
                cached = await self.cache.get_many([item.id for item in items], language)
            except Exception as e:
                logger.error(f"Translation cache lookup failed: {e}")
                cached = {}

        translated: Dict[str, TranslatableItem] = {}
        for item in items:
            if item.id in cached:
                title, description = cached[item.id]
                translated[item.id] = replace(item, title=title, description=description)

        pending: List[TranslatableItem] = []
        seen = set(translated)
        for item in items:
            if item.id not in seen:
                pending.append(item)
                seen.add(item.id)

        logger.info(
            f"Translation cache hit: {len(translated)}/{len(items)}, "
            f"need translation: {len(pending)}"
        )
        if not pending:
            return [translated.get(item.id, item) for item in items]

        chunk = pending[: self.config.translation_batch_limit]
        prompt = BatchTranslationPrompt(
            target_language=target_language,
            items={item.id: {"t": item.title, "d": item.description} for item in chunk},
        )

        try:
            result = await self.llm.call_llm_structured(
                prompt=prompt.to_prompt(),
                response_model=BatchTranslation,
                system_prompt=TRANSLATION_SYSTEM_PROMPT,
                temperature=self.config.llm_translate_temperature,
                operation="translate",
            )
        except Exception as e:
            logger.error(f"Batch translation to {target_language} failed: {e}")
            return items

        fresh = []
        for item in chunk:
            entry = result.root.get(item.id)
            if entry is None:
                continue
            new_item = replace(
                item,
                title=entry.t or item.title,
                description=entry.d or item.description,
            )
            translated[item.id] = new_item
            fresh.append((new_item.id, new_item.title, new_item.description))

        if fresh and self.cache is not None:
            await self.cache.save(language, fresh)

        return [translated.get(item.id, item) for item in items]

    async def translate_listing(
        self, title: str, description: str = ""
    ) -> Optional[ListingTranslations]:
        """Translate one listing into zh/en/es with a fixed retry; None after the last failure."""
        attempts = max(1, self.config.translation_retry_attempts)
        prompt = ListingTranslationPrompt(title=title, description=description or "")

        for attempt in range(1, attempts + 1):
            try:
                return await self.llm.call_llm_structured(
                    prompt=prompt.to_prompt(),
                    response_model=ListingTranslations,
                    system_prompt=TRANSLATION_SYSTEM_PROMPT,
                    temperature=self.config.llm_translate_temperature,
                    operation="translate_listing",
                )
            except Exception as e:
                logger.warning(f"Listing translation attempt {attempt}/{attempts} failed: {e}")
                if attempt < attempts:
                    await self._sleep(self.config.translation_retry_backoff_seconds)

        logger.error(f"Listing translation gave up after {attempts} attempts: '{title[:50]}'")
        return None
