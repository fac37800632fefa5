"""Listing creation, browsing and back-office moderation."""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence

from bazaar.ai.content_service import AIContentService, TranslatableItem
from bazaar.catalog.categories import classify, normalize_subcategory
from bazaar.config import Settings, settings as default_settings
from bazaar.db.models import Product, new_id, utcnow
from bazaar.errors import ForbiddenError, NotFoundError, ValidationError
from bazaar.i18n.messages import SUPPORTED_LANGUAGES
from bazaar.repositories.base import ProductRepository

logger = logging.getLogger(__name__)

PRODUCT_STATUSES = ("pending_review", "active", "inactive", "sold", "deleted")
# Anyone may open these; other statuses only their seller or an admin
PUBLIC_STATUSES = ("active", "sold")
DELIVERY_TYPES = ("meetup", "shipping", "both")
BASE_LANGUAGE = "es"

# Language code -> name understood by the translation prompt
TRANSLATION_TARGETS = {
    "zh": "Chinese (Simplified)",
    "en": "English",
    "es": "Spanish",
}


@dataclass
class LocalizedListing:
    """A listing with its title/description rendered for one language."""

    product: Product
    title: str
    description: str
    language: str


class ListingService:
    def __init__(
        self,
        products: ProductRepository,
        ai: Optional[AIContentService] = None,
        config: Settings = default_settings,
    ):
        self.products = products
        self.ai = ai
        self.config = config

    async def create_listing(
        self,
        seller_id: str,
        title: Optional[str],
        price: Any,
        description: Optional[str] = None,
        currency: Optional[str] = None,
        images: Optional[List[str]] = None,
        category: Optional[str] = None,
        subcategory: Optional[str] = None,
        delivery_type: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        city: Optional[str] = None,
        town: Optional[str] = None,
    ) -> Product:
        """Create a listing in ``pending_review``; the category is mapped onto the fixed set."""
        if not title or not title.strip() or price is None:
            raise ValidationError("TITLE_PRICE_REQUIRED")
        try:
            amount = Decimal(str(price))
        except (InvalidOperation, ValueError):
            raise ValidationError("INVALID_PRICE")
        if not amount.is_finite() or amount < 0:
            raise ValidationError("INVALID_PRICE")

        delivery_type = delivery_type or "both"
        if delivery_type not in DELIVERY_TYPES:
            raise ValidationError("INVALID_DATA", detail=f"unknown delivery type {delivery_type}")

        final_category = classify(category)
        now = utcnow()
        product = Product(
            id=new_id(),
            seller_id=seller_id,
            title=title.strip(),
            description=description or "",
            price=amount,
            currency=currency or self.config.default_currency,
            images=list(images or []),
            category=final_category,
            subcategory=normalize_subcategory(final_category, subcategory),
            delivery_type=delivery_type,
            latitude=latitude,
            longitude=longitude,
            city=city,
            town=town,
            status="pending_review",
            views_count=0,
            reports_count=0,
            is_promoted=False,
            created_at=now,
            updated_at=now,
        )
        product = await self.products.add(product)
        logger.info(f"Created listing {product.id} for seller {seller_id} (category={final_category})")
        return product

    async def _localize(self, products: Sequence[Product], language: Optional[str]) -> List[LocalizedListing]:
        language = language if language in SUPPORTED_LANGUAGES else BASE_LANGUAGE
        rendered: Dict[str, LocalizedListing] = {}
        missing: List[TranslatableItem] = []

        for product in products:
            title = getattr(product, f"title_{language}", None)
            description = getattr(product, f"description_{language}", None)
            if title:
                rendered[product.id] = LocalizedListing(
                    product, title, description or product.description or "", language
                )
            elif language == BASE_LANGUAGE:
                rendered[product.id] = LocalizedListing(
                    product, product.title, product.description or "", language
                )
            else:
                missing.append(TranslatableItem(product.id, product.title, product.description or ""))

        if missing and self.ai is not None:
            translated = await self.ai.translate(missing, TRANSLATION_TARGETS[language])
            for item in translated:
                product = next(p for p in products if p.id == item.id)
                rendered[item.id] = LocalizedListing(product, item.title, item.description, language)

        return [
            rendered.get(p.id) or LocalizedListing(p, p.title, p.description or "", language)
            for p in products
        ]

    @staticmethod
    def _visible(product: Optional[Product], viewer_id: Optional[str], is_admin: bool) -> bool:
        if product is None or product.deleted_at is not None:
            return False
        return product.status in PUBLIC_STATUSES or is_admin or product.seller_id == viewer_id

    async def get_listing(
        self,
        product_id: str,
        language: Optional[str] = None,
        viewer_id: Optional[str] = None,
        is_admin: bool = False,
    ) -> LocalizedListing:
        """
        One listing, localized. Listings still in review or taken down are
        only shown to their seller and admins; only live listings count views.
        """
        product = await self.products.get(product_id)
        if not self._visible(product, viewer_id, is_admin):
            raise NotFoundError("PRODUCT_NOT_FOUND")

        if product.status == "active":
            await self.products.increment_views(product_id)
        return (await self._localize([product], language))[0]

    async def translate_listings(
        self,
        product_ids: Sequence[str],
        target_language: str,
        viewer_id: Optional[str] = None,
        is_admin: bool = False,
    ) -> List[TranslatableItem]:
        """Translate the stored title and description of listings the caller can see.

        Texts always come from the database, so cached translations can only
        ever hold a listing's own content. Unknown or hidden ids are dropped.
        """
        items: List[TranslatableItem] = []
        seen = set()
        for product_id in product_ids:
            if product_id in seen:
                continue
            seen.add(product_id)
            product = await self.products.get(product_id)
            if self._visible(product, viewer_id, is_admin):
                items.append(TranslatableItem(product.id, product.title, product.description or ""))

        if not items or self.ai is None:
            return items
        return await self.ai.translate(items, target_language)

    async def list_listings(
        self,
        category: Optional[str] = None,
        language: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> List[LocalizedListing]:
        page = max(1, page)
        page_size = max(1, min(page_size, 100))
        products = await self.products.list_active(
            category=category, offset=(page - 1) * page_size, limit=page_size
        )
        return await self._localize(products, language)

    async def _require(self, product_id: str) -> Product:
        product = await self.products.get(product_id)
        if product is None:
            raise NotFoundError("PRODUCT_NOT_FOUND")
        return product

    async def delete_listing(self, product_id: str, user_id: str, is_admin: bool = False) -> Product:
        """Soft delete: the row stays, marked ``deleted`` with ``deleted_at``."""
        product = await self._require(product_id)
        if product.seller_id != user_id and not is_admin:
            raise ForbiddenError("FORBIDDEN")

        now = utcnow()
        logger.info(f"Listing {product_id} soft-deleted by {user_id}")
        return await self.products.update(
            product_id, {"status": "deleted", "deleted_at": now, "updated_at": now}
        )

    async def set_status(self, product_id: str, status: str) -> Product:
        if status not in PRODUCT_STATUSES:
            raise ValidationError("INVALID_STATUS")
        await self._require(product_id)

        now = utcnow()
        values: Dict[str, Any] = {"status": status, "updated_at": now}
        if status == "deleted":
            values["deleted_at"] = now
        return await self.products.update(product_id, values)

    async def restore(self, product_id: str) -> Product:
        await self._require(product_id)
        return await self.products.update(
            product_id, {"status": "active", "deleted_at": None, "updated_at": utcnow()}
        )

    async def set_promoted(self, product_id: str, promoted: bool) -> Product:
        await self._require(product_id)
        return await self.products.update(
            product_id, {"is_promoted": bool(promoted), "updated_at": utcnow()}
        )

    async def review(self, product_id: str, approve: bool, note: Optional[str] = None) -> Product:
        """Human moderation decision: approve to ``active`` or reject to ``inactive``."""
        await self._require(product_id)
        now = utcnow()
        return await self.products.update(
            product_id,
            {
                "status": "active" if approve else "inactive",
                "review_note": note or ("Approved by admin" if approve else "Rejected by admin"),
                "reviewed_at": now,
                "updated_at": now,
            },
        )

    async def list_for_admin(
        self,
        status: Optional[str] = None,
        include_deleted: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[List[Product], int]:
        if status is not None and status not in PRODUCT_STATUSES:
            raise ValidationError("INVALID_STATUS")
        page = max(1, page)
        page_size = max(1, min(page_size, 100))
        return await self.products.list_for_admin(
            status=status,
            include_deleted=include_deleted,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
