"""AI-assisted listing routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from bazaar.ai.schemas import ListingDraft
from bazaar.api.deps import Principal, get_services, require_user
from bazaar.container import Services
from bazaar.errors import ConfigurationError, MarketplaceError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])


class AnalyzeImageRequest(BaseModel):
    image: Optional[str] = None  # base64 or data URL
    language: str = "es"


class TranslateItem(BaseModel):
    id: str
    title: str
    description: str = ""


class TranslateRequest(BaseModel):
    product_ids: List[str] = Field(min_length=1, max_length=100)
    target_language: str


@router.post("/analyze-image", response_model=ListingDraft, response_model_by_alias=True)
async def analyze_image(
    data: AnalyzeImageRequest,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    """Turn a product photo into a listing draft."""
    if not data.image:
        raise ValidationError("IMAGE_REQUIRED")

    try:
        return await services.ai.extract_listing_draft_strict(data.image, data.language)
    except ConfigurationError:
        raise
    except Exception as e:
        logger.error(f"Image analysis failed for user {user.user_id}: {e}")
        raise MarketplaceError("FAILED_TO_ANALYZE_IMAGE", detail=str(e)) from e


@router.post("/translate", response_model=List[TranslateItem])
async def translate(
    data: TranslateRequest,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    """Translate stored listing texts; unsupported languages come back unchanged."""
    translated = await services.listings.translate_listings(
        data.product_ids,
        data.target_language,
        viewer_id=user.user_id,
        is_admin=user.is_admin,
    )
    return [
        TranslateItem(id=item.id, title=item.title, description=item.description)
        for item in translated
    ]
