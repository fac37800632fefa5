"""Response schemas the model must return, validated with pydantic."""

from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel


class ListingDraft(BaseModel):
    """Listing fields extracted from a product photo."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str
    category: str
    subcategory: Optional[str] = None
    suggested_price: float = Field(alias="suggestedPrice")
    suggested_delivery_type: Literal["meetup", "shipping", "both"] = Field(
        default="both", alias="suggestedDeliveryType"
    )


class AuditResult(BaseModel):
    """Moderation verdict for one listing. Confidence is passed through as-is."""

    model_config = ConfigDict(populate_by_name=True)

    is_safe: bool = Field(alias="isSafe")
    category_correct: bool = Field(alias="categoryCorrect")
    suggested_category: Optional[str] = Field(default=None, alias="suggestedCategory")
    suggested_subcategory: Optional[str] = Field(default=None, alias="suggestedSubcategory")
    flagged_reason: Optional[str] = Field(default=None, alias="flaggedReason")
    confidence: float


class CompactTranslation(BaseModel):
    """Minified translation pair (t=title, d=description) used in batch prompts."""

    t: Optional[str] = None
    d: Optional[str] = None


class BatchTranslation(RootModel[Dict[str, CompactTranslation]]):
    """Mapping of item id -> translated pair."""


class LocalizedText(BaseModel):
    title: str
    description: str = ""


class ListingTranslations(BaseModel):
    """One listing translated into every supported language."""

    zh: LocalizedText
    en: LocalizedText
    es: LocalizedText
