"""Centralized prompt templates for LLM interactions."""

import json
from typing import Dict

from pydantic import BaseModel

from bazaar.catalog.categories import SUBCATEGORIES, SYSTEM_CATEGORIES

LANGUAGE_NAMES: Dict[str, str] = {
    "zh": "Chinese",
    "es": "Spanish (Mexico)",
    "en": "English",
}

MARKETPLACE_CONTEXT = "a second-hand marketplace in Mexico"


def language_name(code: str) -> str:
    """Human language name for a code; anything unknown is treated as Spanish."""
    return LANGUAGE_NAMES.get(code, "Spanish")


def _subcategory_guide() -> str:
    return "\n".join(
        f"  * {category}: {', '.join(subs)}" for category, subs in SUBCATEGORIES.items()
    )


LISTING_DRAFT_SYSTEM_PROMPT = f"""You are an expert marketplace assistant for {MARKETPLACE_CONTEXT}.

SAFETY INSTRUCTIONS:
- Do not generate descriptions for items containing hate speech, Nazi symbols, or extremist political propaganda.
- Do not generate descriptions for items promoting political misinformation or election interference.
- If the image contains sensitive political figures or controversial propaganda, return a neutral but firm description refusing the listing due to safety policies.

CATEGORY RULES:
- category: Main category ({', '.join(SYSTEM_CATEGORIES)})
- subcategory: Specific subcategory within the main category:
{_subcategory_guide()}
- Cars, motorcycles, trucks and other vehicle-shaped items belong to "vehicles".
- Houses, apartments, buildings and land belong to "real_estate".

DELIVERY RULES:
- suggestedDeliveryType is one of meetup, shipping, both.
- For large items (furniture, vehicles, appliances, real estate), suggest "meetup"."""


class ListingDraftPrompt(BaseModel):
    """Prompt for turning a product photo into a listing draft."""

    language: str = "es"

    def to_prompt(self) -> str:
        name = language_name(self.language)
        return (
            "Analyze this image and generate a listing. "
            f"The title and description MUST be in {name}. "
            "Estimate a fair second-hand price in MXN as suggestedPrice."
        )


AUDIT_SYSTEM_PROMPT = f"""You are an AI Moderator for {MARKETPLACE_CONTEXT}.
Audit each product for:
1. Safety/Ethics: Is it illegal, hateful, explicit, or prohibited (weapons, drugs, counterfeit)?
2. Category Accuracy: Is the given category correct?

Available categories: {', '.join(SYSTEM_CATEGORIES)}
Subcategories per category:
{_subcategory_guide()}

Fields:
- isSafe: boolean
- flaggedReason: reason if unsafe, otherwise null
- categoryCorrect: boolean
- suggestedCategory: best matching category from the list if incorrect, otherwise null
- suggestedSubcategory: best matching subcategory for the final category, or null
- confidence: number between 0.0 and 1.0"""


class ListingAuditPrompt(BaseModel):
    """Prompt for auditing one listing."""

    title: str
    description: str = ""
    category: str = "other"

    def to_prompt(self) -> str:
        return "\n".join([
            f'Category: "{self.category}"',
            "",
            "Product:",
            f'Title: "{self.title}"',
            f'Description: "{self.description}"',
        ])


TRANSLATION_SYSTEM_PROMPT = """You are a professional translator for an online marketplace."""


class BatchTranslationPrompt(BaseModel):
    """Prompt for translating many listings in one call."""

    target_language: str
    items: Dict[str, Dict[str, str]]  # id -> {"t": title, "d": description}

    def to_prompt(self) -> str:
        return (
            f"Translate the values (t=title, d=description) in the following JSON to {self.target_language}.\n"
            "Keep the keys (id) exactly the same.\n"
            f"Do not translate proper names or brands if they are common in {self.target_language}.\n"
            f"Input: {json.dumps(self.items, ensure_ascii=False)}"
        )


class ListingTranslationPrompt(BaseModel):
    """Prompt for translating one listing into every supported language."""

    title: str
    description: str = ""

    def to_prompt(self) -> str:
        return (
            "Translate the following product title and description into Chinese (zh), "
            "English (en), and Spanish (es).\n"
            "Return an object with keys zh, en, es, each holding title and description.\n\n"
            "Original content:\n"
            f"Title: {self.title}\n"
            f"Description: {self.description}"
        )
