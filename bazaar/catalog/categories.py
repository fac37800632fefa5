"""Fixed listing taxonomy and the free-text category classifier."""

from typing import Optional

SYSTEM_CATEGORIES: tuple[str, ...] = (
    "electronics",
    "furniture",
    "clothing",
    "books",
    "sports",
    "vehicles",
    "real_estate",
    "services",
    "other",
)

SUBCATEGORIES: dict[str, tuple[str, ...]] = {
    "electronics": ("phones", "laptops", "tablets", "cameras", "audio", "gaming", "wearables", "accessories"),
    "vehicles": ("cars", "motorcycles", "bicycles", "trucks", "parts"),
    "real_estate": ("apartments", "houses", "land", "commercial", "rentals"),
    "furniture": ("sofas", "beds", "tables", "storage", "office"),
    "clothing": ("women", "men", "kids", "shoes", "fashion_accessories"),
    "sports": ("fitness", "outdoor", "team_sports", "water_sports", "winter_sports"),
    "services": ("repair", "cleaning", "teaching", "beauty", "moving"),
    "books": ("fiction", "textbooks", "children", "magazines", "comics"),
    "other": ("collectibles", "pets", "food", "plants"),
}

ALL_SUBCATEGORIES: tuple[str, ...] = tuple(
    sub for subs in SUBCATEGORIES.values() for sub in subs
)

# Order matters: the first group with a matching keyword wins.
CATEGORY_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("electronic", "phone", "computer", "laptop", "camera", "gadget", "appliance",
         "kitchen appliance", "small appliance", "tablet", "headphone", "speaker", "tv",
         "television", "monitor"),
        "electronics",
    ),
    (
        ("furniture", "table", "chair", "sofa", "bed", "desk", "cabinet", "shelf",
         "wardrobe", "drawer"),
        "furniture",
    ),
    (
        ("clothing", "clothes", "shoe", "fashion", "accessori", "beauty", "fragrance",
         "cosmetic", "jewelry", "bag", "watch", "perfume", "skincare", "cream", "makeup",
         "health", "lotion", "shampoo"),
        "clothing",
    ),
    (
        ("book", "magazine", "textbook", "novel", "comic", "manga", "reading"),
        "books",
    ),
    (
        ("sport", "fitness", "gym", "bicycle", "bike", "outdoor", "exercise", "ball",
         "racket", "yoga", "running"),
        "sports",
    ),
    (
        ("vehicle", "car", "motorcycle", "auto", "truck", "motor", "scooter"),
        "vehicles",
    ),
    (
        ("real estate", "house", "apartment", "property", "rent", "room"),
        "real_estate",
    ),
    (
        ("service", "repair", "cleaning", "install", "maintenance", "lesson", "tutoring"),
        "services",
    ),
    # Food & drink
    (
        ("food", "snack", "beverage", "drink", "juice", "candy", "chocolate", "grocery",
         "fruit", "vegetable", "meat", "coffee", "tea"),
        "other",
    ),
    # Collectibles & toys
    (
        ("collectible", "souvenir", "memorabilia", "antique", "vintage", "rare",
         "limited edition", "figurine", "toy", "game", "puzzle", "lego", "doll", "plush"),
        "other",
    ),
    # Home & garden
    (
        ("home", "garden", "plant", "pot", "decor", "decoration", "lamp", "light",
         "curtain", "rug", "carpet"),
        "furniture",
    ),
)


def classify(suggested: Optional[str]) -> str:
    """
    Map a free-text category suggestion onto a system category.

    Args:
        suggested: Category text as produced by a model or a user

    Returns:
        One of SYSTEM_CATEGORIES ("other" when nothing matches)
    """
    if not suggested:
        return "other"

    suggestion = suggested.strip().lower()
    if suggestion in SYSTEM_CATEGORIES:
        return suggestion

    for keywords, category in CATEGORY_KEYWORDS:
        for keyword in keywords:
            if keyword in suggestion:
                return category

    return "other"


def is_system_category(value: Optional[str]) -> bool:
    return bool(value) and value in SYSTEM_CATEGORIES


def normalize_subcategory(category: str, suggested: Optional[str]) -> Optional[str]:
    """Return the suggested subcategory if it belongs to the category, else None."""
    if not suggested:
        return None
    candidate = suggested.strip().lower()
    if candidate in SUBCATEGORIES.get(category, ()):
        return candidate
    return None
