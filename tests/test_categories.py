"""Tests for the category classifier."""

import pytest

from bazaar.catalog.categories import (
    SYSTEM_CATEGORIES,
    classify,
    is_system_category,
    normalize_subcategory,
)


@pytest.mark.parametrize("suggested", [None, "", "   "])
def test_classify_empty_is_other(suggested):
    assert classify(suggested) == "other"


@pytest.mark.parametrize("category", SYSTEM_CATEGORIES)
def test_classify_exact_match_is_identity(category):
    assert classify(category) == category
    assert classify(category.upper()) == category


@pytest.mark.parametrize(
    "suggested,expected",
    [
        ("Smartphone", "electronics"),
        ("Kitchen appliance", "electronics"),
        ("Office chair", "furniture"),
        ("Perfume", "clothing"),
        ("Manga volume 3", "books"),
        ("Yoga mat", "sports"),
        ("Used motorcycle", "vehicles"),
        ("Apartment for rent", "real_estate"),
        ("Phone repair service", "electronics"),
        ("Tutoring", "services"),
        ("Coffee beans", "other"),
        ("Vintage figurine", "other"),
        ("Home decor", "furniture"),
        ("Something unheard of", "other"),
    ],
)
def test_classify_keywords(suggested, expected):
    assert classify(suggested) == expected


def test_classify_is_deterministic():
    assert {classify("Gaming laptop") for _ in range(10)} == {"electronics"}


def test_first_matching_group_wins():
    # "phone" (electronics) is checked before "bag" (clothing)
    assert classify("phone bag") == "electronics"


def test_is_system_category():
    assert is_system_category("books")
    assert not is_system_category("Books")
    assert not is_system_category(None)


def test_normalize_subcategory():
    assert normalize_subcategory("electronics", " Phones ") == "phones"
    assert normalize_subcategory("electronics", "sofas") is None
    assert normalize_subcategory("other", None) is None
