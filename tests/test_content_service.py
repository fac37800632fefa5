"""Tests for AI listing content: drafts, audits and translation."""

import pytest

from bazaar.ai.content_service import TranslatableItem, language_code_for
from conftest import FakeLLM, batch_input


def _echo_translation(prompt, operation):
    """Translate every batch item to '<t>-en' / '<d>-en'."""
    items = batch_input(prompt)
    return {key: {"t": f"{v['t']}-en", "d": f"{v['d']}-en"} for key, v in items.items()}


def _items(count):
    return [TranslatableItem(f"p{i}", f"titulo {i}", f"desc {i}") for i in range(count)]


@pytest.mark.parametrize(
    "name,code",
    [
        ("Chinese (Simplified)", "zh"),
        ("english", "en"),
        ("Spanish", "es"),
        ("French", None),
        ("", None),
    ],
)
def test_language_code_for(name, code):
    assert language_code_for(name) == code


@pytest.mark.asyncio
async def test_extract_listing_draft_maps_category(make_ai):
    llm = FakeLLM([{
        "title": "iPhone 12",
        "description": "Buen estado",
        "category": "Smartphone",
        "subcategory": "Phones",
        "suggestedPrice": 4500,
        "suggestedDeliveryType": "both",
    }])
    ai = make_ai(llm)

    draft = await ai.extract_listing_draft(b"jpeg-bytes", language="es")

    assert draft.category == "electronics"
    assert draft.subcategory == "phones"
    assert draft.suggested_price == 4500
    assert llm.calls[0]["image"] == b"jpeg-bytes"
    assert llm.operations() == ["extract_listing_draft"]


@pytest.mark.asyncio
async def test_extract_listing_draft_failure_returns_none(make_ai):
    ai = make_ai(FakeLLM(["not json"]))
    assert await ai.extract_listing_draft(b"jpeg-bytes") is None


@pytest.mark.asyncio
async def test_audit_listing_passes_confidence_through(make_ai):
    ai = make_ai(FakeLLM([{"isSafe": True, "categoryCorrect": True, "confidence": 1.7}]))
    result = await ai.audit_listing("Bicicleta", "Rodada 29", "sports")
    assert result.confidence == 1.7


@pytest.mark.asyncio
async def test_audit_listing_failure_returns_none(make_ai):
    ai = make_ai(FakeLLM([RuntimeError("rate limited")]))
    assert await ai.audit_listing("Bicicleta") is None


@pytest.mark.asyncio
async def test_translate_unsupported_language_is_noop(make_ai):
    llm = FakeLLM(handler=_echo_translation)
    items = _items(3)

    result = await make_ai(llm).translate(items, "French")

    assert result == items
    assert llm.calls == []


@pytest.mark.asyncio
async def test_translate_caps_batch_and_keeps_order(make_ai):
    llm = FakeLLM(handler=_echo_translation)
    items = _items(60)

    result = await make_ai(llm).translate(items, "English")

    assert len(llm.calls) == 1
    sent = batch_input(llm.calls[0]["prompt"])
    assert list(sent) == [f"p{i}" for i in range(50)]

    assert [item.id for item in result] == [item.id for item in items]
    assert result[0].title == "titulo 0-en"
    assert result[49].description == "desc 49-en"
    assert result[50:] == items[50:]


@pytest.mark.asyncio
async def test_translate_uses_cache(make_ai, repos):
    llm = FakeLLM(handler=_echo_translation)
    ai = make_ai(llm)
    items = _items(3)

    first = await ai.translate(items, "English")
    second = await ai.translate(items, "English")

    assert len(llm.calls) == 1
    assert first == second
    assert repos.translations.rows[("p1", "en")] == ("titulo 1-en", "desc 1-en")


@pytest.mark.asyncio
async def test_translate_partial_cache_sends_only_misses(make_ai, repos):
    repos.translations.rows[("p1", "en")] = ("cached title", "cached desc")
    llm = FakeLLM(handler=_echo_translation)

    result = await make_ai(llm).translate(_items(3), "English")

    assert list(batch_input(llm.calls[0]["prompt"])) == ["p0", "p2"]
    assert [item.title for item in result] == ["titulo 0-en", "cached title", "titulo 2-en"]


@pytest.mark.asyncio
async def test_translate_deduplicates_ids(make_ai):
    llm = FakeLLM(handler=_echo_translation)
    item = TranslatableItem("p1", "hola", "")

    result = await make_ai(llm).translate([item, item], "English")

    assert list(batch_input(llm.calls[0]["prompt"])) == ["p1"]
    assert [r.title for r in result] == ["hola-en", "hola-en"]


@pytest.mark.asyncio
async def test_translate_failure_returns_originals(make_ai, repos):
    items = _items(2)
    result = await make_ai(FakeLLM([RuntimeError("timeout")])).translate(items, "English")

    assert result == items
    assert repos.translations.rows == {}


@pytest.mark.asyncio
async def test_translate_cache_write_failure_is_swallowed(make_ai, repos):
    repos.translations.fail_writes = True
    result = await make_ai(FakeLLM(handler=_echo_translation)).translate(_items(1), "English")
    assert result[0].title == "titulo 0-en"


@pytest.mark.asyncio
async def test_translate_missing_entry_keeps_original(make_ai):
    llm = FakeLLM([{"p0": {"t": "only zero"}}])
    result = await make_ai(llm).translate(_items(2), "English")

    assert result[0].title == "only zero"
    assert result[0].description == "desc 0"
    assert result[1].title == "titulo 1"


TRANSLATIONS = {
    "zh": {"title": "山地自行车", "description": "29寸"},
    "en": {"title": "Mountain bike", "description": "29 inch"},
    "es": {"title": "Bicicleta de montaña", "description": "Rodada 29"},
}


@pytest.mark.asyncio
async def test_translate_listing_retries_once(make_ai, no_sleep):
    llm = FakeLLM([RuntimeError("busy"), TRANSLATIONS])

    result = await make_ai(llm).translate_listing("Bicicleta de montaña", "Rodada 29")

    assert result.en.title == "Mountain bike"
    assert len(llm.calls) == 2
    assert no_sleep.delays == [1.0]


@pytest.mark.asyncio
async def test_translate_listing_gives_up(make_ai, no_sleep):
    llm = FakeLLM([RuntimeError("busy"), "not json"])

    assert await make_ai(llm).translate_listing("Bicicleta") is None
    assert len(llm.calls) == 2
    assert no_sleep.delays == [1.0]
