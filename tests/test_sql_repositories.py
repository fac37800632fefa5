"""SQL repository tests on an in-memory SQLite database."""

from datetime import timedelta
from decimal import Decimal

import pytest

from bazaar.db.models import Order, utcnow
from conftest import make_product


async def _order(sql_repos, **overrides):
    product = await sql_repos.products.add(make_product())
    now = utcnow()
    values = dict(
        product_id=product.id,
        buyer_id="buyer-1",
        seller_id=product.seller_id,
        order_type="meetup",
        payment_method="cash",
        product_amount=Decimal("100.00"),
        shipping_fee=Decimal("0.00"),
        platform_fee=Decimal("0.00"),
        total_amount=Decimal("100.00"),
        currency="MXN",
        status="paid",
        meetup_confirmed_by_buyer=False,
        meetup_confirmed_by_seller=False,
        created_at=now,
        updated_at=now,
    )
    values.update(overrides)
    return await sql_repos.orders.add(Order(**values))


@pytest.mark.asyncio
async def test_find_pending_review_oldest_first(sql_repos):
    newer = await sql_repos.products.add(make_product(status="pending_review", created_at=utcnow()))
    older = await sql_repos.products.add(
        make_product(status="pending_review", created_at=utcnow() - timedelta(hours=5))
    )
    await sql_repos.products.add(make_product(status="active"))
    await sql_repos.products.add(make_product(status="pending_review", deleted_at=utcnow()))

    found = await sql_repos.products.find_pending_review(limit=10)
    assert [p.id for p in found] == [older.id, newer.id]

    recent = await sql_repos.products.find_pending_review(
        limit=10, created_after=utcnow() - timedelta(hours=1)
    )
    assert [p.id for p in recent] == [newer.id]

    assert len(await sql_repos.products.find_pending_review(limit=1)) == 1


@pytest.mark.asyncio
async def test_product_update_and_views(sql_repos):
    product = await sql_repos.products.add(make_product())

    updated = await sql_repos.products.update(product.id, {"status": "sold", "review_note": "ok"})
    assert updated.status == "sold"
    assert updated.review_note == "ok"

    await sql_repos.products.increment_views(product.id)
    await sql_repos.products.increment_views(product.id)
    assert (await sql_repos.products.get(product.id)).views_count == 2

    assert await sql_repos.products.update("missing", {"status": "sold"}) is None


@pytest.mark.asyncio
async def test_transition_is_compare_and_swap(sql_repos):
    order = await _order(sql_repos, status="pending_payment")

    assert await sql_repos.orders.transition(order.id, ("pending_payment",), "paid") is True
    assert await sql_repos.orders.transition(order.id, ("pending_payment",), "paid") is False
    assert (await sql_repos.orders.get(order.id)).status == "paid"


@pytest.mark.asyncio
async def test_confirmation_and_completion_happen_once(sql_repos):
    order = await _order(sql_repos)
    blocked = ("cancelled", "disputed")

    assert await sql_repos.orders.set_confirmation(order.id, "buyer", utcnow(), blocked) is True
    assert await sql_repos.orders.set_confirmation(order.id, "buyer", utcnow(), blocked) is False
    assert await sql_repos.orders.mark_completed(order.id, utcnow()) is False

    assert await sql_repos.orders.set_confirmation(order.id, "seller", utcnow(), blocked) is True
    assert await sql_repos.orders.mark_completed(order.id, utcnow()) is True
    assert await sql_repos.orders.mark_completed(order.id, utcnow()) is False

    completed = await sql_repos.orders.get(order.id)
    assert completed.status == "completed"
    assert completed.completed_at is not None


@pytest.mark.asyncio
async def test_confirmation_blocked_while_disputed(sql_repos):
    order = await _order(sql_repos, status="disputed")
    assert await sql_repos.orders.set_confirmation(
        order.id, "seller", utcnow(), ("cancelled", "disputed")
    ) is False


@pytest.mark.asyncio
async def test_meetup_confirmation_requires_arranged(sql_repos):
    order = await _order(sql_repos)
    assert await sql_repos.orders.set_meetup_confirmation(order.id, "buyer") is False

    await sql_repos.orders.transition(order.id, ("paid",), "meetup_arranged")
    assert await sql_repos.orders.set_meetup_confirmation(order.id, "buyer") is True
    assert (await sql_repos.orders.get(order.id)).meetup_confirmed_by_buyer is True


@pytest.mark.asyncio
async def test_payment_intent_lookup(sql_repos):
    order = await _order(sql_repos, payment_intent_id="pi_1")
    assert (await sql_repos.orders.get_by_payment_intent("pi_1")).id == order.id
    assert await sql_repos.orders.get_by_payment_intent("pi_2") is None


@pytest.mark.asyncio
async def test_conversation_get_or_create_is_unique(sql_repos):
    product = await sql_repos.products.add(make_product())

    first = await sql_repos.conversations.get_or_create(product.id, "buyer-1", "seller-1")
    second = await sql_repos.conversations.get_or_create(product.id, "buyer-1", "seller-1")

    assert first.id == second.id
    assert len(await sql_repos.conversations.list_for_user("seller-1")) == 1


@pytest.mark.asyncio
async def test_translation_upsert(sql_repos):
    product = await sql_repos.products.add(make_product())

    await sql_repos.translations.upsert_many("en", [(product.id, "Bike", "Used")])
    await sql_repos.translations.upsert_many("en", [(product.id, "Mountain bike", "Used")])

    cached = await sql_repos.translations.get_many([product.id, "other"], "en")
    assert cached == {product.id: ("Mountain bike", "Used")}
    assert await sql_repos.translations.get_many([product.id], "zh") == {}


@pytest.mark.asyncio
async def test_rating_upsert_replaces_and_stats(sql_repos):
    first = await _order(sql_repos, status="completed")
    second = await _order(sql_repos, status="completed")

    assert await sql_repos.ratings.stats_for("seller-1") == (0, None)

    created = await sql_repos.ratings.upsert("buyer-1", "seller-1", first.id, 2, "Tarde")
    replaced = await sql_repos.ratings.upsert("buyer-1", "seller-1", second.id, 5, None)
    assert replaced.id == created.id
    assert replaced.score == 5
    assert replaced.comment is None
    assert replaced.order_id == second.id

    await sql_repos.ratings.upsert("buyer-2", "seller-1", first.id, 4, None)
    total, average = await sql_repos.ratings.stats_for("seller-1")
    assert total == 2
    assert average == pytest.approx(4.5)
