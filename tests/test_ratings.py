"""Tests for ratings between order parties."""

import pytest

from bazaar.errors import ForbiddenError, NotFoundError, ValidationError
from bazaar.notify.order_notifications import NotificationWriter
from bazaar.orders.service import OrderService
from bazaar.ratings.service import RatingService
from conftest import make_product


@pytest.fixture
def orders(repos, config):
    return OrderService(repos, NotificationWriter(repos), config)


@pytest.fixture
def service(repos):
    return RatingService(repos)


async def _order(repos, orders, complete=True):
    product = await repos.products.add(make_product())
    order = await orders.create_order("buyer-1", product.id, "meetup", "cash")
    if complete:
        await orders.confirm(order.id, "buyer-1")
        await orders.confirm(order.id, "seller-1")
    return order


@pytest.mark.asyncio
async def test_parties_rate_each_other(repos, orders, service):
    order = await _order(repos, orders)

    by_buyer = await service.submit_rating("buyer-1", order.id, 5, "  Muy amable  ")
    assert by_buyer.target_user_id == "seller-1"
    assert by_buyer.comment == "Muy amable"

    by_seller = await service.submit_rating("seller-1", order.id, 3, "")
    assert by_seller.target_user_id == "buyer-1"
    assert by_seller.comment is None

    stats = await service.get_user_stats("seller-1")
    assert (stats.total_reviews, stats.average_rating) == (1, 5)


@pytest.mark.asyncio
async def test_rating_again_replaces_previous_score(repos, orders, service):
    first = await _order(repos, orders)
    second = await _order(repos, orders)

    await service.submit_rating("buyer-1", first.id, 1)
    await service.submit_rating("buyer-1", second.id, 4)

    stats = await service.get_user_stats("seller-1")
    assert (stats.total_reviews, stats.average_rating) == (1, 4)


@pytest.mark.asyncio
async def test_unrated_user_has_zero_stats(service):
    stats = await service.get_user_stats("nobody")
    assert (stats.total_reviews, stats.average_rating) == (0, 0)


@pytest.mark.asyncio
async def test_average_is_rounded(repos, orders, service):
    order = await _order(repos, orders)
    await repos.ratings.upsert("a", "seller-1", order.id, 5, None)
    await repos.ratings.upsert("b", "seller-1", order.id, 4, None)
    await repos.ratings.upsert("c", "seller-1", order.id, 4, None)

    stats = await service.get_user_stats("seller-1")
    assert stats.average_rating == 4.33


@pytest.mark.asyncio
async def test_only_completed_orders_can_be_rated(repos, orders, service):
    order = await _order(repos, orders, complete=False)

    with pytest.raises(ValidationError) as exc:
        await service.submit_rating("buyer-1", order.id, 5)
    assert exc.value.message_key == "ORDER_NOT_COMPLETED"
    assert repos.ratings.rows == {}


@pytest.mark.asyncio
async def test_outsiders_cannot_rate(repos, orders, service):
    order = await _order(repos, orders)

    with pytest.raises(ForbiddenError):
        await service.submit_rating("stranger", order.id, 5)
    with pytest.raises(NotFoundError):
        await service.submit_rating("buyer-1", "missing", 5)


@pytest.mark.asyncio
@pytest.mark.parametrize("score", [0, 6, -1, True, 4.5, "5"])
async def test_score_must_be_whole_number_in_range(repos, orders, service, score):
    order = await _order(repos, orders)

    with pytest.raises(ValidationError) as exc:
        await service.submit_rating("buyer-1", order.id, score)
    assert exc.value.message_key == "INVALID_RATING_SCORE"
