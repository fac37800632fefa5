"""Shared fixtures: in-memory repositories and a scripted LLM."""

import json
from datetime import timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from bazaar.ai.content_service import AIContentService
from bazaar.ai.llm_service import LLMService
from bazaar.ai.translation_cache import TranslationCache
from bazaar.config import Settings
from bazaar.db.models import Conversation, Order, Product, Rating, new_id, utcnow
from bazaar.db.session import build_session_factory, create_schema
from bazaar.repositories.base import (
    ConversationRepository,
    MessageRepository,
    OrderRepository,
    ProductRepository,
    RatingRepository,
    Repositories,
    TranslationRepository,
)
from bazaar.repositories.sql import build_sql_repositories


class InMemoryProductRepository(ProductRepository):
    def __init__(self):
        self.rows: Dict[str, Product] = {}
        self.updates: List[tuple] = []

    async def add(self, product):
        self.rows[product.id] = product
        return product

    async def get(self, product_id):
        return self.rows.get(product_id)

    async def find_pending_review(self, limit, created_after=None):
        rows = [
            p for p in self.rows.values()
            if p.status == "pending_review" and p.deleted_at is None
            and (created_after is None or p.created_at >= created_after)
        ]
        rows.sort(key=lambda p: p.created_at)
        return rows[:limit]

    async def update(self, product_id, values):
        product = self.rows.get(product_id)
        if product is None:
            return None
        self.updates.append((product_id, dict(values)))
        for key, value in values.items():
            setattr(product, key, value)
        return product

    async def increment_views(self, product_id):
        self.rows[product_id].views_count += 1

    async def list_active(self, category=None, offset=0, limit=20):
        rows = [
            p for p in self.rows.values()
            if p.status == "active" and p.deleted_at is None
            and (category is None or p.category == category)
        ]
        rows.sort(key=lambda p: (not p.is_promoted, -p.created_at.timestamp()))
        return rows[offset:offset + limit]

    async def list_for_admin(self, status=None, include_deleted=False, offset=0, limit=20):
        rows = [
            p for p in self.rows.values()
            if (include_deleted or p.deleted_at is None) and (status is None or p.status == status)
        ]
        rows.sort(key=lambda p: p.created_at, reverse=True)
        return rows[offset:offset + limit], len(rows)


class InMemoryOrderRepository(OrderRepository):
    def __init__(self):
        self.rows: Dict[str, Order] = {}
        self.timeline: List[Any] = []

    async def add(self, order):
        self.rows[order.id] = order
        return order

    async def get(self, order_id):
        return self.rows.get(order_id)

    async def get_by_payment_intent(self, payment_intent_id):
        for order in self.rows.values():
            if order.payment_intent_id == payment_intent_id:
                return order
        return None

    async def list_for_user(self, user_id, role=None):
        def matches(order):
            if role == "buyer":
                return order.buyer_id == user_id
            if role == "seller":
                return order.seller_id == user_id
            return user_id in (order.buyer_id, order.seller_id)

        return sorted(
            (o for o in self.rows.values() if matches(o)),
            key=lambda o: o.created_at,
            reverse=True,
        )

    async def transition(self, order_id, from_statuses, to_status, values=None):
        order = self.rows.get(order_id)
        if order is None or order.status not in tuple(from_statuses):
            return False
        order.status = to_status
        for key, value in (values or {}).items():
            setattr(order, key, value)
        return True

    async def set_confirmation(self, order_id, party, at, blocked_statuses):
        order = self.rows.get(order_id)
        column = f"{party}_confirmed_at"
        if order is None or getattr(order, column) is not None or order.status in tuple(blocked_statuses):
            return False
        setattr(order, column, at)
        return True

    async def mark_completed(self, order_id, at):
        order = self.rows.get(order_id)
        if (
            order is None
            or order.buyer_confirmed_at is None
            or order.seller_confirmed_at is None
            or order.status in ("completed", "cancelled")
        ):
            return False
        order.status = "completed"
        order.completed_at = at
        return True

    async def set_meetup_confirmation(self, order_id, party):
        order = self.rows.get(order_id)
        if order is None or order.status != "meetup_arranged":
            return False
        setattr(order, f"meetup_confirmed_by_{party}", True)
        return True

    async def add_timeline(self, entry):
        self.timeline.append(entry)
        return entry

    async def list_timeline(self, order_id):
        return [entry for entry in self.timeline if entry.order_id == order_id]

    def events(self, order_id) -> List[str]:
        return [entry.event_type for entry in self.timeline if entry.order_id == order_id]


class InMemoryConversationRepository(ConversationRepository):
    def __init__(self):
        self.rows: Dict[str, Conversation] = {}

    async def get(self, conversation_id):
        return self.rows.get(conversation_id)

    async def find(self, product_id, buyer_id, seller_id):
        for conversation in self.rows.values():
            if (conversation.product_id, conversation.buyer_id, conversation.seller_id) == (
                product_id, buyer_id, seller_id
            ):
                return conversation
        return None

    async def get_or_create(self, product_id, buyer_id, seller_id):
        existing = await self.find(product_id, buyer_id, seller_id)
        if existing:
            return existing
        conversation = Conversation(
            id=new_id(),
            product_id=product_id,
            buyer_id=buyer_id,
            seller_id=seller_id,
            last_message_at=None,
            created_at=utcnow(),
        )
        self.rows[conversation.id] = conversation
        return conversation

    async def list_for_user(self, user_id):
        return [c for c in self.rows.values() if user_id in (c.buyer_id, c.seller_id)]

    async def touch(self, conversation_id, at):
        self.rows[conversation_id].last_message_at = at


class InMemoryMessageRepository(MessageRepository):
    def __init__(self):
        self.rows: List[Any] = []
        self.fail = False

    async def add(self, message):
        if self.fail:
            raise RuntimeError("message store unavailable")
        self.rows.append(message)
        return message

    async def get(self, message_id):
        return next((m for m in self.rows if m.id == message_id), None)

    async def list_for_conversation(self, conversation_id, limit=200):
        return [m for m in self.rows if m.conversation_id == conversation_id][:limit]

    async def mark_read(self, conversation_id, reader_id):
        count = 0
        for message in self.rows:
            if message.conversation_id == conversation_id and message.sender_id != reader_id and not message.is_read:
                message.is_read = True
                count += 1
        return count

    async def update_content(self, message_id, content):
        message = await self.get(message_id)
        message.content = content

    def for_conversation(self, conversation_id) -> List[Any]:
        return [m for m in self.rows if m.conversation_id == conversation_id]


class InMemoryTranslationRepository(TranslationRepository):
    def __init__(self):
        self.rows: Dict[tuple, tuple] = {}
        self.fail_writes = False

    async def get_many(self, product_ids, language):
        return {
            pid: self.rows[(pid, language)]
            for pid in product_ids
            if (pid, language) in self.rows
        }

    async def upsert_many(self, language, rows):
        if self.fail_writes:
            raise RuntimeError("translation store unavailable")
        for product_id, title, description in rows:
            self.rows[(product_id, language)] = (title, description)


class InMemoryRatingRepository(RatingRepository):
    def __init__(self):
        self.rows: Dict[tuple, Rating] = {}

    async def upsert(self, rater_id, target_user_id, order_id, score, comment):
        now = utcnow()
        rating = self.rows.get((rater_id, target_user_id))
        if rating is None:
            rating = Rating(
                id=new_id(),
                rater_id=rater_id,
                target_user_id=target_user_id,
                created_at=now,
            )
            self.rows[(rater_id, target_user_id)] = rating
        rating.order_id = order_id
        rating.score = score
        rating.comment = comment
        rating.updated_at = now
        return rating

    async def stats_for(self, target_user_id):
        scores = [r.score for r in self.rows.values() if r.target_user_id == target_user_id]
        if not scores:
            return 0, None
        return len(scores), sum(scores) / len(scores)


class FakeLLM(LLMService):
    """LLM double: returns scripted responses or delegates to a handler."""

    def __init__(
        self,
        responses: Optional[List[Any]] = None,
        handler: Optional[Callable[[str, str], Any]] = None,
    ):
        super().__init__()
        self.responses = list(responses or [])
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []

    async def call_llm(
        self,
        prompt,
        system_prompt="",
        image=None,
        temperature=None,
        operation="generic",
    ):
        self.calls.append({
            "prompt": prompt,
            "system_prompt": system_prompt,
            "image": image,
            "operation": operation,
        })
        if self.handler is not None:
            result = self.handler(prompt, operation)
        else:
            result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        if isinstance(result, (dict, list)):
            return json.dumps(result)
        return result

    def operations(self) -> List[str]:
        return [call["operation"] for call in self.calls]


def batch_input(prompt: str) -> Dict[str, Dict[str, str]]:
    """Extract the id -> {t, d} map embedded in a batch translation prompt."""
    return json.loads(prompt.split("Input: ", 1)[1])


def make_product(**overrides) -> Product:
    now = utcnow()
    values = dict(
        id=new_id(),
        seller_id="seller-1",
        title="Bicicleta de montaña",
        description="Rodada 29, poco uso",
        price=Decimal("1000.00"),
        currency="MXN",
        category="sports",
        subcategory=None,
        status="active",
        images=["https://img.example.com/bike.jpg"],
        delivery_type="both",
        views_count=0,
        reports_count=0,
        is_promoted=False,
        deleted_at=None,
        created_at=now,
        updated_at=now,
    )
    values.update(overrides)
    return Product(**values)


def hours_ago(hours: float):
    return utcnow() - timedelta(hours=hours)


@pytest.fixture
def config() -> Settings:
    return Settings(
        openai_api_key="",
        redis_url="",
        log_to_file=False,
        auto_review_item_delay_seconds=0,
        translation_retry_backoff_seconds=1.0,
        jwt_secret="test-secret",
        admin_api_key="admin-key",
        payment_webhook_secret="hook-secret",
    )


@pytest.fixture
def repos() -> Repositories:
    return Repositories(
        products=InMemoryProductRepository(),
        orders=InMemoryOrderRepository(),
        conversations=InMemoryConversationRepository(),
        messages=InMemoryMessageRepository(),
        translations=InMemoryTranslationRepository(),
        ratings=InMemoryRatingRepository(),
    )


@pytest.fixture
def cache(repos) -> TranslationCache:
    return TranslationCache(repos.translations)


@pytest.fixture
def no_sleep():
    """Records requested delays instead of sleeping."""
    delays: List[float] = []

    async def _sleep(seconds: float) -> None:
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep


@pytest.fixture
def make_ai(cache, config, no_sleep):
    def _make(llm: LLMService) -> AIContentService:
        return AIContentService(llm, cache, config, sleep=no_sleep)

    return _make


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_repos(engine):
    async with build_session_factory(engine)() as session:
        yield build_sql_repositories(session)
