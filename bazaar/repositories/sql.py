"""SQLAlchemy implementations of the repository interfaces."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar.db.models import (
    Conversation,
    Message,
    Order,
    OrderTimeline,
    Product,
    ProductTranslation,
    Rating,
    new_id,
    utcnow,
)
from bazaar.errors import PersistenceError
from bazaar.repositories.base import (
    ConversationRepository,
    MessageRepository,
    OrderRepository,
    ProductRepository,
    RatingRepository,
    Repositories,
    TranslationRepository,
)

logger = logging.getLogger(__name__)

CONFIRMATION_COLUMNS = {
    "buyer": Order.buyer_confirmed_at,
    "seller": Order.seller_confirmed_at,
}

MEETUP_CONFIRMATION_COLUMNS = {
    "buyer": Order.meetup_confirmed_by_buyer,
    "seller": Order.meetup_confirmed_by_seller,
}


def _upsert_insert(session: AsyncSession):
    """The dialect ``insert`` supporting ON CONFLICT, or None on other backends."""
    dialect = session.bind.dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    return None


class SQLRepository:
    """Shared session handling and error translation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _guard(self, operation: str):
        try:
            yield
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database operation {operation} failed: {e}")
            raise PersistenceError(detail=f"{operation} failed") from e


class SQLProductRepository(SQLRepository, ProductRepository):
    async def add(self, product: Product) -> Product:
        async with self._guard("products.add"):
            self.session.add(product)
            await self.session.commit()
            await self.session.refresh(product)
        return product

    async def get(self, product_id: str) -> Optional[Product]:
        async with self._guard("products.get"):
            return await self.session.get(Product, product_id, populate_existing=True)

    async def find_pending_review(
        self, limit: int, created_after: Optional[datetime] = None
    ) -> list[Product]:
        query = (
            select(Product)
            .where(Product.status == "pending_review", Product.deleted_at.is_(None))
            .order_by(Product.created_at.asc())
            .limit(limit)
        )
        if created_after is not None:
            query = query.where(Product.created_at >= created_after)

        async with self._guard("products.find_pending_review"):
            result = await self.session.execute(query)
            return list(result.scalars().all())

    async def update(self, product_id: str, values: dict[str, Any]) -> Optional[Product]:
        async with self._guard("products.update"):
            await self.session.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        return await self.get(product_id)

    async def increment_views(self, product_id: str) -> None:
        async with self._guard("products.increment_views"):
            await self.session.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(views_count=Product.views_count + 1)
            )
            await self.session.commit()

    async def list_active(
        self, category: Optional[str] = None, offset: int = 0, limit: int = 20
    ) -> list[Product]:
        query = (
            select(Product)
            .where(Product.status == "active", Product.deleted_at.is_(None))
            .order_by(Product.is_promoted.desc(), Product.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        if category:
            query = query.where(Product.category == category)

        async with self._guard("products.list_active"):
            result = await self.session.execute(query)
            return list(result.scalars().all())

    async def list_for_admin(
        self,
        status: Optional[str] = None,
        include_deleted: bool = False,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Product], int]:
        filters = []
        if not include_deleted:
            filters.append(Product.deleted_at.is_(None))
        if status:
            filters.append(Product.status == status)

        async with self._guard("products.list_for_admin"):
            total = await self.session.scalar(
                select(func.count()).select_from(Product).where(*filters)
            )
            result = await self.session.execute(
                select(Product)
                .where(*filters)
                .order_by(Product.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(result.scalars().all()), int(total or 0)


class SQLOrderRepository(SQLRepository, OrderRepository):
    async def add(self, order: Order) -> Order:
        async with self._guard("orders.add"):
            self.session.add(order)
            await self.session.commit()
            await self.session.refresh(order)
        return order

    async def get(self, order_id: str) -> Optional[Order]:
        async with self._guard("orders.get"):
            return await self.session.get(Order, order_id, populate_existing=True)

    async def get_by_payment_intent(self, payment_intent_id: str) -> Optional[Order]:
        async with self._guard("orders.get_by_payment_intent"):
            result = await self.session.execute(
                select(Order)
                .where(Order.payment_intent_id == payment_intent_id)
                .execution_options(populate_existing=True)
            )
            return result.scalars().first()

    async def list_for_user(self, user_id: str, role: Optional[str] = None) -> list[Order]:
        if role == "buyer":
            criteria = Order.buyer_id == user_id
        elif role == "seller":
            criteria = Order.seller_id == user_id
        else:
            criteria = or_(Order.buyer_id == user_id, Order.seller_id == user_id)

        async with self._guard("orders.list_for_user"):
            result = await self.session.execute(
                select(Order).where(criteria).order_by(Order.created_at.desc())
            )
            return list(result.scalars().all())

    async def _conditional_update(self, operation: str, stmt) -> bool:
        async with self._guard(operation):
            result = await self.session.execute(
                stmt.execution_options(synchronize_session=False)
            )
            await self.session.commit()
        return result.rowcount == 1

    async def transition(
        self,
        order_id: str,
        from_statuses: Iterable[str],
        to_status: str,
        values: Optional[dict[str, Any]] = None,
    ) -> bool:
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status.in_(list(from_statuses)))
            .values(status=to_status, **(values or {}))
        )
        return await self._conditional_update("orders.transition", stmt)

    async def set_confirmation(
        self, order_id: str, party: str, at: datetime, blocked_statuses: Iterable[str]
    ) -> bool:
        column = CONFIRMATION_COLUMNS[party]
        stmt = (
            update(Order)
            .where(
                Order.id == order_id,
                column.is_(None),
                Order.status.not_in(list(blocked_statuses)),
            )
            .values({column.key: at})
        )
        return await self._conditional_update("orders.set_confirmation", stmt)

    async def mark_completed(self, order_id: str, at: datetime) -> bool:
        stmt = (
            update(Order)
            .where(
                Order.id == order_id,
                Order.buyer_confirmed_at.is_not(None),
                Order.seller_confirmed_at.is_not(None),
                Order.status.not_in(["completed", "cancelled"]),
            )
            .values(status="completed", completed_at=at)
        )
        return await self._conditional_update("orders.mark_completed", stmt)

    async def set_meetup_confirmation(self, order_id: str, party: str) -> bool:
        column = MEETUP_CONFIRMATION_COLUMNS[party]
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == "meetup_arranged")
            .values({column.key: True})
        )
        return await self._conditional_update("orders.set_meetup_confirmation", stmt)

    async def add_timeline(self, entry: OrderTimeline) -> OrderTimeline:
        async with self._guard("order_timeline.add"):
            self.session.add(entry)
            await self.session.commit()
        return entry

    async def list_timeline(self, order_id: str) -> list[OrderTimeline]:
        async with self._guard("order_timeline.list"):
            result = await self.session.execute(
                select(OrderTimeline)
                .where(OrderTimeline.order_id == order_id)
                .order_by(OrderTimeline.created_at.asc(), OrderTimeline.id.asc())
            )
            return list(result.scalars().all())


class SQLConversationRepository(SQLRepository, ConversationRepository):
    async def get(self, conversation_id: str) -> Optional[Conversation]:
        async with self._guard("conversations.get"):
            return await self.session.get(Conversation, conversation_id)

    async def find(self, product_id: str, buyer_id: str, seller_id: str) -> Optional[Conversation]:
        async with self._guard("conversations.find"):
            result = await self.session.execute(
                select(Conversation).where(
                    Conversation.product_id == product_id,
                    Conversation.buyer_id == buyer_id,
                    Conversation.seller_id == seller_id,
                )
            )
            return result.scalars().first()

    async def get_or_create(self, product_id: str, buyer_id: str, seller_id: str) -> Conversation:
        existing = await self.find(product_id, buyer_id, seller_id)
        if existing:
            return existing

        conversation = Conversation(
            product_id=product_id, buyer_id=buyer_id, seller_id=seller_id
        )
        try:
            self.session.add(conversation)
            await self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert for the same triple
            await self.session.rollback()
            existing = await self.find(product_id, buyer_id, seller_id)
            if existing is None:
                raise PersistenceError(detail="conversations.get_or_create failed")
            return existing
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(detail="conversations.get_or_create failed") from e

        return conversation

    async def list_for_user(self, user_id: str) -> list[Conversation]:
        async with self._guard("conversations.list_for_user"):
            result = await self.session.execute(
                select(Conversation)
                .where(or_(Conversation.buyer_id == user_id, Conversation.seller_id == user_id))
                .order_by(
                    Conversation.last_message_at.desc().nulls_last(),
                    Conversation.created_at.desc(),
                )
            )
            return list(result.scalars().all())

    async def touch(self, conversation_id: str, at: datetime) -> None:
        async with self._guard("conversations.touch"):
            await self.session.execute(
                update(Conversation)
                .where(Conversation.id == conversation_id)
                .values(last_message_at=at)
            )
            await self.session.commit()


class SQLMessageRepository(SQLRepository, MessageRepository):
    async def add(self, message: Message) -> Message:
        async with self._guard("messages.add"):
            self.session.add(message)
            await self.session.commit()
            await self.session.refresh(message)
        return message

    async def get(self, message_id: str) -> Optional[Message]:
        async with self._guard("messages.get"):
            return await self.session.get(Message, message_id, populate_existing=True)

    async def list_for_conversation(self, conversation_id: str, limit: int = 200) -> list[Message]:
        async with self._guard("messages.list"):
            result = await self.session.execute(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.asc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def mark_read(self, conversation_id: str, reader_id: str) -> int:
        async with self._guard("messages.mark_read"):
            result = await self.session.execute(
                update(Message)
                .where(
                    Message.conversation_id == conversation_id,
                    Message.sender_id != reader_id,
                    Message.is_read.is_(False),
                )
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        return result.rowcount

    async def update_content(self, message_id: str, content: str) -> None:
        async with self._guard("messages.update_content"):
            await self.session.execute(
                update(Message).where(Message.id == message_id).values(content=content)
            )
            await self.session.commit()


class SQLTranslationRepository(SQLRepository, TranslationRepository):
    async def get_many(self, product_ids: Sequence[str], language: str) -> dict[str, tuple[str, str]]:
        if not product_ids:
            return {}
        async with self._guard("product_translations.get_many"):
            result = await self.session.execute(
                select(ProductTranslation).where(
                    ProductTranslation.product_id.in_(list(product_ids)),
                    ProductTranslation.language == language,
                )
            )
            return {
                row.product_id: (row.title, row.description or "")
                for row in result.scalars().all()
            }

    async def upsert_many(self, language: str, rows: Sequence[tuple[str, str, str]]) -> None:
        if not rows:
            return

        now = utcnow()
        records = [
            {
                "product_id": product_id,
                "language": language,
                "title": title,
                "description": description,
                "updated_at": now,
            }
            for product_id, title, description in rows
        ]

        insert = _upsert_insert(self.session)
        if insert is None:
            await self._upsert_portable(language, records)
            return

        stmt = insert(ProductTranslation).values(records)
        stmt = stmt.on_conflict_do_update(
            index_elements=["product_id", "language"],
            set_={
                "title": stmt.excluded.title,
                "description": stmt.excluded.description,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        async with self._guard("product_translations.upsert"):
            await self.session.execute(stmt)
            await self.session.commit()

    async def _upsert_portable(self, language: str, records: list[dict]) -> None:
        async with self._guard("product_translations.upsert"):
            for record in records:
                result = await self.session.execute(
                    select(ProductTranslation).where(
                        ProductTranslation.product_id == record["product_id"],
                        ProductTranslation.language == language,
                    )
                )
                row = result.scalars().first()
                if row is None:
                    self.session.add(ProductTranslation(**record))
                else:
                    row.title = record["title"]
                    row.description = record["description"]
                    row.updated_at = record["updated_at"]
            await self.session.commit()


class SQLRatingRepository(SQLRepository, RatingRepository):
    async def upsert(
        self,
        rater_id: str,
        target_user_id: str,
        order_id: str,
        score: int,
        comment: Optional[str],
    ) -> Rating:
        now = utcnow()
        record = {
            "id": new_id(),
            "rater_id": rater_id,
            "target_user_id": target_user_id,
            "order_id": order_id,
            "score": score,
            "comment": comment,
            "created_at": now,
            "updated_at": now,
        }
        pair = (Rating.rater_id == rater_id, Rating.target_user_id == target_user_id)
        insert = _upsert_insert(self.session)

        async with self._guard("ratings.upsert"):
            if insert is not None:
                stmt = insert(Rating).values(record)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["rater_id", "target_user_id"],
                    set_={
                        "order_id": stmt.excluded.order_id,
                        "score": stmt.excluded.score,
                        "comment": stmt.excluded.comment,
                        "updated_at": stmt.excluded.updated_at,
                    },
                )
                await self.session.execute(stmt)
            else:
                existing = await self.session.scalar(select(Rating).where(*pair))
                if existing is None:
                    self.session.add(Rating(**record))
                else:
                    existing.order_id = order_id
                    existing.score = score
                    existing.comment = comment
                    existing.updated_at = now
            await self.session.commit()

            result = await self.session.execute(
                select(Rating).where(*pair).execution_options(populate_existing=True)
            )
            return result.scalars().one()

    async def stats_for(self, target_user_id: str) -> tuple[int, Optional[float]]:
        async with self._guard("ratings.stats"):
            result = await self.session.execute(
                select(func.count(Rating.id), func.avg(Rating.score)).where(
                    Rating.target_user_id == target_user_id
                )
            )
            count, average = result.one()
        return int(count or 0), float(average) if average is not None else None


def build_sql_repositories(session: AsyncSession) -> Repositories:
    return Repositories(
        products=SQLProductRepository(session),
        orders=SQLOrderRepository(session),
        conversations=SQLConversationRepository(session),
        messages=SQLMessageRepository(session),
        translations=SQLTranslationRepository(session),
        ratings=SQLRatingRepository(session),
    )
