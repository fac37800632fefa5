"""Repository interfaces, one per aggregate.

Services depend on these interfaces only; the SQLAlchemy implementations live
in ``bazaar.repositories.sql`` and tests substitute in-memory fakes. Every
mutating method is its own atomic write.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from bazaar.db.models import Conversation, Message, Order, OrderTimeline, Product, Rating


class ProductRepository(ABC):
    @abstractmethod
    async def add(self, product: Product) -> Product:
        ...

    @abstractmethod
    async def get(self, product_id: str) -> Optional[Product]:
        ...

    @abstractmethod
    async def find_pending_review(
        self, limit: int, created_after: Optional[datetime] = None
    ) -> list[Product]:
        """Pending, non-deleted listings, oldest first."""

    @abstractmethod
    async def update(self, product_id: str, values: dict[str, Any]) -> Optional[Product]:
        """Apply column values and return the fresh row (None if missing)."""

    @abstractmethod
    async def increment_views(self, product_id: str) -> None:
        ...

    @abstractmethod
    async def list_active(
        self, category: Optional[str] = None, offset: int = 0, limit: int = 20
    ) -> list[Product]:
        """Active, non-deleted listings; promoted first, then newest."""

    @abstractmethod
    async def list_for_admin(
        self,
        status: Optional[str] = None,
        include_deleted: bool = False,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Product], int]:
        """Listings for the back-office with a total count."""


class OrderRepository(ABC):
    @abstractmethod
    async def add(self, order: Order) -> Order:
        ...

    @abstractmethod
    async def get(self, order_id: str) -> Optional[Order]:
        ...

    @abstractmethod
    async def get_by_payment_intent(self, payment_intent_id: str) -> Optional[Order]:
        ...

    @abstractmethod
    async def list_for_user(self, user_id: str, role: Optional[str] = None) -> list[Order]:
        """Orders where the user is buyer and/or seller, newest first."""

    @abstractmethod
    async def transition(
        self,
        order_id: str,
        from_statuses: Iterable[str],
        to_status: str,
        values: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Compare-and-swap status change. False if the status no longer matches."""

    @abstractmethod
    async def set_confirmation(
        self, order_id: str, party: str, at: datetime, blocked_statuses: Iterable[str]
    ) -> bool:
        """Set ``<party>_confirmed_at`` only if still unset. True if this call set it."""

    @abstractmethod
    async def mark_completed(self, order_id: str, at: datetime) -> bool:
        """Complete the order iff both parties confirmed and it is not completed yet."""

    @abstractmethod
    async def set_meetup_confirmation(self, order_id: str, party: str) -> bool:
        ...

    @abstractmethod
    async def add_timeline(self, entry: OrderTimeline) -> OrderTimeline:
        ...

    @abstractmethod
    async def list_timeline(self, order_id: str) -> list[OrderTimeline]:
        ...


class ConversationRepository(ABC):
    @abstractmethod
    async def get(self, conversation_id: str) -> Optional[Conversation]:
        ...

    @abstractmethod
    async def find(self, product_id: str, buyer_id: str, seller_id: str) -> Optional[Conversation]:
        ...

    @abstractmethod
    async def get_or_create(self, product_id: str, buyer_id: str, seller_id: str) -> Conversation:
        """At most one conversation exists per (product, buyer, seller)."""

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[Conversation]:
        ...

    @abstractmethod
    async def touch(self, conversation_id: str, at: datetime) -> None:
        ...


class MessageRepository(ABC):
    @abstractmethod
    async def add(self, message: Message) -> Message:
        ...

    @abstractmethod
    async def get(self, message_id: str) -> Optional[Message]:
        ...

    @abstractmethod
    async def list_for_conversation(self, conversation_id: str, limit: int = 200) -> list[Message]:
        ...

    @abstractmethod
    async def mark_read(self, conversation_id: str, reader_id: str) -> int:
        """Mark the other party's unread messages as read. Returns rows updated."""

    @abstractmethod
    async def update_content(self, message_id: str, content: str) -> None:
        ...


class TranslationRepository(ABC):
    @abstractmethod
    async def get_many(self, product_ids: Sequence[str], language: str) -> dict[str, tuple[str, str]]:
        """Map of product_id -> (title, description) for cached rows."""

    @abstractmethod
    async def upsert_many(self, language: str, rows: Sequence[tuple[str, str, str]]) -> None:
        """Insert or update (product_id, title, description) rows for a language."""


class RatingRepository(ABC):
    @abstractmethod
    async def upsert(
        self,
        rater_id: str,
        target_user_id: str,
        order_id: str,
        score: int,
        comment: Optional[str],
    ) -> Rating:
        """Insert or replace the rater's rating of the target."""

    @abstractmethod
    async def stats_for(self, target_user_id: str) -> tuple[int, Optional[float]]:
        """Number of ratings received and their mean score (None when unrated)."""


@dataclass
class Repositories:
    """Repositories sharing one unit of work (one session per request)."""

    products: ProductRepository
    orders: OrderRepository
    conversations: ConversationRepository
    messages: MessageRepository
    translations: TranslationRepository
    ratings: RatingRepository
