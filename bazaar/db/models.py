"""SQLAlchemy database models."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# JSONB on PostgreSQL, plain JSON elsewhere (tests run on SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Product(Base):
    """A listing for sale."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    seller_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Per-language variants, filled by translation
    title_zh: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    title_en: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    title_es: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description_zh: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description_en: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description_es: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="MXN", nullable=False)
    category: Mapped[str] = mapped_column(String(32), default="other", nullable=False)
    subcategory: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    # pending_review, active, inactive, sold, deleted
    status: Mapped[str] = mapped_column(
        String(16), default="pending_review", nullable=False, index=True
    )
    images: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    delivery_type: Mapped[str] = mapped_column(String(16), default="both", nullable=False)

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    town: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    views_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reports_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_promoted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Moderation
    review_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    translations: Mapped[list["ProductTranslation"]] = relationship(
        "ProductTranslation", back_populates="product", cascade="all, delete-orphan"
    )


class ProductTranslation(Base):
    """Translation cache entry keyed by (product, language)."""

    __tablename__ = "product_translations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id"), nullable=False
    )
    language: Mapped[str] = mapped_column(String(8), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    product: Mapped["Product"] = relationship("Product", back_populates="translations")

    __table_args__ = (
        UniqueConstraint("product_id", "language", name="uq_product_translation_lang"),
    )


class Order(Base):
    """Escrow-style order between a buyer and a seller."""

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id"), nullable=False, index=True
    )
    buyer_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    seller_id: Mapped[str] = mapped_column(
        String(36), nullable=False, index=True
    )
    order_type: Mapped[str] = mapped_column(String(16), nullable=False)  # meetup, shipping
    payment_method: Mapped[str] = mapped_column(String(16), nullable=False)  # online, cash

    # Frozen at creation
    product_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    shipping_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    platform_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="MXN", nullable=False)

    status: Mapped[str] = mapped_column(String(24), nullable=False, index=True)

    buyer_confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    seller_confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Meetup plan
    meetup_location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    meetup_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    meetup_location_lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    meetup_location_lng: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    meetup_confirmed_by_buyer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    meetup_confirmed_by_seller: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Shipping
    shipping_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    shipping_carrier: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    tracking_number: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    payment_intent_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    dispute_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    timeline: Mapped[list["OrderTimeline"]] = relationship(
        "OrderTimeline", back_populates="order", order_by="OrderTimeline.created_at"
    )


class OrderTimeline(Base):
    """Append-only order event log."""

    __tablename__ = "order_timeline"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id"), nullable=False, index=True
    )
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    event_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    order: Mapped["Order"] = relationship("Order", back_populates="timeline")


class Conversation(Base):
    """Chat between a buyer and a seller about one product."""

    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id"), nullable=False
    )
    buyer_id: Mapped[str] = mapped_column(String(36), nullable=False)
    seller_id: Mapped[str] = mapped_column(String(36), nullable=False)
    last_message_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("product_id", "buyer_id", "seller_id", name="uq_conversation_triple"),
    )


class Message(Base):
    """Chat message; structured messages carry a JSON card in ``content``."""

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    conversation_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("conversations.id"), nullable=False, index=True
    )
    sender_id: Mapped[str] = mapped_column(String(36), nullable=False)
    text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    message_type: Mapped[str] = mapped_column(String(32), default="text", nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class Rating(Base):
    """One user's score for another, given after a completed order.

    A rater keeps a single rating per counterpart; rating again replaces it.
    """

    __tablename__ = "ratings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    rater_id: Mapped[str] = mapped_column(String(36), nullable=False)
    target_user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id"), nullable=False
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("rater_id", "target_user_id", name="uq_rating_rater_target"),
    )
