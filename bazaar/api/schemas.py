"""Response models shared by the routers."""

import json
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from bazaar.listings.service import LocalizedListing


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    seller_id: str
    title: str
    description: Optional[str] = None
    price: float
    currency: str
    category: str
    subcategory: Optional[str] = None
    status: str
    images: List[str] = []
    delivery_type: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None
    town: Optional[str] = None
    views_count: int = 0
    is_promoted: bool = False
    review_note: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_listing(cls, listing: LocalizedListing) -> "ProductResponse":
        response = cls.model_validate(listing.product)
        return response.model_copy(
            update={"title": listing.title, "description": listing.description}
        )


class TimelineEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_type: str
    description: Optional[str] = None
    created_by: Optional[str] = None
    event_metadata: Optional[dict] = None
    created_at: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    buyer_id: str
    seller_id: str
    order_type: str
    payment_method: str
    product_amount: float
    shipping_fee: float
    platform_fee: float
    total_amount: float
    currency: str
    status: str
    buyer_confirmed_at: Optional[datetime] = None
    seller_confirmed_at: Optional[datetime] = None
    meetup_location: Optional[str] = None
    meetup_time: Optional[datetime] = None
    meetup_location_lat: Optional[float] = None
    meetup_location_lng: Optional[float] = None
    meetup_confirmed_by_buyer: bool = False
    meetup_confirmed_by_seller: bool = False
    shipping_address: Optional[dict] = None
    shipping_carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    dispute_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime


class ConversationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    buyer_id: str
    seller_id: str
    last_message_at: Optional[datetime] = None
    created_at: datetime


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    conversation_id: str
    sender_id: str
    text: Optional[str] = None
    content: Optional[Any] = None
    message_type: str
    is_read: bool
    created_at: datetime

    @field_validator("content", mode="before")
    @classmethod
    def parse_content(cls, value):
        # Stored as a JSON string; clients get the decoded card
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        return value
