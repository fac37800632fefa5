"""System chat messages for order and price-negotiation events.

Both parties see the progress of a deal inside their conversation. Writing a
notification never fails the operation that triggered it.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from bazaar import metrics
from bazaar.db.models import Message, new_id, utcnow
from bazaar.repositories.base import Repositories

logger = logging.getLogger(__name__)

# status -> message shown to each side of the deal
ORDER_STATUS_MESSAGES: Dict[str, Dict[str, str]] = {
    "created": {
        "buyer": "Order placed! Waiting for the seller to confirm...",
        "seller": "New order! The buyer is waiting for your confirmation",
    },
    "paid": {
        "buyer": "Payment received! Waiting for the seller to ship or confirm the meetup",
        "seller": "The buyer has paid! Please ship or confirm the meetup time soon",
    },
    "shipped": {
        "buyer": "The seller has shipped your item! Keep an eye out for it",
        "seller": "You have shipped the item! Waiting for the buyer to confirm receipt",
    },
    "buyer_confirmed": {
        "buyer": "You confirmed the deal is complete",
        "seller": "The buyer confirmed the deal! Confirm to complete the order",
    },
    "seller_confirmed": {
        "buyer": "The seller confirmed! Confirm to complete the order",
        "seller": "You confirmed the deal is complete",
    },
    "completed": {
        "buyer": "Deal complete! Thanks for your purchase",
        "seller": "Deal complete! Funds will be released after confirmation",
    },
    "cancelled": {
        "buyer": "The order was cancelled",
        "seller": "The order was cancelled",
    },
    "disputed": {
        "buyer": "This order is disputed; support will step in",
        "seller": "This order is disputed; support will step in",
    },
}

NEGOTIATION_MESSAGES: Dict[str, str] = {
    "proposed": "The buyer offered ${proposed_price}, waiting for your reply",
    "accepted": "The seller accepted your offer of ${final_price}!",
    "rejected": "The seller rejected your offer",
    "countered": "The seller countered with ${counter_price}",
}

FALLBACK_PRODUCT_TITLE = "Product"


def _json_default(value: Any):
    if isinstance(value, Decimal):
        return float(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dump_content(content: Dict[str, Any]) -> str:
    return json.dumps(content, default=_json_default, ensure_ascii=False)


class NotificationWriter:
    """Appends order-status and negotiation cards to buyer/seller conversations."""

    def __init__(self, repos: Repositories):
        self.repos = repos

    async def notify_order_status(
        self, order_id: str, status: str, extra: Optional[Dict[str, Any]] = None
    ) -> Optional[Message]:
        """
        Write one ``order_status`` message for an order event.

        Args:
            order_id: Order the event belongs to
            status: Event name; unknown events are ignored with a warning
            extra: Additional fields merged into the card payload

        Returns:
            The stored message, or None if nothing was written
        """
        templates = ORDER_STATUS_MESSAGES.get(status)
        if templates is None:
            logger.warning(f"No message template for order status: {status}")
            return None

        try:
            order = await self.repos.orders.get(order_id)
            if order is None:
                logger.error(f"Order {order_id} not found for notification")
                metrics.chat_notifications_total.labels(kind="order_status", status="error").inc()
                return None

            product = await self.repos.products.get(order.product_id)
            conversation = await self.repos.conversations.get_or_create(
                order.product_id, order.buyer_id, order.seller_id
            )

            now = utcnow()
            card = {
                "type": "order_status",
                "orderId": order.id,
                "status": status,
                "productTitle": product.title if product else FALLBACK_PRODUCT_TITLE,
                "productImage": product.images[0] if product and product.images else None,
                "productAmount": order.product_amount,
                "shippingFee": order.shipping_fee,
                "platformFee": order.platform_fee,
                "totalAmount": order.total_amount,
                "currency": order.currency,
                "orderType": order.order_type,
                "buyerMessage": templates["buyer"],
                "sellerMessage": templates["seller"],
                "timestamp": now.isoformat(),
            }
            if extra:
                card.update(extra)

            # System messages are attributed to the buyer
            message = await self.repos.messages.add(
                Message(
                    id=new_id(),
                    conversation_id=conversation.id,
                    sender_id=order.buyer_id,
                    text=f"Order update: {templates['buyer']}",
                    message_type="order_status",
                    content=dump_content(card),
                    is_read=False,
                    created_at=now,
                )
            )
            await self.repos.conversations.touch(conversation.id, now)

            metrics.chat_notifications_total.labels(kind="order_status", status="sent").inc()
            logger.info(f"Sent order notification for {order_id}: {status}")
            return message

        except Exception as e:
            metrics.chat_notifications_total.labels(kind="order_status", status="error").inc()
            logger.error(f"Order notification failed for {order_id} ({status}): {e}")
            return None

    async def notify_negotiation(
        self, conversation_id: str, event: str, data: Dict[str, Any]
    ) -> Optional[Message]:
        """
        Write one ``price_negotiation`` message.

        ``data`` must carry ``sender_id`` plus the price field the event uses
        (``proposed_price``, ``final_price`` or ``counter_price``).
        """
        template = NEGOTIATION_MESSAGES.get(event)
        if template is None:
            logger.warning(f"Unknown negotiation event: {event}")
            return None

        try:
            now = utcnow()
            message = await self.repos.messages.add(
                Message(
                    id=new_id(),
                    conversation_id=conversation_id,
                    sender_id=data["sender_id"],
                    text=template.format(**{k: v for k, v in data.items() if v is not None}),
                    message_type="price_negotiation",
                    content=dump_content({"event": event, **data}),
                    is_read=False,
                    created_at=now,
                )
            )
            await self.repos.conversations.touch(conversation_id, now)
            metrics.chat_notifications_total.labels(kind="negotiation", status="sent").inc()
            return message

        except Exception as e:
            metrics.chat_notifications_total.labels(kind="negotiation", status="error").inc()
            logger.error(f"Negotiation notification failed ({event}): {e}")
            return None
