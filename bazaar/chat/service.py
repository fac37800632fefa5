"""Buyer-seller conversations and price negotiation."""

import json
import logging
from typing import Any, Dict, List, Optional

from bazaar.db.models import Conversation, Message, new_id, utcnow
from bazaar.errors import (
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from bazaar.notify.order_notifications import NEGOTIATION_MESSAGES, NotificationWriter, dump_content
from bazaar.repositories.base import Repositories

logger = logging.getLogger(__name__)

# Message types users may send; the rest are written by the system
USER_MESSAGE_TYPES = ("text", "image_share", "location_share")

NEGOTIATION_RESPONSES = {
    "accepted": "accepted",
    "rejected": "rejected",
    "counter": "countered",
}


class ChatService:
    def __init__(self, repos: Repositories):
        self.repos = repos

    async def _conversation_for(self, conversation_id: str, user_id: str) -> Conversation:
        conversation = await self.repos.conversations.get(conversation_id)
        if conversation is None:
            raise NotFoundError("CONVERSATION_NOT_FOUND")
        if user_id not in (conversation.buyer_id, conversation.seller_id):
            raise ForbiddenError("NOT_CONVERSATION_PARTICIPANT")
        return conversation

    async def get_or_create_conversation(
        self, product_id: str, user1_id: str, user2_id: str, requester_id: str
    ) -> Conversation:
        """
        Find or open the conversation between two users about a product.

        The pair is unordered: the product's seller decides which user is the
        seller, so (a, b) and (b, a) resolve to the same conversation.
        """
        if not user1_id or not user2_id or user1_id == user2_id:
            raise ValidationError("INVALID_USER_IDS")
        if requester_id not in (user1_id, user2_id):
            raise ForbiddenError("NOT_CONVERSATION_PARTICIPANT")

        product = await self.repos.products.get(product_id)
        if product is None:
            raise NotFoundError("PRODUCT_NOT_FOUND")
        if product.seller_id not in (user1_id, user2_id):
            raise ValidationError("INVALID_USER_IDS")

        seller_id = product.seller_id
        buyer_id = user2_id if user1_id == seller_id else user1_id
        return await self.repos.conversations.get_or_create(product_id, buyer_id, seller_id)

    async def list_conversations(self, user_id: str) -> List[Conversation]:
        return await self.repos.conversations.list_for_user(user_id)

    async def send_message(
        self,
        conversation_id: str,
        sender_id: str,
        text: Optional[str] = None,
        message_type: str = "text",
        content: Optional[Dict[str, Any]] = None,
    ) -> Message:
        if message_type not in USER_MESSAGE_TYPES:
            raise ValidationError("INVALID_DATA", detail=f"message type {message_type}")
        if message_type == "text" and not (text and text.strip()):
            raise ValidationError("MESSAGE_TEXT_REQUIRED")

        await self._conversation_for(conversation_id, sender_id)
        now = utcnow()
        message = await self.repos.messages.add(
            Message(
                id=new_id(),
                conversation_id=conversation_id,
                sender_id=sender_id,
                text=text.strip() if text else None,
                content=json.dumps(content, ensure_ascii=False) if content is not None else None,
                message_type=message_type,
                is_read=False,
                created_at=now,
            )
        )
        await self.repos.conversations.touch(conversation_id, now)
        return message

    async def get_messages(self, conversation_id: str, user_id: str, limit: int = 200) -> List[Message]:
        await self._conversation_for(conversation_id, user_id)
        return await self.repos.messages.list_for_conversation(conversation_id, limit=limit)

    async def mark_read(self, conversation_id: str, user_id: str) -> int:
        """Mark the other party's messages as read; returns how many changed."""
        await self._conversation_for(conversation_id, user_id)
        return await self.repos.messages.mark_read(conversation_id, user_id)


class NegotiationService:
    """Price offers from buyers and the seller's accept / reject / counter replies."""

    def __init__(self, repos: Repositories, notifier: Optional[NotificationWriter] = None):
        self.repos = repos
        self.notifier = notifier or NotificationWriter(repos)

    async def propose(
        self, conversation_id: str, product_id: str, buyer_id: str, proposed_price: Any
    ) -> Message:
        if not conversation_id or not product_id or proposed_price is None:
            raise ValidationError("MISSING_FIELDS")
        try:
            price = float(proposed_price)
        except (TypeError, ValueError):
            raise ValidationError("INVALID_PRICE")
        if price <= 0:
            raise ValidationError("INVALID_PRICE")

        product = await self.repos.products.get(product_id)
        if product is None:
            raise NotFoundError("PRODUCT_NOT_FOUND")
        if product.seller_id == buyer_id:
            raise ValidationError("CANNOT_OFFER_OWN_PRODUCT")

        conversation = await self.repos.conversations.get(conversation_id)
        if conversation is None:
            raise NotFoundError("CONVERSATION_NOT_FOUND")
        if buyer_id not in (conversation.buyer_id, conversation.seller_id):
            raise ForbiddenError("NOT_CONVERSATION_PARTICIPANT")

        data = {
            "sender_id": buyer_id,
            "product_id": product.id,
            "product_title": product.title,
            "product_image": product.images[0] if product.images else None,
            "original_price": float(product.price),
            "proposed_price": price,
            "proposer_id": buyer_id,
            "seller_id": product.seller_id,
            "status": "pending",
            "created_at": utcnow().isoformat(),
        }
        message = await self.notifier.notify_negotiation(conversation_id, "proposed", data)
        if message is None:
            raise PersistenceError("OPERATION_FAILED", detail="negotiation message not stored")

        logger.info(f"Price proposal {message.id} created for product {product_id}")
        return message

    async def respond(
        self,
        message_id: str,
        seller_id: str,
        response: str,
        counter_price: Any = None,
    ) -> tuple[Message, Dict[str, Any]]:
        """
        Answer a price proposal.

        Only the product's seller may respond. The proposal message's content
        is updated in place and a ``price_negotiation_response`` message is
        added to the conversation.
        """
        if response not in NEGOTIATION_RESPONSES:
            raise ValidationError("INVALID_RESPONSE_TYPE")

        original = await self.repos.messages.get(message_id)
        if original is None or original.message_type != "price_negotiation":
            raise NotFoundError("MESSAGE_NOT_FOUND")

        try:
            negotiation = json.loads(original.content or "")
        except json.JSONDecodeError:
            raise ValidationError("INVALID_NEGOTIATION_FORMAT")
        if not isinstance(negotiation, dict):
            raise ValidationError("INVALID_NEGOTIATION_FORMAT")

        if negotiation.get("seller_id") != seller_id:
            raise ForbiddenError("ONLY_SELLER_CAN_RESPOND")

        if response == "counter":
            try:
                counter = float(counter_price)
            except (TypeError, ValueError):
                raise ValidationError("INVALID_PRICE")
            if counter <= 0:
                raise ValidationError("INVALID_PRICE")
            negotiation["counter_price"] = counter

        now = utcnow()
        negotiation["status"] = response
        negotiation["responded_at"] = now.isoformat()
        negotiation["responder_id"] = seller_id
        await self.repos.messages.update_content(message_id, dump_content(negotiation))

        event = NEGOTIATION_RESPONSES[response]
        text = NEGOTIATION_MESSAGES[event].format(
            final_price=negotiation.get("proposed_price"),
            counter_price=negotiation.get("counter_price"),
        )
        reply = await self.repos.messages.add(
            Message(
                id=new_id(),
                conversation_id=original.conversation_id,
                sender_id=seller_id,
                text=text,
                message_type="price_negotiation_response",
                content=dump_content({**negotiation, "response_type": response}),
                is_read=False,
                created_at=now,
            )
        )
        await self.repos.conversations.touch(original.conversation_id, now)
        logger.info(f"Negotiation {message_id} answered: {response}")
        return reply, negotiation
