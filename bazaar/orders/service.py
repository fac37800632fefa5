"""Escrow-style order state machine.

    pending_payment --webhook--> paid
    paid / pending_payment / meetup_arranged --arrange_meetup--> meetup_arranged
    paid --mark_shipped--> shipped
    buyer + seller confirmation --> completed
    pending_payment / paid / meetup_arranged --cancel--> cancelled
    any non-terminal --open_dispute--> disputed

``completed`` and ``cancelled`` are terminal. Status changes are
compare-and-swap updates so concurrent requests cannot both win, and every
change appends a write-once timeline entry.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from bazaar import metrics
from bazaar.config import Settings, settings as default_settings
from bazaar.db.models import Order, OrderTimeline, new_id, utcnow
from bazaar.errors import ForbiddenError, NotFoundError, ValidationError
from bazaar.notify.order_notifications import NotificationWriter
from bazaar.orders.fees import compute_fees
from bazaar.repositories.base import Repositories

logger = logging.getLogger(__name__)

ORDER_TYPES = ("meetup", "shipping")
PAYMENT_METHODS = ("online", "cash")

TERMINAL_STATUSES = ("completed", "cancelled")
# A dispute freezes the meetup plan until it is resolved
MEETUP_PLANNING_STATUSES = ("pending_payment", "paid", "meetup_arranged")
CANCELLABLE_STATUSES = ("pending_payment", "paid", "meetup_arranged")
DISPUTABLE_STATUSES = ("pending_payment", "paid", "meetup_arranged", "shipped")
# Confirmations are frozen while an order is cancelled or under dispute
CONFIRMATION_BLOCKED_STATUSES = ("cancelled", "disputed")


@dataclass
class ConfirmResult:
    order: Order
    completed: bool
    already_confirmed: bool = False


class OrderService:
    """Order lifecycle operations. Every mutating call is restricted to the buyer or seller."""

    def __init__(
        self,
        repos: Repositories,
        notifier: Optional[NotificationWriter] = None,
        config: Settings = default_settings,
    ):
        self.repos = repos
        self.notifier = notifier or NotificationWriter(repos)
        self.config = config

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _load(self, order_id: str) -> Order:
        order = await self.repos.orders.get(order_id)
        if order is None:
            raise NotFoundError("ORDER_NOT_FOUND")
        return order

    async def _load_for_party(self, order_id: str, user_id: str) -> Order:
        order = await self._load(order_id)
        if user_id not in (order.buyer_id, order.seller_id):
            logger.warning(f"User {user_id} is not a party to order {order_id}")
            raise ForbiddenError("NOT_ORDER_PARTY")
        return order

    @staticmethod
    def _party(order: Order, user_id: str) -> str:
        return "buyer" if order.buyer_id == user_id else "seller"

    async def _record(
        self,
        order_id: str,
        event_type: str,
        description: str,
        created_by: Optional[str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self.repos.orders.add_timeline(
            OrderTimeline(
                order_id=order_id,
                event_type=event_type,
                description=description,
                created_by=created_by,
                event_metadata=metadata,
                created_at=utcnow(),
            )
        )
        metrics.order_transitions_total.labels(event=event_type).inc()

    async def _transition_or_fail(
        self,
        order_id: str,
        from_statuses,
        to_status: str,
        values: Optional[Dict[str, Any]] = None,
    ) -> Order:
        changed = await self.repos.orders.transition(order_id, from_statuses, to_status, values)
        order = await self._load(order_id)
        if not changed:
            if order.status in TERMINAL_STATUSES:
                raise ValidationError("ORDER_ALREADY_FINAL")
            raise ValidationError(
                "INVALID_ORDER_TRANSITION",
                detail=f"{order.status} -> {to_status} not allowed",
            )
        return order

    # ------------------------------------------------------------------
    # creation and queries
    # ------------------------------------------------------------------

    async def create_order(
        self,
        buyer_id: str,
        product_id: str,
        order_type: str,
        payment_method: str,
        shipping_address: Optional[Dict[str, Any]] = None,
        meetup_location: Optional[str] = None,
        meetup_time: Optional[datetime] = None,
    ) -> Order:
        """
        Create an order with frozen amounts.

        Cash orders start as ``paid``; online orders wait for the payment
        webhook in ``pending_payment``.
        """
        if order_type not in ORDER_TYPES:
            raise ValidationError("INVALID_ORDER_TYPE")
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError("INVALID_PAYMENT_METHOD")
        if order_type == "shipping" and not shipping_address:
            raise ValidationError("SHIPPING_ADDRESS_REQUIRED")

        product = await self.repos.products.get(product_id)
        if product is None or product.deleted_at is not None:
            raise NotFoundError("PRODUCT_NOT_FOUND")
        if product.seller_id == buyer_id:
            raise ValidationError("CANNOT_BUY_OWN_PRODUCT")
        if product.status != "active":
            raise ValidationError("PRODUCT_NOT_AVAILABLE")

        fees = compute_fees(product.price, order_type, payment_method, self.config)
        now = utcnow()
        order = Order(
            id=new_id(),
            product_id=product.id,
            buyer_id=buyer_id,
            seller_id=product.seller_id,
            order_type=order_type,
            payment_method=payment_method,
            product_amount=fees.product_amount,
            shipping_fee=fees.shipping_fee,
            platform_fee=fees.platform_fee,
            total_amount=fees.total_amount,
            currency=product.currency or self.config.default_currency,
            status="paid" if payment_method == "cash" else "pending_payment",
            shipping_address=shipping_address if order_type == "shipping" else None,
            meetup_location=meetup_location if order_type == "meetup" else None,
            meetup_time=meetup_time if order_type == "meetup" else None,
            meetup_confirmed_by_buyer=False,
            meetup_confirmed_by_seller=False,
            expires_at=now + timedelta(hours=self.config.order_expiry_hours),
            created_at=now,
            updated_at=now,
        )
        order = await self.repos.orders.add(order)

        await self._record(
            order.id,
            "created",
            f"Order created - {'meetup' if order_type == 'meetup' else 'shipping'}",
            buyer_id,
            {"order_type": order_type, "payment_method": payment_method},
        )
        metrics.orders_created_total.labels(
            order_type=order_type, payment_method=payment_method
        ).inc()
        logger.info(
            f"Created order {order.id} ({order_type}/{payment_method}) "
            f"total={order.total_amount} status={order.status}"
        )

        if payment_method == "cash":
            await self.repos.conversations.get_or_create(
                product.id, buyer_id, product.seller_id
            )

        await self.notifier.notify_order_status(order.id, "created")
        return order

    async def get_order(self, order_id: str, user_id: str) -> tuple[Order, List[OrderTimeline]]:
        order = await self._load_for_party(order_id, user_id)
        timeline = await self.repos.orders.list_timeline(order_id)
        return order, timeline

    async def list_orders(self, user_id: str, role: Optional[str] = None) -> List[Order]:
        if role not in (None, "buyer", "seller"):
            raise ValidationError("INVALID_DATA", detail=f"unknown role {role}")
        return await self.repos.orders.list_for_user(user_id, role)

    # ------------------------------------------------------------------
    # payment
    # ------------------------------------------------------------------

    async def mark_paid(
        self,
        payment_intent_id: Optional[str] = None,
        order_id: Optional[str] = None,
    ) -> Order:
        """
        Apply a successful payment from the processor's webhook.

        Only ``pending_payment`` orders move; replays return the order unchanged.
        """
        if payment_intent_id:
            order = await self.repos.orders.get_by_payment_intent(payment_intent_id)
            if order is None and order_id:
                order = await self.repos.orders.get(order_id)
        elif order_id:
            order = await self.repos.orders.get(order_id)
        else:
            raise ValidationError("MISSING_FIELDS")

        if order is None:
            raise NotFoundError("ORDER_NOT_FOUND")

        values = {"updated_at": utcnow()}
        if payment_intent_id:
            values["payment_intent_id"] = payment_intent_id

        changed = await self.repos.orders.transition(order.id, ("pending_payment",), "paid", values)
        if not changed:
            logger.info(f"Payment for order {order.id} ignored in status {order.status}")
            return await self._load(order.id)

        await self.repos.products.update(
            order.product_id, {"status": "sold", "updated_at": utcnow()}
        )
        await self._record(
            order.id,
            "paid",
            "Online payment received",
            None,
            {"payment_intent_id": payment_intent_id} if payment_intent_id else None,
        )
        await self.notifier.notify_order_status(order.id, "paid")
        return await self._load(order.id)

    # ------------------------------------------------------------------
    # confirmation
    # ------------------------------------------------------------------

    async def confirm(self, order_id: str, user_id: str) -> ConfirmResult:
        """
        Record the caller's confirmation that the deal happened.

        Each party confirms at most once; once both have, the order completes
        exactly once.
        """
        order = await self._load_for_party(order_id, user_id)
        if order.status == "cancelled":
            raise ValidationError("ORDER_ALREADY_FINAL")

        party = self._party(order, user_id)
        now = utcnow()
        newly_set = await self.repos.orders.set_confirmation(
            order_id, party, now, CONFIRMATION_BLOCKED_STATUSES
        )
        if not newly_set:
            order = await self._load(order_id)
            if order.status in CONFIRMATION_BLOCKED_STATUSES:
                raise ValidationError(
                    "ORDER_ALREADY_FINAL" if order.status == "cancelled" else "INVALID_ORDER_TRANSITION"
                )
            return ConfirmResult(
                order=order,
                completed=order.status == "completed",
                already_confirmed=True,
            )

        event = f"{party}_confirmed"
        await self._record(order_id, event, f"{party.capitalize()} confirmed completion", user_id)
        await self.notifier.notify_order_status(order_id, event)

        completed = await self.repos.orders.mark_completed(order_id, utcnow())
        if completed:
            await self._record(order_id, "completed", "Order completed", user_id)
            await self.notifier.notify_order_status(order_id, "completed")
            logger.info(f"Order {order_id} completed")

        return ConfirmResult(order=await self._load(order_id), completed=completed)

    # ------------------------------------------------------------------
    # meetup
    # ------------------------------------------------------------------

    async def arrange_meetup(
        self,
        order_id: str,
        user_id: str,
        location: str,
        time: datetime,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
    ) -> Order:
        """
        Set or replace the meetup plan.

        A new plan invalidates earlier meetup confirmations, so both flags
        are reset and must be given again.
        """
        order = await self._load_for_party(order_id, user_id)
        if order.order_type != "meetup":
            raise ValidationError("MEETUP_ONLY")
        if not location or time is None:
            raise ValidationError("MISSING_FIELDS")

        order = await self._transition_or_fail(
            order_id,
            MEETUP_PLANNING_STATUSES,
            "meetup_arranged",
            {
                "meetup_location": location,
                "meetup_time": time,
                "meetup_location_lat": lat,
                "meetup_location_lng": lng,
                "meetup_confirmed_by_buyer": False,
                "meetup_confirmed_by_seller": False,
                "updated_at": utcnow(),
            },
        )
        await self._record(
            order_id,
            "meetup_arranged",
            f"Meetup arranged: {location}, {time.isoformat()}",
            user_id,
            {"location": location, "time": time.isoformat(), "lat": lat, "lng": lng},
        )
        return order

    async def confirm_meetup(self, order_id: str, user_id: str) -> Order:
        """Agree to the current meetup plan."""
        order = await self._load_for_party(order_id, user_id)
        if order.order_type != "meetup":
            raise ValidationError("MEETUP_ONLY")

        party = self._party(order, user_id)
        if not await self.repos.orders.set_meetup_confirmation(order_id, party):
            raise ValidationError("INVALID_ORDER_TRANSITION", detail="no meetup arranged")

        await self._record(order_id, "meetup_confirmed", f"{party.capitalize()} agreed to the meetup", user_id)
        return await self._load(order_id)

    # ------------------------------------------------------------------
    # shipping, disputes, cancellation
    # ------------------------------------------------------------------

    async def mark_shipped(
        self,
        order_id: str,
        user_id: str,
        carrier: Optional[str] = None,
        tracking_number: Optional[str] = None,
    ) -> Order:
        order = await self._load_for_party(order_id, user_id)
        if order.seller_id != user_id:
            raise ForbiddenError("ONLY_SELLER_CAN_SHIP")
        if order.order_type != "shipping":
            raise ValidationError("SHIPPING_ONLY")

        order = await self._transition_or_fail(
            order_id,
            ("paid",),
            "shipped",
            {"shipping_carrier": carrier, "tracking_number": tracking_number, "updated_at": utcnow()},
        )
        await self._record(
            order_id,
            "shipped",
            f"Shipped via {carrier or 'unknown carrier'}",
            user_id,
            {"carrier": carrier, "tracking_number": tracking_number},
        )
        await self.notifier.notify_order_status(
            order_id, "shipped", {"carrier": carrier, "trackingNumber": tracking_number}
        )
        return order

    async def open_dispute(self, order_id: str, user_id: str, reason: str) -> Order:
        await self._load_for_party(order_id, user_id)
        if not reason or not reason.strip():
            raise ValidationError("MISSING_FIELDS")

        order = await self._transition_or_fail(
            order_id,
            DISPUTABLE_STATUSES,
            "disputed",
            {"dispute_reason": reason.strip(), "updated_at": utcnow()},
        )
        await self._record(order_id, "disputed", reason.strip(), user_id)
        await self.notifier.notify_order_status(order_id, "disputed", {"reason": reason.strip()})
        return order

    async def cancel(self, order_id: str, user_id: str, reason: Optional[str] = None) -> Order:
        await self._load_for_party(order_id, user_id)
        now = utcnow()
        order = await self._transition_or_fail(
            order_id,
            CANCELLABLE_STATUSES,
            "cancelled",
            {"cancelled_at": now, "updated_at": now},
        )
        await self._record(
            order_id, "cancelled", reason or "Order cancelled", user_id,
            {"reason": reason} if reason else None,
        )
        await self.notifier.notify_order_status(
            order_id, "cancelled", {"reason": reason} if reason else None
        )
        return order
