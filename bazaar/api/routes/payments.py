"""Payment processor webhook."""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel

from bazaar.api.deps import get_config, get_services
from bazaar.api.schemas import OrderResponse
from bazaar.config import Settings
from bazaar.container import Services
from bazaar.errors import AuthError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])

SUCCEEDED_EVENTS = ("payment_intent.succeeded",)


class PaymentEvent(BaseModel):
    type: str
    payment_intent_id: Optional[str] = None
    order_id: Optional[str] = None


class WebhookResponse(BaseModel):
    received: bool = True
    handled: bool
    order: Optional[OrderResponse] = None


@router.post("/webhook", response_model=WebhookResponse)
async def payment_webhook(
    event: PaymentEvent,
    x_webhook_secret: Optional[str] = Header(None, alias="X-Webhook-Secret"),
    config: Settings = Depends(get_config),
    services: Services = Depends(get_services),
):
    """Mark an online order paid when the processor reports success. Replays are harmless."""
    if not config.payment_webhook_secret or not x_webhook_secret or not hmac.compare_digest(
        x_webhook_secret.encode(), config.payment_webhook_secret.encode()
    ):
        raise AuthError("INVALID_WEBHOOK_SIGNATURE")

    if event.type not in SUCCEEDED_EVENTS:
        logger.info(f"Ignoring payment event {event.type}")
        return WebhookResponse(handled=False)

    order = await services.orders.mark_paid(
        payment_intent_id=event.payment_intent_id, order_id=event.order_id
    )
    return WebhookResponse(handled=True, order=OrderResponse.model_validate(order))
