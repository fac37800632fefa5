"""Order routes. Every order endpoint is restricted to the order's buyer or seller."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from bazaar.api.deps import Principal, get_services, require_user
from bazaar.api.schemas import OrderResponse, TimelineEntryResponse
from bazaar.container import Services

router = APIRouter(prefix="/api/orders", tags=["orders"])


class OrderCreate(BaseModel):
    product_id: str
    order_type: str
    payment_method: str
    shipping_address: Optional[dict] = None
    meetup_location: Optional[str] = None
    meetup_time: Optional[datetime] = None


class OrderCreated(BaseModel):
    order: OrderResponse
    requires_payment: bool


class OrderDetail(BaseModel):
    order: OrderResponse
    timeline: List[TimelineEntryResponse]


class ConfirmResponse(BaseModel):
    order: OrderResponse
    completed: bool
    already_confirmed: bool


class ArrangeMeetup(BaseModel):
    location: str
    time: datetime
    lat: Optional[float] = None
    lng: Optional[float] = None


class ShipOrder(BaseModel):
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None


class DisputeOrder(BaseModel):
    reason: str


class CancelOrder(BaseModel):
    reason: Optional[str] = None


@router.post("", response_model=OrderCreated, status_code=201)
async def create_order(
    data: OrderCreate,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    """Checkout. Online orders wait for the payment webhook."""
    order = await services.orders.create_order(
        buyer_id=user.user_id,
        product_id=data.product_id,
        order_type=data.order_type,
        payment_method=data.payment_method,
        shipping_address=data.shipping_address,
        meetup_location=data.meetup_location,
        meetup_time=data.meetup_time,
    )
    return OrderCreated(
        order=OrderResponse.model_validate(order),
        requires_payment=order.status == "pending_payment",
    )


@router.get("", response_model=List[OrderResponse])
async def list_orders(
    role: Optional[str] = None,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    return await services.orders.list_orders(user.user_id, role)


@router.get("/{order_id}", response_model=OrderDetail)
async def get_order(
    order_id: str,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    order, timeline = await services.orders.get_order(order_id, user.user_id)
    return OrderDetail(
        order=OrderResponse.model_validate(order),
        timeline=[TimelineEntryResponse.model_validate(entry) for entry in timeline],
    )


@router.post("/{order_id}/confirm", response_model=ConfirmResponse)
async def confirm_order(
    order_id: str,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    result = await services.orders.confirm(order_id, user.user_id)
    return ConfirmResponse(
        order=OrderResponse.model_validate(result.order),
        completed=result.completed,
        already_confirmed=result.already_confirmed,
    )


@router.post("/{order_id}/arrange-meetup", response_model=OrderResponse)
async def arrange_meetup(
    order_id: str,
    data: ArrangeMeetup,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    return await services.orders.arrange_meetup(
        order_id, user.user_id, data.location, data.time, data.lat, data.lng
    )


@router.post("/{order_id}/confirm-meetup", response_model=OrderResponse)
async def confirm_meetup(
    order_id: str,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    return await services.orders.confirm_meetup(order_id, user.user_id)


@router.post("/{order_id}/ship", response_model=OrderResponse)
async def ship_order(
    order_id: str,
    data: ShipOrder,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    return await services.orders.mark_shipped(
        order_id, user.user_id, data.carrier, data.tracking_number
    )


@router.post("/{order_id}/dispute", response_model=OrderResponse)
async def dispute_order(
    order_id: str,
    data: DisputeOrder,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    return await services.orders.open_dispute(order_id, user.user_id, data.reason)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    data: Optional[CancelOrder] = None,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    return await services.orders.cancel(order_id, user.user_id, data.reason if data else None)
