"""Price negotiation routes."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from bazaar.api.deps import Principal, get_services, require_user
from bazaar.api.schemas import MessageResponse
from bazaar.container import Services

router = APIRouter(prefix="/api/negotiations", tags=["negotiations"])


class ProposeRequest(BaseModel):
    conversation_id: str
    product_id: str
    proposed_price: float


class RespondRequest(BaseModel):
    message_id: str
    response: str  # accepted, rejected, counter
    counter_price: Optional[float] = None


class RespondResponse(BaseModel):
    message: MessageResponse
    negotiation: dict


@router.post("/propose", response_model=MessageResponse, status_code=201)
async def propose_price(
    data: ProposeRequest,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    return await services.negotiations.propose(
        data.conversation_id, data.product_id, user.user_id, data.proposed_price
    )


@router.post("/respond", response_model=RespondResponse)
async def respond_to_offer(
    data: RespondRequest,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    """Seller accepts, rejects or counters an offer."""
    message, negotiation = await services.negotiations.respond(
        data.message_id, user.user_id, data.response, data.counter_price
    )
    return RespondResponse(message=MessageResponse.model_validate(message), negotiation=negotiation)
