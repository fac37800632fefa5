"""Back-office routes: moderation, promotion and on-demand auto-review."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from bazaar.api.deps import Principal, get_services, require_admin
from bazaar.api.schemas import ProductResponse
from bazaar.container import Services

router = APIRouter(prefix="/api/admin", tags=["admin"])


class AutoReviewRequest(BaseModel):
    limit: int = Field(50, ge=1, le=500)
    hours_ago: Optional[int] = Field(None, ge=1)


class AutoReviewResponse(BaseModel):
    skipped: bool = False
    approved: int = 0
    category_corrected: int = 0
    flagged: int = 0
    errors: int = 0


class AdminProductList(BaseModel):
    items: List[ProductResponse]
    total: int
    page: int
    page_size: int


class StatusUpdate(BaseModel):
    status: str


class PromotionUpdate(BaseModel):
    is_promoted: bool


class ReviewDecision(BaseModel):
    approve: bool
    note: Optional[str] = None


@router.post("/auto-review", response_model=AutoReviewResponse)
async def trigger_auto_review(
    request: Request,
    data: Optional[AutoReviewRequest] = None,
    admin: Principal = Depends(require_admin),
):
    """Run one auto-review pass now. Skipped if a run is already in progress."""
    data = data or AutoReviewRequest()
    stats = await request.app.state.task_runner.run_auto_review(
        trigger="manual", limit=data.limit, hours_ago=data.hours_ago
    )
    if stats is None:
        return AutoReviewResponse(skipped=True)
    return AutoReviewResponse(**stats.to_dict())


@router.get("/products", response_model=AdminProductList)
async def list_products(
    status: Optional[str] = None,
    include_deleted: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
):
    items, total = await services.listings.list_for_admin(
        status=status, include_deleted=include_deleted, page=page, page_size=page_size
    )
    return AdminProductList(
        items=[ProductResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.patch("/products/{product_id}/status", response_model=ProductResponse)
async def update_status(
    product_id: str,
    data: StatusUpdate,
    admin: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
):
    return await services.listings.set_status(product_id, data.status)


@router.patch("/products/{product_id}/promotion", response_model=ProductResponse)
async def update_promotion(
    product_id: str,
    data: PromotionUpdate,
    admin: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
):
    return await services.listings.set_promoted(product_id, data.is_promoted)


@router.post("/products/{product_id}/review", response_model=ProductResponse)
async def review_product(
    product_id: str,
    data: ReviewDecision,
    admin: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
):
    return await services.listings.review(product_id, data.approve, data.note)


@router.post("/products/{product_id}/restore", response_model=ProductResponse)
async def restore_product(
    product_id: str,
    admin: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
):
    return await services.listings.restore(product_id)


@router.delete("/products/{product_id}", response_model=ProductResponse)
async def delete_product(
    product_id: str,
    admin: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Soft delete; the row is kept with status ``deleted``."""
    return await services.listings.delete_listing(product_id, admin.user_id, is_admin=True)
