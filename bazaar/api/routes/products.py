"""Listing routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from bazaar.api.deps import Principal, get_optional_principal, get_services, require_user
from bazaar.api.schemas import ProductResponse
from bazaar.container import Services

router = APIRouter(prefix="/api/products", tags=["products"])


class ProductCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    images: List[str] = []
    category: Optional[str] = None
    subcategory: Optional[str] = None
    delivery_type: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None
    town: Optional[str] = None


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(
    data: ProductCreate,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    """Create a listing; it waits in pending_review until moderated."""
    return await services.listings.create_listing(
        seller_id=user.user_id,
        title=data.title,
        price=data.price,
        description=data.description,
        currency=data.currency,
        images=data.images,
        category=data.category,
        subcategory=data.subcategory,
        delivery_type=data.delivery_type,
        latitude=data.latitude,
        longitude=data.longitude,
        city=data.city,
        town=data.town,
    )


@router.get("", response_model=List[ProductResponse])
async def list_products(
    category: Optional[str] = None,
    lang: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    services: Services = Depends(get_services),
):
    """Active listings, promoted first, localized when ``lang`` is given."""
    listings = await services.listings.list_listings(
        category=category, language=lang, page=page, page_size=page_size
    )
    return [ProductResponse.from_listing(listing) for listing in listings]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    lang: Optional[str] = None,
    viewer: Optional[Principal] = Depends(get_optional_principal),
    services: Services = Depends(get_services),
):
    listing = await services.listings.get_listing(
        product_id,
        lang,
        viewer_id=viewer.user_id if viewer else None,
        is_admin=bool(viewer and viewer.is_admin),
    )
    return ProductResponse.from_listing(listing)


@router.delete("/{product_id}", response_model=ProductResponse)
async def delete_product(
    product_id: str,
    user: Principal = Depends(require_user),
    services: Services = Depends(get_services),
):
    """Soft-delete a listing (owner or admin)."""
    return await services.listings.delete_listing(product_id, user.user_id, is_admin=user.is_admin)
