"""Pydantic models for eBay connection and listing endpoints."""

from pydantic import BaseModel, Field


class AuthStartResponse(BaseModel):
    auth_url: str
    state: str
    expires_at: str


class AuthSessionResponse(BaseModel):
    state: str
    status: str
    error: str | None = None
    created_at: str
    expires_at: str
    completed_at: str | None = None


class ListingData(BaseModel):
    title: str = Field(..., min_length=1, max_length=80)
    description: str = ""
    category_id: str = Field(..., pattern=r"^\d+$")
    start_price: float = Field(..., gt=0)
    buy_it_now_price: float | None = Field(default=None, gt=0)
    duration: int = Field(default=7, ge=1, le=30)
    condition: str = "used"
    shipping_cost: float = Field(default=0, ge=0)
    photos: list[str] = []


class ListingCreate(BaseModel):
    item_id: int
    listing_data: ListingData


class ListingResponse(BaseModel):
    id: int
    inventory_item_id: int
    ebay_listing_id: str
    listing_url: str | None = None
    title: str
    start_price: float
    buy_it_now_price: float | None = None
    status: str
    created_at: str
