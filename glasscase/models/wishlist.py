"""Pydantic models for wishlist items and found listings."""

from typing import Literal

from pydantic import BaseModel, Field

WishlistStatus = Literal["active", "paused", "found"]


class WishlistItemCreate(BaseModel):
    item_name: str = Field(..., min_length=1, max_length=255)
    ebay_search_term: str = ""
    additional_search_terms: str | None = None
    facebook_marketplace_url: str | None = None
    desired_price_max: float | None = Field(default=None, ge=0)
    status: WishlistStatus = "active"
    notes: str | None = None


class WishlistItemUpdate(BaseModel):
    item_name: str | None = Field(default=None, min_length=1, max_length=255)
    ebay_search_term: str | None = None
    additional_search_terms: str | None = None
    facebook_marketplace_url: str | None = None
    desired_price_max: float | None = Field(default=None, ge=0)
    status: WishlistStatus | None = None
    notes: str | None = None


class WishlistItemResponse(BaseModel):
    id: int
    item_name: str
    ebay_search_term: str = ""
    additional_search_terms: str | None = None
    facebook_marketplace_url: str | None = None
    desired_price_max: float | None = None
    status: str = "active"
    notes: str | None = None
    created_at: str
    updated_at: str


class FoundListingResponse(BaseModel):
    id: int
    wishlist_item_id: int
    listing_id: str
    title: str
    price: float | None = None
    currency: str | None = None
    listing_url: str | None = None
    image_url: str | None = None
    condition: str | None = None
    seller: str | None = None
    found_at: str


class MarketplaceSearchResponse(BaseModel):
    wishlist_item_id: int
    query: str
    matched: int
    new: int
    listings: list[FoundListingResponse]
