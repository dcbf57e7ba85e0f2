"""Pydantic models for inventory items."""

from pydantic import BaseModel, Field


class ItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: str | None = None
    subcategory: str | None = None
    manufacturer: str | None = None
    pattern: str | None = None
    year_manufactured: int | None = Field(default=None, ge=1000, le=2100)
    current_value: float | None = Field(default=None, ge=0)
    condition: str | None = None
    photo_url: str | None = None
    quantity: int = Field(default=1, ge=1)
    purchase_price: float | None = Field(default=None, ge=0)
    purchase_date: str | None = None
    location: str | None = None
    description: str | None = None


class ItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = None
    subcategory: str | None = None
    manufacturer: str | None = None
    pattern: str | None = None
    year_manufactured: int | None = Field(default=None, ge=1000, le=2100)
    current_value: float | None = Field(default=None, ge=0)
    condition: str | None = None
    photo_url: str | None = None
    quantity: int | None = Field(default=None, ge=1)
    purchase_price: float | None = Field(default=None, ge=0)
    purchase_date: str | None = None
    location: str | None = None
    description: str | None = None


class ItemResponse(BaseModel):
    id: int
    name: str
    category: str | None = None
    subcategory: str | None = None
    manufacturer: str | None = None
    pattern: str | None = None
    year_manufactured: int | None = None
    current_value: float | None = None
    condition: str | None = None
    photo_url: str | None = None
    quantity: int = 1
    purchase_price: float | None = None
    purchase_date: str | None = None
    location: str | None = None
    description: str | None = None
    created_at: str
    updated_at: str


class ItemListResponse(BaseModel):
    items: list[ItemResponse]
    total: int
    total_quantity: int
    total_value: float
