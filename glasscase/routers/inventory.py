"""Inventory routes: the owner's collection items."""

from fastapi import APIRouter, Depends, HTTPException

from glasscase.auth import current_user_id
from glasscase.models.inventory import ItemCreate, ItemListResponse, ItemResponse, ItemUpdate
from glasscase.services import inventory_service

router = APIRouter(prefix="/api/items", tags=["inventory"])


@router.get("", response_model=ItemListResponse)
async def list_items(category: str | None = None, user_id: int = Depends(current_user_id)):
    """List the caller's items, newest first."""
    items = await inventory_service.list_items(user_id, category=category)
    summary = await inventory_service.get_inventory_summary(user_id, category=category)
    return {
        "items": items,
        "total": len(items),
        "total_quantity": summary["total_quantity"],
        "total_value": summary["total_value"],
    }


@router.post("", response_model=ItemResponse, status_code=201)
async def create_item(data: ItemCreate, user_id: int = Depends(current_user_id)):
    """Add an item to the caller's collection."""
    return await inventory_service.create_item(user_id, **data.model_dump())


@router.get("/{item_id}", response_model=ItemResponse)
async def get_item(item_id: int, user_id: int = Depends(current_user_id)):
    item = await inventory_service.get_item(item_id, user_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


@router.put("/{item_id}", response_model=ItemResponse)
async def update_item(item_id: int, data: ItemUpdate, user_id: int = Depends(current_user_id)):
    """Update item fields."""
    item = await inventory_service.update_item(item_id, user_id, **data.model_dump())
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


@router.delete("/{item_id}")
async def delete_item(item_id: int, user_id: int = Depends(current_user_id)):
    """Soft-delete an item; it disappears from every share link at once."""
    if not await inventory_service.delete_item(item_id, user_id):
        raise HTTPException(status_code=404, detail="Item not found")
    return {"message": "Item deleted"}


@router.post("/{item_id}/restore", response_model=ItemResponse)
async def restore_item(item_id: int, user_id: int = Depends(current_user_id)):
    if not await inventory_service.restore_item(item_id, user_id):
        raise HTTPException(status_code=404, detail="Deleted item not found")
    return await inventory_service.get_item(item_id, user_id)
