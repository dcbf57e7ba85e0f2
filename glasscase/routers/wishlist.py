"""Wishlist routes: wishlist items, marketplace search, found listings, wishlist shares."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel

from glasscase.auth import current_user_id
from glasscase.errors import EbayNotConfigured, MarketplaceSearchError, ShareAccessError
from glasscase.models.share import WishlistShareCreate, WishlistShareResponse
from glasscase.models.wishlist import (
    FoundListingResponse,
    MarketplaceSearchResponse,
    WishlistItemCreate,
    WishlistItemResponse,
    WishlistItemUpdate,
)
from glasscase.routers.share import _esc, _money, _render_error_page
from glasscase.services import marketplace_service, wishlist_service, wishlist_share_service

router = APIRouter(tags=["wishlist"])


class ShareActiveUpdate(BaseModel):
    is_active: bool


# ── Static path routes (must come BEFORE /{item_id} to avoid conflicts) ─────

@router.get("/api/wishlist/found", response_model=list[FoundListingResponse])
async def list_found(wishlist_item_id: int | None = None, user_id: int = Depends(current_user_id)):
    """Marketplace listings found for the caller's wishlist."""
    return await wishlist_service.list_found_listings(user_id, wishlist_item_id)


@router.delete("/api/wishlist/found/{listing_id}")
async def dismiss_found(listing_id: int, user_id: int = Depends(current_user_id)):
    if not await wishlist_service.delete_found_listing(listing_id, user_id):
        raise HTTPException(status_code=404, detail="Found listing not found")
    return {"message": "Found listing dismissed"}


@router.patch("/api/wishlist/shares/{share_id}", response_model=WishlistShareResponse)
async def set_share_active(
    share_id: int, data: ShareActiveUpdate, user_id: int = Depends(current_user_id)
):
    share = await wishlist_share_service.set_wishlist_share_active(share_id, user_id, data.is_active)
    if not share:
        raise HTTPException(status_code=404, detail="Wishlist share not found")
    return share


@router.delete("/api/wishlist/shares/{share_id}")
async def delete_share(share_id: int, user_id: int = Depends(current_user_id)):
    if not await wishlist_share_service.delete_wishlist_share(share_id, user_id):
        raise HTTPException(status_code=404, detail="Wishlist share not found")
    return {"message": "Wishlist share deleted"}


# ── Wishlist items ───────────────────────────────────────────────────────────

@router.get("/api/wishlist", response_model=list[WishlistItemResponse])
async def list_wishlist(status: str | None = None, user_id: int = Depends(current_user_id)):
    return await wishlist_service.list_wishlist(user_id, status=status)


@router.post("/api/wishlist", response_model=WishlistItemResponse, status_code=201)
async def create_wishlist_item(data: WishlistItemCreate, user_id: int = Depends(current_user_id)):
    return await wishlist_service.create_wishlist_item(user_id, **data.model_dump())


@router.get("/api/wishlist/{item_id}", response_model=WishlistItemResponse)
async def get_wishlist_item(item_id: int, user_id: int = Depends(current_user_id)):
    item = await wishlist_service.get_wishlist_item(item_id, user_id)
    if not item:
        raise HTTPException(status_code=404, detail="Wishlist item not found")
    return item


@router.put("/api/wishlist/{item_id}", response_model=WishlistItemResponse)
async def update_wishlist_item(
    item_id: int, data: WishlistItemUpdate, user_id: int = Depends(current_user_id)
):
    item = await wishlist_service.update_wishlist_item(item_id, user_id, **data.model_dump())
    if not item:
        raise HTTPException(status_code=404, detail="Wishlist item not found")
    return item


@router.post("/api/wishlist/{item_id}/toggle", response_model=WishlistItemResponse)
async def toggle_wishlist_item(item_id: int, user_id: int = Depends(current_user_id)):
    """Pause an active item or reactivate a paused or found one."""
    item = await wishlist_service.toggle_wishlist_status(item_id, user_id)
    if not item:
        raise HTTPException(status_code=404, detail="Wishlist item not found")
    return item


@router.delete("/api/wishlist/{item_id}")
async def delete_wishlist_item(item_id: int, user_id: int = Depends(current_user_id)):
    if not await wishlist_service.delete_wishlist_item(item_id, user_id):
        raise HTTPException(status_code=404, detail="Wishlist item not found")
    return {"message": "Wishlist item deleted"}


@router.post("/api/wishlist/{item_id}/search", response_model=MarketplaceSearchResponse)
async def search_marketplace(item_id: int, user_id: int = Depends(current_user_id)):
    """Run one marketplace search for a wishlist item."""
    try:
        result = await marketplace_service.search_for_wishlist_item(item_id, user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EbayNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))
    except MarketplaceSearchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail="Wishlist item not found")
    return result


@router.get("/api/wishlist/{item_id}/shares", response_model=list[WishlistShareResponse])
async def list_item_shares(item_id: int, user_id: int = Depends(current_user_id)):
    return await wishlist_share_service.list_wishlist_shares(user_id, item_id)


@router.post("/api/wishlist/{item_id}/shares", response_model=WishlistShareResponse, status_code=201)
async def create_item_share(
    item_id: int, data: WishlistShareCreate, user_id: int = Depends(current_user_id)
):
    """Create a public "help me find this" link for a wishlist item."""
    share = await wishlist_share_service.create_wishlist_share(
        item_id, user_id, data.settings, expires_in_days=data.expires_in_days
    )
    if not share:
        raise HTTPException(status_code=404, detail="Wishlist item not found")
    return share


# ── Public wishlist share (no auth required) ────────────────────────────────

@router.get("/api/share-wishlist")
async def share_wishlist(shareId: str | None = None):
    """Public view of a shared wishlist item."""
    try:
        shared = await wishlist_share_service.get_shared_wishlist_item(shareId)
    except ShareAccessError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.public_message})
    return {"success": True, "wishlist": shared}


@router.get("/wishlist/share/{share_id}")
async def public_wishlist_page(share_id: str):
    """Public "help me find this" page for a shared wishlist item."""
    try:
        shared = await wishlist_share_service.get_shared_wishlist_item(share_id)
    except ShareAccessError as e:
        return HTMLResponse(
            content=_render_error_page("Wishlist Item Unavailable", e.public_message),
            status_code=e.status_code,
        )
    return HTMLResponse(
        content=_render_wishlist_page(
            shared=shared,
            page_url=wishlist_share_service.wishlist_share_url(share_id),
        )
    )


def _render_wishlist_page(shared: dict, page_url: str) -> str:
    owner = shared["owner"]["name"]
    item = shared["item"]
    title = f"{owner} is looking for {item['item_name']}"

    details = []
    if item.get("ebay_search_term"):
        details.append(f"<li>Search for: {_esc(item['ebay_search_term'])}</li>")
    if item.get("additional_search_terms"):
        details.append(f"<li>Also try: {_esc(item['additional_search_terms'])}</li>")
    if item.get("desired_price_max") is not None:
        details.append(f"<li>Budget: up to {_esc(_money(item['desired_price_max']))}</li>")
    if item.get("facebook_marketplace_url"):
        url = _esc(item["facebook_marketplace_url"])
        details.append(f'<li><a href="{url}" rel="nofollow noopener">Facebook Marketplace search</a></li>')
    details_html = f"<ul>{''.join(details)}</ul>" if details else ""

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{_esc(title)}</title>
    <meta property="og:title" content="{_esc(title)}">
    <meta property="og:description" content="Help {_esc(owner)} find this piece on MyGlassCase">
    <meta property="og:url" content="{_esc(page_url)}">
    <meta property="og:type" content="website">
    <meta property="og:site_name" content="MyGlassCase">
    <style>
        body {{ background: #f7f7fb; color: #1f2937; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; display: flex; align-items: center; justify-content: center; min-height: 100vh; }}
        .card {{ background: #fff; border: 1px solid #e5e7eb; border-radius: 8px; padding: 24px; max-width: 480px; }}
        h1 {{ font-size: 22px; margin-bottom: 8px; }}
        p, li {{ color: #6b7280; font-size: 14px; line-height: 1.6; }}
        a {{ color: #7c3aed; }}
    </style>
</head>
<body>
    <div class="card">
        <h1>{_esc(item["item_name"])}</h1>
        <p>{_esc(owner)} is hunting for this piece. Seen one? Let them know.</p>
        {details_html}
        <p>Shared {_esc(shared.get("sharedAt"))}</p>
    </div>
</body>
</html>"""
