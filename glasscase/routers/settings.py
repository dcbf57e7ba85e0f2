"""Account settings summary routes."""

from fastapi import APIRouter, Depends

from glasscase.auth import current_user_id
from glasscase.config import settings
from glasscase.database import get_db
from glasscase.services import ebay_auth_service

router = APIRouter(prefix="/api/settings", tags=["settings"])


async def _count(query: str, user_id: int) -> int:
    db = await get_db()
    cursor = await db.execute(query, (user_id,))
    return (await cursor.fetchone())[0]


@router.get("")
async def get_settings(user_id: int = Depends(current_user_id)):
    """Integration availability and the caller's account stats (no secrets)."""
    item_count = await _count(
        "SELECT COUNT(*) FROM inventory_items WHERE user_id = ? AND deleted = 0", user_id
    )
    active_share_count = await _count(
        "SELECT COUNT(*) FROM share_links WHERE user_id = ? AND is_active = 1", user_id
    )
    wishlist_count = await _count(
        "SELECT COUNT(*) FROM wishlist_items WHERE user_id = ?", user_id
    )
    found_listing_count = await _count(
        "SELECT COUNT(*) FROM found_listings WHERE user_id = ?", user_id
    )

    return {
        "base_url": settings.base_url,
        "token_expiry_days": settings.token_expiry_days,
        "has_ebay_credentials": settings.ebay_configured,
        "has_vision_api_key": bool(settings.google_vision_api_key),
        "has_openai_api_key": bool(settings.openai_api_key),
        "ebay": await ebay_auth_service.connection_status(user_id),
        # Account stats
        "item_count": item_count,
        "active_share_count": active_share_count,
        "wishlist_count": wishlist_count,
        "found_listing_count": found_listing_count,
    }


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
