"""Public share links for single wishlist items ("help me find this")."""

import json
import logging
import secrets

import aiosqlite
from pydantic import ValidationError

from glasscase.config import settings
from glasscase.database import fetch_all, fetch_one, get_db
from glasscase.errors import ShareBadRequest, ShareNotFound, UpstreamFailure
from glasscase.models.share import WishlistShareSettings
from glasscase.services import wishlist_service
from glasscase.services.share_service import get_owner_display_name, validate_share_link
from glasscase.services.timestamps import iso_in

logger = logging.getLogger(__name__)


def wishlist_share_url(unique_share_id: str) -> str:
    return f"{settings.base_url}/wishlist/share/{unique_share_id}"


def _normalize(raw) -> WishlistShareSettings:
    if isinstance(raw, WishlistShareSettings):
        return raw
    if not isinstance(raw, dict):
        return WishlistShareSettings()
    return WishlistShareSettings.model_validate({k: v for k, v in raw.items() if v is not None})


def _hydrate(row: dict) -> dict:
    share = dict(row)
    try:
        share["settings"] = _normalize(json.loads(share.get("settings") or "{}"))
    except (json.JSONDecodeError, ValidationError):
        logger.warning("Wishlist share %s has unreadable settings; using defaults", share["id"])
        share["settings"] = WishlistShareSettings()
    share["is_active"] = bool(share["is_active"])
    share["url"] = wishlist_share_url(share["unique_share_id"])
    return share


async def create_wishlist_share(
    wishlist_item_id: int,
    user_id: int,
    share_settings: WishlistShareSettings | dict | None = None,
    expires_in_days: int | None = None,
) -> dict | None:
    """Create a share for one of the owner's wishlist items.

    Returns None when the owner has no such wishlist item.
    """
    item = await wishlist_service.get_wishlist_item(wishlist_item_id, user_id)
    if item is None:
        return None

    unique_share_id = secrets.token_urlsafe(16)
    expires_at = iso_in(days=expires_in_days) if expires_in_days else None

    db = await get_db()
    cursor = await db.execute(
        """INSERT INTO wishlist_shares
           (user_id, wishlist_item_id, unique_share_id, settings, expires_at)
           VALUES (?, ?, ?, ?, ?)""",
        (
            user_id,
            wishlist_item_id,
            unique_share_id,
            _normalize(share_settings).model_dump_json(),
            expires_at,
        ),
    )
    await db.commit()
    row = await fetch_one("SELECT * FROM wishlist_shares WHERE id = ?", (cursor.lastrowid,))
    return _hydrate(row)


async def list_wishlist_shares(user_id: int, wishlist_item_id: int | None = None) -> list[dict]:
    query = "SELECT * FROM wishlist_shares WHERE user_id = ?"
    params: list = [user_id]
    if wishlist_item_id is not None:
        query += " AND wishlist_item_id = ?"
        params.append(wishlist_item_id)
    query += " ORDER BY created_at DESC, id DESC"
    return [_hydrate(row) for row in await fetch_all(query, params)]


async def set_wishlist_share_active(share_id: int, user_id: int, is_active: bool) -> dict | None:
    db = await get_db()
    cursor = await db.execute(
        "UPDATE wishlist_shares SET is_active = ? WHERE id = ? AND user_id = ?",
        (int(is_active), share_id, user_id),
    )
    await db.commit()
    if cursor.rowcount == 0:
        return None
    row = await fetch_one("SELECT * FROM wishlist_shares WHERE id = ?", (share_id,))
    return _hydrate(row)


async def delete_wishlist_share(share_id: int, user_id: int) -> bool:
    db = await get_db()
    cursor = await db.execute(
        "DELETE FROM wishlist_shares WHERE id = ? AND user_id = ?", (share_id, user_id)
    )
    await db.commit()
    return cursor.rowcount > 0


def filter_wishlist_item(item: dict, share_settings: WishlistShareSettings) -> dict:
    """Public projection of a wishlist item honouring the share's include flags."""
    public = {
        "item_name": item.get("item_name"),
        "status": item.get("status"),
        "created_at": item.get("created_at"),
    }
    if share_settings.include_search_terms:
        public["ebay_search_term"] = item.get("ebay_search_term")
        public["additional_search_terms"] = item.get("additional_search_terms")
    if share_settings.include_price_limit:
        public["desired_price_max"] = item.get("desired_price_max")
    if share_settings.include_facebook_url:
        public["facebook_marketplace_url"] = item.get("facebook_marketplace_url")
    return public


async def get_shared_wishlist_item(share_id: str | None) -> dict:
    """Resolve a public wishlist share. Raises ShareAccessError subclasses."""
    share_id = (share_id or "").strip()
    if not share_id:
        raise ShareBadRequest()

    try:
        row = await fetch_one(
            "SELECT * FROM wishlist_shares WHERE unique_share_id = ?", (share_id,)
        )
    except aiosqlite.Error as e:
        logger.error("Wishlist share lookup failed: %s", e)
        raise UpstreamFailure() from e
    if row is None:
        raise ShareNotFound(share_id)

    share = _hydrate(row)
    validate_share_link(share)

    try:
        item = await fetch_one(
            "SELECT * FROM wishlist_items WHERE id = ? AND user_id = ?",
            (share["wishlist_item_id"], share["user_id"]),
        )
    except aiosqlite.Error as e:
        logger.error("Failed to fetch wishlist item for share %s: %s", share_id, e)
        raise UpstreamFailure() from e
    if item is None:
        raise ShareNotFound(share_id)

    owner_name = await get_owner_display_name(share["user_id"])
    return {
        "owner": {"name": owner_name},
        "item": filter_wishlist_item(item, share["settings"]),
        "settings": share["settings"].model_dump(),
        "sharedAt": share["created_at"],
    }
