"""Share link service: manage collection share links and resolve public views."""

import json
import logging
import secrets
from datetime import datetime

import aiosqlite
from pydantic import ValidationError

from glasscase.config import settings
from glasscase.database import fetch_all, fetch_one, get_db
from glasscase.errors import (
    ShareBadRequest,
    ShareDisabled,
    ShareExpired,
    ShareNotFound,
    UpstreamFailure,
)
from glasscase.models.share import VisibilitySettings
from glasscase.services import inventory_service, user_service
from glasscase.services.collection_filter import (
    collection_stats,
    filter_collection,
    normalize_settings,
)
from glasscase.services.timestamps import iso_in, is_past

logger = logging.getLogger(__name__)

ANONYMOUS_OWNER = "Anonymous Collector"


def share_url(unique_share_id: str) -> str:
    return f"{settings.base_url}/share/{unique_share_id}"


def _hydrate(row: dict) -> dict:
    """Turn a share_links row into the link dict returned by the service."""
    link = dict(row)
    try:
        raw = json.loads(link.get("settings") or "{}")
        link["settings"] = normalize_settings(raw if isinstance(raw, dict) else None)
    except (json.JSONDecodeError, ValidationError):
        logger.warning("Share link %s has unreadable settings; using defaults", link["id"])
        link["settings"] = VisibilitySettings()
    link["is_active"] = bool(link["is_active"])
    link["url"] = share_url(link["unique_share_id"])
    return link


# ── Registry ─────────────────────────────────────────────────────────────────

async def create_share_link(
    user_id: int,
    visibility: VisibilitySettings | dict | None = None,
    expires_in_days: int | None = None,
) -> dict:
    """Create a new active share link for the owner's collection."""
    db = await get_db()
    unique_share_id = secrets.token_urlsafe(16)
    stored = normalize_settings(visibility)

    expires_at = iso_in(days=expires_in_days) if expires_in_days else None

    cursor = await db.execute(
        """INSERT INTO share_links (user_id, unique_share_id, settings, expires_at)
           VALUES (?, ?, ?, ?)""",
        (user_id, unique_share_id, stored.model_dump_json(), expires_at),
    )
    await db.commit()
    logger.info("Created share link %d for user %d", cursor.lastrowid, user_id)

    return await get_share_link(cursor.lastrowid, user_id)


async def get_share_link(link_id: int, user_id: int) -> dict | None:
    """Get one of the owner's share links by ID."""
    row = await fetch_one(
        "SELECT * FROM share_links WHERE id = ? AND user_id = ?", (link_id, user_id)
    )
    return _hydrate(row) if row else None


async def list_share_links(user_id: int) -> list[dict]:
    """All of the owner's share links, newest first."""
    rows = await fetch_all(
        "SELECT * FROM share_links WHERE user_id = ? ORDER BY created_at DESC, id DESC",
        (user_id,),
    )
    return [_hydrate(row) for row in rows]


async def resolve_share_link(unique_share_id: str) -> dict:
    """Look up a link by its public id. Raises ShareNotFound."""
    row = await fetch_one(
        "SELECT * FROM share_links WHERE unique_share_id = ?", (unique_share_id,)
    )
    if row is None:
        raise ShareNotFound(unique_share_id)
    return _hydrate(row)


def validate_share_link(link: dict, now: datetime | None = None) -> None:
    """Raise if the link grants no access.

    A disabled link is reported as disabled whatever its expiry. The link is
    never modified here, so an expired link keeps reporting as expired.
    """
    if not link.get("is_active"):
        raise ShareDisabled(link.get("unique_share_id"))
    if is_past(link.get("expires_at"), now):
        raise ShareExpired(link.get("unique_share_id"))


async def update_share_link(
    link_id: int,
    user_id: int,
    visibility: VisibilitySettings | dict | None = None,
    is_active: bool | None = None,
    expires_in_days: int | None = None,
    clear_expiry: bool = False,
) -> dict | None:
    """Update an owner's share link. Returns None if the owner has no such link."""
    existing = await get_share_link(link_id, user_id)
    if existing is None:
        return None

    updates: dict = {}
    if visibility is not None:
        updates["settings"] = normalize_settings(visibility).model_dump_json()
    if is_active is not None:
        updates["is_active"] = int(is_active)
    if clear_expiry:
        updates["expires_at"] = None
    elif expires_in_days:
        updates["expires_at"] = iso_in(days=expires_in_days)

    if not updates:
        return existing

    set_clause = ", ".join(f"{key} = ?" for key in updates)
    db = await get_db()
    await db.execute(
        f"UPDATE share_links SET {set_clause} WHERE id = ? AND user_id = ?",
        [*updates.values(), link_id, user_id],
    )
    await db.commit()
    return await get_share_link(link_id, user_id)


async def delete_share_link(link_id: int, user_id: int) -> bool:
    """Delete an owner's share link."""
    db = await get_db()
    cursor = await db.execute(
        "DELETE FROM share_links WHERE id = ? AND user_id = ?", (link_id, user_id)
    )
    await db.commit()
    return cursor.rowcount > 0


# ── Public resolution ────────────────────────────────────────────────────────

async def get_owner_display_name(user_id: int) -> str:
    """Display name for attribution; lookup failures fall back to a generic label."""
    try:
        name = await user_service.get_display_name(user_id)
    except aiosqlite.Error as e:
        logger.warning("Profile lookup failed for user %d: %s", user_id, e)
        return ANONYMOUS_OWNER
    return name or ANONYMOUS_OWNER


async def get_shared_collection(share_id: str | None) -> dict:
    """Resolve a public share id into the redacted collection payload.

    Raises a ShareAccessError subclass on the first failing step.
    """
    share_id = (share_id or "").strip()
    if not share_id:
        raise ShareBadRequest()

    logger.info("Fetching share link %s", share_id)
    try:
        link = await resolve_share_link(share_id)
    except aiosqlite.Error as e:
        logger.error("Share link lookup failed: %s", e)
        raise UpstreamFailure() from e

    try:
        validate_share_link(link)
    except (ShareDisabled, ShareExpired) as e:
        logger.info("Share link %s rejected: %s", share_id, type(e).__name__)
        raise

    owner_name = await get_owner_display_name(link["user_id"])

    try:
        items = await inventory_service.list_active_items(link["user_id"])
    except aiosqlite.Error as e:
        logger.error("Failed to fetch collection items for share %s: %s", share_id, e)
        raise UpstreamFailure() from e

    visibility = link["settings"]
    public_items = filter_collection(items, visibility)
    stats = collection_stats(public_items)

    logger.info("Serving %d items for share link %s", len(public_items), share_id)

    return {
        "owner": {"name": owner_name},
        "items": public_items,
        "totalItems": stats["totalItems"],
        "totalValue": stats["totalValue"],
        "stats": {
            "categories": stats["categories"],
            "manufacturers": stats["manufacturers"],
            "oldestYear": stats["oldestYear"],
            "newestYear": stats["newestYear"],
        },
        "settings": visibility.to_public(),
        "sharedAt": link["created_at"],
    }
