"""Wishlist service: owner-scoped wishlist items and their found listings."""

import logging

from glasscase.database import fetch_all, fetch_one, get_db

logger = logging.getLogger(__name__)

WISHLIST_FIELDS = (
    "item_name",
    "ebay_search_term",
    "additional_search_terms",
    "facebook_marketplace_url",
    "desired_price_max",
    "status",
    "notes",
)


async def list_wishlist(user_id: int, status: str | None = None) -> list[dict]:
    query = "SELECT * FROM wishlist_items WHERE user_id = ?"
    params: list = [user_id]
    if status:
        query += " AND status = ?"
        params.append(status)
    query += " ORDER BY created_at DESC, id DESC"
    return await fetch_all(query, params)


async def get_wishlist_item(item_id: int, user_id: int) -> dict | None:
    return await fetch_one(
        "SELECT * FROM wishlist_items WHERE id = ? AND user_id = ?", (item_id, user_id)
    )


async def create_wishlist_item(user_id: int, **fields) -> dict:
    values = {k: v for k, v in fields.items() if k in WISHLIST_FIELDS and v is not None}
    values["user_id"] = user_id

    columns = ", ".join(values.keys())
    placeholders = ", ".join(["?"] * len(values))

    db = await get_db()
    cursor = await db.execute(
        f"INSERT INTO wishlist_items ({columns}) VALUES ({placeholders})",
        list(values.values()),
    )
    await db.commit()
    return await get_wishlist_item(cursor.lastrowid, user_id)


async def update_wishlist_item(item_id: int, user_id: int, **fields) -> dict | None:
    """Update wishlist fields. Only non-None values are updated."""
    existing = await get_wishlist_item(item_id, user_id)
    if existing is None:
        return None

    updates = {k: v for k, v in fields.items() if k in WISHLIST_FIELDS and v is not None}
    if not updates:
        return existing

    set_clauses = [f"{key} = ?" for key in updates]
    set_clauses.append("updated_at = datetime('now')")

    db = await get_db()
    await db.execute(
        f"UPDATE wishlist_items SET {', '.join(set_clauses)} WHERE id = ? AND user_id = ?",
        [*updates.values(), item_id, user_id],
    )
    await db.commit()
    return await get_wishlist_item(item_id, user_id)


async def toggle_wishlist_status(item_id: int, user_id: int) -> dict | None:
    """Flip an item between active and paused. Found items become active again."""
    item = await get_wishlist_item(item_id, user_id)
    if item is None:
        return None
    new_status = "paused" if item["status"] == "active" else "active"
    return await update_wishlist_item(item_id, user_id, status=new_status)


async def delete_wishlist_item(item_id: int, user_id: int) -> bool:
    db = await get_db()
    cursor = await db.execute(
        "DELETE FROM wishlist_items WHERE id = ? AND user_id = ?", (item_id, user_id)
    )
    await db.commit()
    return cursor.rowcount > 0


# ── Found listings ───────────────────────────────────────────────────────────

async def save_found_listings(item: dict, listings: list[dict]) -> list[dict]:
    """Store matched listings for a wishlist item, skipping ones already saved.

    Returns only the newly stored rows.
    """
    db = await get_db()
    new_ids = []
    for listing in listings:
        cursor = await db.execute(
            """INSERT OR IGNORE INTO found_listings
               (wishlist_item_id, user_id, listing_id, title, price, currency,
                listing_url, image_url, condition, seller)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                item["id"],
                item["user_id"],
                listing["listing_id"],
                listing["title"],
                listing.get("price"),
                listing.get("currency"),
                listing.get("listing_url"),
                listing.get("image_url"),
                listing.get("condition"),
                listing.get("seller"),
            ),
        )
        if cursor.rowcount > 0:
            new_ids.append(cursor.lastrowid)

    if listings:
        await db.execute(
            """UPDATE wishlist_items SET status = 'found', updated_at = datetime('now')
               WHERE id = ? AND user_id = ?""",
            (item["id"], item["user_id"]),
        )
    await db.commit()

    if not new_ids:
        return []
    placeholders = ", ".join(["?"] * len(new_ids))
    return await fetch_all(
        f"SELECT * FROM found_listings WHERE id IN ({placeholders}) ORDER BY id",
        new_ids,
    )


async def list_found_listings(user_id: int, wishlist_item_id: int | None = None) -> list[dict]:
    query = "SELECT * FROM found_listings WHERE user_id = ?"
    params: list = [user_id]
    if wishlist_item_id is not None:
        query += " AND wishlist_item_id = ?"
        params.append(wishlist_item_id)
    query += " ORDER BY found_at DESC, id DESC"
    return await fetch_all(query, params)


async def delete_found_listing(listing_id: int, user_id: int) -> bool:
    db = await get_db()
    cursor = await db.execute(
        "DELETE FROM found_listings WHERE id = ? AND user_id = ?", (listing_id, user_id)
    )
    await db.commit()
    return cursor.rowcount > 0
