"""Inventory service: owner-scoped CRUD for collection items with soft delete."""

from glasscase.database import fetch_all, fetch_one, get_db

# Columns an owner may write through create/update
ITEM_FIELDS = (
    "name",
    "category",
    "subcategory",
    "manufacturer",
    "pattern",
    "year_manufactured",
    "current_value",
    "condition",
    "photo_url",
    "quantity",
    "purchase_price",
    "purchase_date",
    "location",
    "description",
)


async def list_items(user_id: int, category: str | None = None) -> list[dict]:
    """List an owner's non-deleted items, newest first."""
    query = "SELECT * FROM inventory_items WHERE user_id = ? AND deleted = 0"
    params: list = [user_id]
    if category:
        query += " AND category = ?"
        params.append(category)
    query += " ORDER BY created_at DESC, id DESC"
    return await fetch_all(query, params)


async def list_active_items(user_id: int) -> list[dict]:
    """Items eligible for sharing: everything the owner has not deleted."""
    return await list_items(user_id)


async def get_item(item_id: int, user_id: int, include_deleted: bool = False) -> dict | None:
    """Get a single item belonging to the owner."""
    query = "SELECT * FROM inventory_items WHERE id = ? AND user_id = ?"
    if not include_deleted:
        query += " AND deleted = 0"
    return await fetch_one(query, (item_id, user_id))


async def create_item(user_id: int, **fields) -> dict:
    """Create an inventory item for the owner. Returns the created item."""
    values = {k: v for k, v in fields.items() if k in ITEM_FIELDS and v is not None}
    if not values.get("name"):
        raise ValueError("Item name is required")
    values["user_id"] = user_id

    columns = ", ".join(values.keys())
    placeholders = ", ".join(["?"] * len(values))

    db = await get_db()
    cursor = await db.execute(
        f"INSERT INTO inventory_items ({columns}) VALUES ({placeholders})",
        list(values.values()),
    )
    await db.commit()
    return await get_item(cursor.lastrowid, user_id)


async def update_item(item_id: int, user_id: int, **fields) -> dict | None:
    """Update item fields. Only non-None values are updated.

    Returns None when the item does not exist for this owner.
    """
    existing = await get_item(item_id, user_id)
    if existing is None:
        return None

    updates = {k: v for k, v in fields.items() if k in ITEM_FIELDS and v is not None}
    if not updates:
        return existing

    set_clauses = [f"{key} = ?" for key in updates]
    set_clauses.append("updated_at = datetime('now')")
    values = list(updates.values()) + [item_id, user_id]

    db = await get_db()
    await db.execute(
        f"UPDATE inventory_items SET {', '.join(set_clauses)} WHERE id = ? AND user_id = ?",
        values,
    )
    await db.commit()
    return await get_item(item_id, user_id)


async def _set_deleted(item_id: int, user_id: int, deleted: bool) -> bool:
    db = await get_db()
    cursor = await db.execute(
        """UPDATE inventory_items SET deleted = ?, updated_at = datetime('now')
           WHERE id = ? AND user_id = ? AND deleted = ?""",
        (int(deleted), item_id, user_id, int(not deleted)),
    )
    await db.commit()
    return cursor.rowcount > 0


async def delete_item(item_id: int, user_id: int) -> bool:
    """Soft-delete an item. Deleted items disappear from shares immediately."""
    return await _set_deleted(item_id, user_id, True)


async def restore_item(item_id: int, user_id: int) -> bool:
    return await _set_deleted(item_id, user_id, False)


async def get_inventory_summary(user_id: int, category: str | None = None) -> dict:
    """Owner-facing totals over non-deleted items, optionally within one category."""
    query = """SELECT COUNT(*) AS item_count,
                  COALESCE(SUM(MAX(COALESCE(quantity, 1), 1)), 0) AS total_quantity,
                  COALESCE(SUM(COALESCE(current_value, 0) * MAX(COALESCE(quantity, 1), 1)), 0)
                      AS total_value,
                  COALESCE(SUM(COALESCE(purchase_price, 0) * MAX(COALESCE(quantity, 1), 1)), 0)
                      AS total_cost
           FROM inventory_items
           WHERE user_id = ? AND deleted = 0"""
    params: list = [user_id]
    if category:
        query += " AND category = ?"
        params.append(category)
    return await fetch_one(query, params)
