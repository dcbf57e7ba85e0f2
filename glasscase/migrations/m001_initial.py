"""Initial database schema.

Creates users, inventory items and collection share links.
"""

import aiosqlite


async def upgrade(db: aiosqlite.Connection) -> None:
    """Create the initial database schema."""

    # ── Users table ──────────────────────────────────────────────────────
    await db.execute("""
        CREATE TABLE users (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            email           TEXT NOT NULL UNIQUE,
            password_hash   TEXT NOT NULL,
            full_name       TEXT,
            created_at      TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at      TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    # ── Inventory items table ────────────────────────────────────────────
    await db.execute("""
        CREATE TABLE inventory_items (
            id                  INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id             INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name                TEXT NOT NULL,
            category            TEXT,
            subcategory         TEXT,
            manufacturer        TEXT,
            pattern             TEXT,
            year_manufactured   INTEGER,
            current_value       REAL,
            condition           TEXT,
            photo_url           TEXT,
            quantity            INTEGER NOT NULL DEFAULT 1,
            purchase_price      REAL,
            purchase_date       TEXT,
            location            TEXT,
            description         TEXT,
            deleted             INTEGER NOT NULL DEFAULT 0,
            created_at          TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at          TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)
    await db.execute("CREATE INDEX idx_inventory_items_user_id ON inventory_items(user_id)")
    await db.execute("CREATE INDEX idx_inventory_items_category ON inventory_items(category)")

    # ── Share links table ────────────────────────────────────────────────
    await db.execute("""
        CREATE TABLE share_links (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id         INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            unique_share_id TEXT NOT NULL UNIQUE,
            settings        TEXT NOT NULL DEFAULT '{}',
            is_active       INTEGER NOT NULL DEFAULT 1,
            expires_at      TEXT,
            created_at      TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)
    await db.execute("CREATE INDEX idx_share_links_user_id ON share_links(user_id)")

    await db.commit()
