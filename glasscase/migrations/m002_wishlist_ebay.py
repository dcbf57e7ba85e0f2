"""Wishlist, found listings, wishlist shares and eBay integration tables."""

import aiosqlite


async def upgrade(db: aiosqlite.Connection) -> None:
    # ── Wishlist ─────────────────────────────────────────────────────────
    await db.execute("""
        CREATE TABLE wishlist_items (
            id                        INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id                   INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            item_name                 TEXT NOT NULL,
            ebay_search_term          TEXT NOT NULL DEFAULT '',
            additional_search_terms   TEXT,
            facebook_marketplace_url  TEXT,
            desired_price_max         REAL,
            status                    TEXT NOT NULL DEFAULT 'active',
            notes                     TEXT,
            created_at                TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at                TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)
    await db.execute("CREATE INDEX idx_wishlist_items_user_id ON wishlist_items(user_id)")

    await db.execute("""
        CREATE TABLE found_listings (
            id                INTEGER PRIMARY KEY AUTOINCREMENT,
            wishlist_item_id  INTEGER NOT NULL REFERENCES wishlist_items(id) ON DELETE CASCADE,
            user_id           INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            listing_id        TEXT NOT NULL,
            title             TEXT NOT NULL,
            price             REAL,
            currency          TEXT,
            listing_url       TEXT,
            image_url         TEXT,
            condition         TEXT,
            seller            TEXT,
            found_at          TEXT NOT NULL DEFAULT (datetime('now')),
            UNIQUE (wishlist_item_id, listing_id)
        )
    """)
    await db.execute("CREATE INDEX idx_found_listings_user_id ON found_listings(user_id)")

    await db.execute("""
        CREATE TABLE wishlist_shares (
            id                INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id           INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            wishlist_item_id  INTEGER NOT NULL REFERENCES wishlist_items(id) ON DELETE CASCADE,
            unique_share_id   TEXT NOT NULL UNIQUE,
            settings          TEXT NOT NULL DEFAULT '{}',
            is_active         INTEGER NOT NULL DEFAULT 1,
            expires_at        TEXT,
            created_at        TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    # ── eBay ─────────────────────────────────────────────────────────────
    await db.execute("""
        CREATE TABLE ebay_credentials (
            user_id        INTEGER PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            access_token   TEXT NOT NULL,
            refresh_token  TEXT,
            expires_at     TEXT NOT NULL,
            created_at     TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at     TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.execute("""
        CREATE TABLE ebay_auth_sessions (
            state          TEXT PRIMARY KEY,
            user_id        INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status         TEXT NOT NULL DEFAULT 'pending',
            error          TEXT,
            created_at     TEXT NOT NULL DEFAULT (datetime('now')),
            expires_at     TEXT NOT NULL,
            completed_at   TEXT
        )
    """)

    await db.execute("""
        CREATE TABLE ebay_listings (
            id                 INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id            INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            inventory_item_id  INTEGER NOT NULL REFERENCES inventory_items(id) ON DELETE CASCADE,
            ebay_listing_id    TEXT NOT NULL,
            listing_url        TEXT,
            title              TEXT NOT NULL,
            start_price        REAL NOT NULL,
            buy_it_now_price   REAL,
            status             TEXT NOT NULL DEFAULT 'active',
            created_at         TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)
    await db.execute("CREATE INDEX idx_ebay_listings_user_id ON ebay_listings(user_id)")

    await db.commit()
