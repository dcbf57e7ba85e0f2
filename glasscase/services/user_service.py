"""User accounts and public profile lookups."""

from glasscase.auth import hash_password
from glasscase.database import fetch_one, get_db

# Columns safe to return to the account owner (never the password hash)
_PUBLIC_COLUMNS = "id, email, full_name, created_at, updated_at"


async def create_user(email: str, password: str, full_name: str | None = None) -> dict:
    """Create a user account. Raises ValueError if the email is taken."""
    email = email.strip().lower()
    if await get_user_by_email(email):
        raise ValueError(f"An account for {email} already exists")

    db = await get_db()
    cursor = await db.execute(
        "INSERT INTO users (email, password_hash, full_name) VALUES (?, ?, ?)",
        (email, hash_password(password), full_name),
    )
    await db.commit()
    return await get_user(cursor.lastrowid)


async def get_user(user_id: int) -> dict | None:
    return await fetch_one(f"SELECT {_PUBLIC_COLUMNS} FROM users WHERE id = ?", (user_id,))


async def get_user_by_email(email: str) -> dict | None:
    """Get a user including the password hash, for login."""
    return await fetch_one(
        "SELECT * FROM users WHERE email = ?", (email.strip().lower(),)
    )


async def update_profile(user_id: int, full_name: str | None) -> dict | None:
    db = await get_db()
    await db.execute(
        "UPDATE users SET full_name = ?, updated_at = datetime('now') WHERE id = ?",
        (full_name, user_id),
    )
    await db.commit()
    return await get_user(user_id)


async def get_display_name(user_id: int) -> str | None:
    """Return the public display name for a user, or None if unset.

    Only the name is read; the email address is never exposed publicly.
    """
    row = await fetch_one("SELECT full_name FROM users WHERE id = ?", (user_id,))
    if row is None:
        return None
    name = (row["full_name"] or "").strip()
    return name or None
