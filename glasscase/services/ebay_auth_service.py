"""eBay OAuth token lifecycle: authorization sessions, callback exchange, refresh.

Authorization runs as an explicit server-side session. `start_authorization`
stores a pending session keyed by an opaque state value; the OAuth callback
moves it to completed or failed; the owner may cancel it; and it expires on
its own after the configured TTL. Clients wait on the transition with a
bounded timeout instead of polling a popup window.
"""

import asyncio
import logging
import secrets
from urllib.parse import urlencode

import httpx

from glasscase.config import settings
from glasscase.database import fetch_one, get_db
from glasscase.errors import EbayAuthError, EbayNotConfigured
from glasscase.services.timestamps import iso_in, is_past, parse_timestamp, to_iso, utc_now

logger = logging.getLogger(__name__)

EBAY_SCOPES = [
    "https://api.ebay.com/oauth/api_scope/sell.inventory",
    "https://api.ebay.com/oauth/api_scope/sell.inventory.readonly",
    "https://api.ebay.com/oauth/api_scope/sell.fulfillment",
    "https://api.ebay.com/oauth/api_scope/sell.account.readonly",
]
APPLICATION_SCOPE = "https://api.ebay.com/oauth/api_scope"

# Refresh when fewer than this many seconds remain on the access token
REFRESH_MARGIN_SECONDS = 5 * 60

PENDING = "pending"
TERMINAL_STATUSES = {"completed", "failed", "cancelled", "expired"}

# state -> Event set when the session leaves "pending"
_waiters: dict[str, asyncio.Event] = {}
_waiter_counts: dict[str, int] = {}


def _require_config() -> None:
    if not settings.ebay_configured:
        raise EbayNotConfigured("eBay API credentials not configured")


def _token_url() -> str:
    return f"{settings.ebay_api_host}/identity/v1/oauth2/token"


async def _token_request(form: dict) -> dict:
    """POST to the eBay token endpoint with client Basic auth."""
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        resp = await client.post(
            _token_url(),
            data=form,
            auth=(settings.ebay_client_id, settings.ebay_client_secret),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
    if resp.status_code != 200:
        raise EbayAuthError(f"eBay token request failed (HTTP {resp.status_code}): {resp.text}")
    return resp.json()


# ── Authorization sessions ───────────────────────────────────────────────────

async def start_authorization(user_id: int) -> dict:
    """Create a pending authorization session and the URL the user must visit."""
    _require_config()

    state = secrets.token_hex(16)
    expires_at = iso_in(minutes=settings.ebay_auth_session_ttl_minutes)

    db = await get_db()
    await db.execute(
        "INSERT INTO ebay_auth_sessions (state, user_id, expires_at) VALUES (?, ?, ?)",
        (state, user_id, expires_at),
    )
    await db.commit()

    query = urlencode({
        "client_id": settings.ebay_client_id,
        "response_type": "code",
        "redirect_uri": settings.ebay_redirect_uri,
        "scope": " ".join(EBAY_SCOPES),
        "state": state,
    })
    auth_url = f"{settings.ebay_auth_host}/oauth2/authorize?{query}"

    logger.info("Started eBay authorization session for user %d", user_id)
    return {"auth_url": auth_url, "state": state, "expires_at": expires_at}


async def get_session(state: str, user_id: int | None = None) -> dict | None:
    """Get an authorization session, expiring it first if its TTL has passed."""
    query = "SELECT * FROM ebay_auth_sessions WHERE state = ?"
    params: list = [state]
    if user_id is not None:
        query += " AND user_id = ?"
        params.append(user_id)
    session = await fetch_one(query, params)
    if session is None:
        return None

    if session["status"] == PENDING and is_past(session["expires_at"]):
        await _finish_session(state, "expired", "Authorization window elapsed")
        session = await fetch_one("SELECT * FROM ebay_auth_sessions WHERE state = ?", (state,))
    return session


async def _finish_session(state: str, status: str, error: str | None = None) -> bool:
    """Move a pending session to a terminal status and wake any waiters."""
    db = await get_db()
    cursor = await db.execute(
        """UPDATE ebay_auth_sessions
           SET status = ?, error = ?, completed_at = ?
           WHERE state = ? AND status = ?""",
        (status, error, to_iso(utc_now()), state, PENDING),
    )
    await db.commit()

    event = _waiters.pop(state, None)
    if event is not None:
        event.set()
    return cursor.rowcount > 0


async def handle_callback(code: str | None, state: str | None) -> dict:
    """Exchange an authorization code for tokens and store them.

    The user is taken from the stored session, never parsed out of `state`.
    """
    _require_config()
    if not code or not state:
        raise EbayAuthError("Missing code or state")

    session = await get_session(state)
    if session is None:
        raise EbayAuthError("Invalid state parameter")
    if session["status"] != PENDING:
        raise EbayAuthError(f"Authorization session is {session['status']}")

    user_id = session["user_id"]
    logger.info("Exchanging eBay authorization code for user %d", user_id)

    try:
        token_data = await _token_request({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": settings.ebay_redirect_uri,
        })
        access_token = token_data["access_token"]
        expires_at = iso_in(seconds=int(token_data.get("expires_in", 7200)))
    except (EbayAuthError, httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.error("eBay token exchange failed for user %d: %s", user_id, e)
        await _finish_session(state, "failed", "Failed to get eBay token")
        raise EbayAuthError("Failed to get eBay token") from e

    await _store_credentials(
        user_id,
        access_token=access_token,
        refresh_token=token_data.get("refresh_token"),
        expires_at=expires_at,
    )
    await _finish_session(state, "completed")

    logger.info("Stored eBay credentials for user %d", user_id)
    return {"success": True, "expires_at": expires_at, "message": "eBay connected successfully"}


async def wait_for_authorization(state: str, user_id: int, timeout: float) -> dict | None:
    """Wait up to `timeout` seconds for a session to leave pending.

    Returns the session as it stands when the wait ends, or None if the
    owner has no such session.
    """
    session = await get_session(state, user_id)
    if session is None or session["status"] != PENDING or timeout <= 0:
        return session

    remaining = (parse_timestamp(session["expires_at"]) - utc_now()).total_seconds()
    timeout = min(timeout, max(remaining, 0), settings.ebay_auth_max_wait_seconds)

    event = _waiters.setdefault(state, asyncio.Event())
    _waiter_counts[state] = _waiter_counts.get(state, 0) + 1
    try:
        # Re-check once registered: the callback may have landed in between
        current = await get_session(state, user_id)
        if current is not None and current["status"] == PENDING:
            await asyncio.wait_for(event.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        pass
    finally:
        _waiter_counts[state] -= 1
        if _waiter_counts[state] <= 0:
            del _waiter_counts[state]
            # Last waiter out drops the entry so abandoned sessions leave nothing behind
            if _waiters.get(state) is event:
                _waiters.pop(state, None)

    return await get_session(state, user_id)


async def cancel_authorization(state: str, user_id: int) -> dict | None:
    """Cancel a pending session. Returns the session, or None if not the owner's."""
    session = await get_session(state, user_id)
    if session is None:
        return None
    if session["status"] == PENDING:
        await _finish_session(state, "cancelled")
        logger.info("Cancelled eBay authorization session for user %d", user_id)
    return await get_session(state, user_id)


# ── Stored credentials ───────────────────────────────────────────────────────

async def _store_credentials(
    user_id: int, access_token: str, refresh_token: str | None, expires_at: str
) -> None:
    db = await get_db()
    await db.execute(
        """INSERT INTO ebay_credentials (user_id, access_token, refresh_token, expires_at)
           VALUES (?, ?, ?, ?)
           ON CONFLICT(user_id) DO UPDATE SET
               access_token = excluded.access_token,
               refresh_token = COALESCE(excluded.refresh_token, ebay_credentials.refresh_token),
               expires_at = excluded.expires_at,
               updated_at = datetime('now')""",
        (user_id, access_token, refresh_token, expires_at),
    )
    await db.commit()


async def get_credentials(user_id: int) -> dict | None:
    return await fetch_one("SELECT * FROM ebay_credentials WHERE user_id = ?", (user_id,))


async def refresh_access_token(user_id: int) -> dict:
    """Refresh the user's access token if it expires within the margin.

    Returns {"access_token", "refreshed"}. Raises EbayAuthError when no
    credentials exist or eBay rejects the refresh.
    """
    _require_config()
    creds = await get_credentials(user_id)
    if creds is None:
        raise EbayAuthError("No eBay credentials found")

    seconds_left = (parse_timestamp(creds["expires_at"]) - utc_now()).total_seconds()
    if seconds_left > REFRESH_MARGIN_SECONDS:
        logger.debug("eBay token for user %d valid for %d more seconds", user_id, seconds_left)
        return {"access_token": creds["access_token"], "refreshed": False}

    if not creds["refresh_token"]:
        raise EbayAuthError("No refresh token stored; reconnect eBay")

    logger.info("Refreshing eBay token for user %d", user_id)
    try:
        token_data = await _token_request({
            "grant_type": "refresh_token",
            "refresh_token": creds["refresh_token"],
            "scope": " ".join(EBAY_SCOPES),
        })
    except httpx.HTTPError as e:
        raise EbayAuthError(f"Token refresh failed: {e}") from e

    await _store_credentials(
        user_id,
        access_token=token_data["access_token"],
        refresh_token=token_data.get("refresh_token"),
        expires_at=iso_in(seconds=int(token_data.get("expires_in", 7200))),
    )
    return {"access_token": token_data["access_token"], "refreshed": True}


async def get_valid_access_token(user_id: int) -> str | None:
    """A usable access token for the user, or None if reconnecting is required."""
    try:
        result = await refresh_access_token(user_id)
    except (EbayAuthError, EbayNotConfigured) as e:
        logger.warning("No valid eBay token for user %d: %s", user_id, e)
        return None
    return result["access_token"]


async def connection_status(user_id: int) -> dict:
    creds = await get_credentials(user_id)
    if creds is None:
        return {"connected": False, "expires_at": None, "needs_refresh": False}
    return {
        "connected": True,
        "expires_at": creds["expires_at"],
        "needs_refresh": is_past(creds["expires_at"]),
    }


async def disconnect(user_id: int) -> bool:
    db = await get_db()
    cursor = await db.execute("DELETE FROM ebay_credentials WHERE user_id = ?", (user_id,))
    await db.commit()
    return cursor.rowcount > 0


# ── Application token (client credentials) ───────────────────────────────────

async def get_application_token() -> str:
    """Application-level token for public Browse API searches."""
    if not (settings.ebay_client_id and settings.ebay_client_secret):
        raise EbayNotConfigured("eBay API credentials not configured")
    token_data = await _token_request({
        "grant_type": "client_credentials",
        "scope": APPLICATION_SCOPE,
    })
    return token_data["access_token"]
