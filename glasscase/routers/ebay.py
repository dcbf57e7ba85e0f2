"""eBay routes: OAuth connection lifecycle and listing creation."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse

from glasscase.auth import current_user_id
from glasscase.errors import EbayAuthError, EbayListingError, EbayNotConfigured
from glasscase.models.ebay import (
    AuthSessionResponse,
    AuthStartResponse,
    ListingCreate,
    ListingResponse,
)
from glasscase.routers.share import _render_error_page
from glasscase.services import ebay_auth_service, ebay_listing_service

router = APIRouter(prefix="/api/ebay", tags=["ebay"])


# ── OAuth ────────────────────────────────────────────────────────────────────

@router.post("/auth/start", response_model=AuthStartResponse)
async def start_auth(user_id: int = Depends(current_user_id)):
    """Begin connecting an eBay account. Open `auth_url`, then wait on `state`."""
    try:
        return await ebay_auth_service.start_authorization(user_id)
    except EbayNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/auth/callback")
async def auth_callback(code: str | None = None, state: str | None = None):
    """OAuth redirect target (public). Completes the pending session."""
    try:
        await ebay_auth_service.handle_callback(code, state)
    except EbayNotConfigured as e:
        return HTMLResponse(_render_error_page("eBay Unavailable", str(e)), status_code=503)
    except EbayAuthError as e:
        return HTMLResponse(_render_error_page("eBay Connection Failed", str(e)), status_code=400)

    return HTMLResponse(_render_done_page())


@router.get("/auth/{state}", response_model=AuthSessionResponse)
async def auth_session(state: str, wait: float = 0, user_id: int = Depends(current_user_id)):
    """Current status of an authorization session.

    With `wait` > 0 the request blocks until the session leaves pending or
    the wait (capped server-side) elapses.
    """
    session = await ebay_auth_service.wait_for_authorization(state, user_id, timeout=wait)
    if not session:
        raise HTTPException(status_code=404, detail="Authorization session not found")
    return session


@router.post("/auth/{state}/cancel", response_model=AuthSessionResponse)
async def cancel_auth(state: str, user_id: int = Depends(current_user_id)):
    session = await ebay_auth_service.cancel_authorization(state, user_id)
    if not session:
        raise HTTPException(status_code=404, detail="Authorization session not found")
    return session


@router.post("/auth/refresh")
async def refresh_token(user_id: int = Depends(current_user_id)):
    """Refresh the stored access token if it is close to expiry."""
    try:
        result = await ebay_auth_service.refresh_access_token(user_id)
    except EbayNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))
    except EbayAuthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "success": True,
        "refreshed": result["refreshed"],
        "message": "Token refreshed" if result["refreshed"] else "Token still valid",
    }


@router.get("/status")
async def status(user_id: int = Depends(current_user_id)):
    return await ebay_auth_service.connection_status(user_id)


@router.delete("/connection")
async def disconnect(user_id: int = Depends(current_user_id)):
    if not await ebay_auth_service.disconnect(user_id):
        raise HTTPException(status_code=404, detail="eBay is not connected")
    return {"message": "eBay disconnected"}


# ── Listings ─────────────────────────────────────────────────────────────────

@router.get("/listings", response_model=list[ListingResponse])
async def list_listings(user_id: int = Depends(current_user_id)):
    return await ebay_listing_service.list_listings(user_id)


@router.post("/listings", response_model=ListingResponse, status_code=201)
async def create_listing(data: ListingCreate, user_id: int = Depends(current_user_id)):
    """List an inventory item on eBay."""
    try:
        listing = await ebay_listing_service.create_listing(
            user_id, data.item_id, data.listing_data.model_dump()
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EbayAuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except EbayListingError as e:
        raise HTTPException(status_code=502, detail=str(e))
    if listing is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return listing


def _render_done_page() -> str:
    return """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>eBay Connected - MyGlassCase</title>
    <style>
        body { background: #f7f7fb; color: #1f2937; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; display: flex; align-items: center; justify-content: center; min-height: 100vh; }
        h1 { color: #16a34a; margin-bottom: 8px; }
        p { color: #6b7280; }
    </style>
</head>
<body>
    <div>
        <h1>eBay connected</h1>
        <p>You can close this window and return to MyGlassCase.</p>
    </div>
</body>
</html>"""
