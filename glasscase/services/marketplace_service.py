"""Marketplace search for wishlist items via the eBay Browse API.

One search per call: no retries, no backoff, no background polling.
"""

import logging

import httpx

from glasscase.config import settings
from glasscase.errors import EbayAuthError, MarketplaceSearchError
from glasscase.services import ebay_auth_service, wishlist_service

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 50
MARKETPLACE_ID = "EBAY_US"


def build_query(item: dict) -> str:
    """Combine the primary search term with any additional terms."""
    parts = [item.get("ebay_search_term") or "", item.get("additional_search_terms") or ""]
    return " ".join(p.strip() for p in parts if p and p.strip())


def _parse_price(summary: dict) -> tuple[float | None, str | None]:
    price = summary.get("price") or {}
    try:
        return float(price["value"]), price.get("currency")
    except (KeyError, TypeError, ValueError):
        return None, price.get("currency")


def parse_item_summaries(payload: dict) -> list[dict]:
    """Normalize Browse API item summaries into found-listing dicts."""
    listings = []
    for summary in payload.get("itemSummaries", []):
        listing_id = summary.get("itemId")
        if not listing_id:
            continue
        price, currency = _parse_price(summary)
        listings.append({
            "listing_id": listing_id,
            "title": summary.get("title") or "",
            "price": price,
            "currency": currency,
            "listing_url": summary.get("itemWebUrl"),
            "image_url": (summary.get("image") or {}).get("imageUrl"),
            "condition": summary.get("condition"),
            "seller": (summary.get("seller") or {}).get("username"),
        })
    return listings


def within_ceiling(listings: list[dict], price_max: float | None) -> list[dict]:
    """Listings priced at or below the ceiling; unpriced listings never match a ceiling."""
    if price_max is None:
        return listings
    return [l for l in listings if l["price"] is not None and l["price"] <= price_max]


async def search_listings(query: str, price_max: float | None = None) -> list[dict]:
    """Run one Browse API search and return normalized listings."""
    try:
        token = await ebay_auth_service.get_application_token()
    except (EbayAuthError, httpx.HTTPError) as e:
        raise MarketplaceSearchError(f"Could not authenticate with eBay: {e}") from e

    params = {"q": query, "limit": str(SEARCH_LIMIT)}
    if price_max is not None:
        params["filter"] = f"price:[..{price_max:.2f}],priceCurrency:USD"

    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            resp = await client.get(
                f"{settings.ebay_api_host}/buy/browse/v1/item_summary/search",
                params=params,
                headers={
                    "Authorization": f"Bearer {token}",
                    "X-EBAY-C-MARKETPLACE-ID": MARKETPLACE_ID,
                },
            )
    except httpx.HTTPError as e:
        raise MarketplaceSearchError(f"eBay search failed: {e}") from e

    if resp.status_code != 200:
        raise MarketplaceSearchError(f"eBay search failed (HTTP {resp.status_code})")

    return parse_item_summaries(resp.json())


async def search_for_wishlist_item(item_id: int, user_id: int) -> dict | None:
    """Search the marketplace for one wishlist item and store matches.

    Returns None when the owner has no such item. Raises ValueError when
    the item has no search term.
    """
    item = await wishlist_service.get_wishlist_item(item_id, user_id)
    if item is None:
        return None

    query = build_query(item)
    if not (item.get("ebay_search_term") or "").strip():
        raise ValueError("Add an eBay search term to this wishlist item first")

    logger.info("Searching marketplace for wishlist item %d", item_id)
    listings = await search_listings(query, item.get("desired_price_max"))
    matched = within_ceiling(listings, item.get("desired_price_max"))
    new_rows = await wishlist_service.save_found_listings(item, matched)

    logger.info(
        "Wishlist item %d: %d listings, %d matched, %d new",
        item_id, len(listings), len(matched), len(new_rows),
    )
    return {
        "wishlist_item_id": item_id,
        "query": query,
        "matched": len(matched),
        "new": len(new_rows),
        "listings": new_rows,
    }
