"""List inventory items on eBay through the Trading API."""

import logging
import xml.etree.ElementTree as ET

import httpx

from glasscase.config import settings
from glasscase.database import fetch_all, fetch_one, get_db
from glasscase.errors import EbayAuthError, EbayListingError
from glasscase.services import ebay_auth_service, inventory_service

logger = logging.getLogger(__name__)

EBAY_NS = "urn:ebay:apis:eBLBaseComponents"
NS = {"e": EBAY_NS}
COMPATIBILITY_LEVEL = "1193"
AUCTION_DURATIONS = {1, 3, 5, 7, 10}

CONDITION_IDS = {
    "new": "1000",
    "new_other": "1500",
    "like_new": "2750",
    "used": "3000",
    "good": "5000",
    "acceptable": "6000",
    "for_parts": "7000",
}


def condition_id(condition: str | None) -> str:
    """Map a condition name to an eBay ConditionID; unknown conditions list as used."""
    key = (condition or "").strip().lower().replace(" ", "_").replace("-", "_")
    return CONDITION_IDS.get(key, CONDITION_IDS["used"])


def _sub(parent: ET.Element, tag: str, text=None, **attrs) -> ET.Element:
    el = ET.SubElement(parent, tag, attrs)
    if text is not None:
        el.text = str(text)
    return el


def build_listing_request(listing: dict) -> tuple[str, bytes]:
    """Build the Trading API call name and XML body for a listing.

    A buy-it-now price makes a fixed-price listing at that price; otherwise
    an auction starting at `start_price`.
    """
    fixed_price = listing.get("buy_it_now_price") is not None
    call_name = "AddFixedPriceItem" if fixed_price else "AddItem"

    root = ET.Element(f"{call_name}Request", {"xmlns": EBAY_NS})
    item = _sub(root, "Item")
    _sub(item, "Title", listing["title"])
    _sub(item, "Description", listing.get("description") or listing["title"])
    category = _sub(item, "PrimaryCategory")
    _sub(category, "CategoryID", listing["category_id"])

    if fixed_price:
        _sub(item, "ListingType", "FixedPriceItem")
        _sub(item, "StartPrice", f"{listing['buy_it_now_price']:.2f}", currencyID="USD")
        _sub(item, "ListingDuration", "GTC")
    else:
        duration = int(listing.get("duration") or 7)
        if duration not in AUCTION_DURATIONS:
            raise ValueError(f"Auction duration must be one of {sorted(AUCTION_DURATIONS)} days")
        _sub(item, "ListingType", "Chinese")
        _sub(item, "StartPrice", f"{listing['start_price']:.2f}", currencyID="USD")
        _sub(item, "ListingDuration", f"Days_{duration}")

    _sub(item, "ConditionID", condition_id(listing.get("condition")))
    _sub(item, "Country", "US")
    _sub(item, "Currency", "USD")
    _sub(item, "DispatchTimeMax", 3)
    _sub(item, "Quantity", 1)

    best_offer = _sub(item, "BestOfferDetails")
    _sub(best_offer, "BestOfferEnabled", "true" if fixed_price else "false")

    returns = _sub(item, "ReturnPolicy")
    _sub(returns, "ReturnsAcceptedOption", "ReturnsAccepted")
    _sub(returns, "RefundOption", "MoneyBack")
    _sub(returns, "ReturnsWithinOption", "Days_30")
    _sub(returns, "ShippingCostPaidByOption", "Buyer")

    shipping = _sub(item, "ShippingDetails")
    _sub(shipping, "ShippingType", "Flat")
    service = _sub(shipping, "ShippingServiceOptions")
    _sub(service, "ShippingServicePriority", 1)
    _sub(service, "ShippingService", "USPSPriority")
    _sub(service, "ShippingServiceCost", f"{listing.get('shipping_cost') or 0:.2f}", currencyID="USD")

    photos = [p for p in listing.get("photos") or [] if p]
    if photos:
        pictures = _sub(item, "PictureDetails")
        for url in photos[:12]:
            _sub(pictures, "PictureURL", url)

    body = b'<?xml version="1.0" encoding="utf-8"?>\n' + ET.tostring(root, encoding="utf-8")
    return call_name, body


def parse_listing_response(text: str) -> str:
    """Return the new ItemID, or raise EbayListingError with eBay's messages."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise EbayListingError("Unreadable response from eBay") from e

    ack = (root.findtext("e:Ack", default="", namespaces=NS) or "").strip()
    item_id = (root.findtext("e:ItemID", default="", namespaces=NS) or "").strip()
    if ack in ("Success", "Warning") and item_id:
        return item_id

    messages = [
        (err.findtext("e:LongMessage", default="", namespaces=NS)
         or err.findtext("e:ShortMessage", default="", namespaces=NS)).strip()
        for err in root.findall("e:Errors", NS)
        if err.findtext("e:SeverityCode", default="Error", namespaces=NS) == "Error"
    ]
    raise EbayListingError("; ".join(m for m in messages if m) or f"eBay returned Ack={ack or 'unknown'}")


def listing_url(ebay_listing_id: str) -> str:
    host = "https://www.sandbox.ebay.com" if settings.ebay_sandbox else "https://www.ebay.com"
    return f"{host}/itm/{ebay_listing_id}"


async def create_listing(user_id: int, item_id: int, listing: dict) -> dict | None:
    """List one of the owner's items on eBay and record the listing.

    Returns None when the owner has no such (non-deleted) item. Raises
    EbayAuthError when the user must reconnect eBay.
    """
    item = await inventory_service.get_item(item_id, user_id)
    if item is None:
        return None

    access_token = await ebay_auth_service.get_valid_access_token(user_id)
    if not access_token:
        raise EbayAuthError("eBay authentication required. Please reconnect your eBay account.")

    if not listing.get("photos") and item.get("photo_url"):
        listing = {**listing, "photos": [item["photo_url"]]}

    call_name, body = build_listing_request(listing)
    logger.info("Submitting %s for item %d (user %d)", call_name, item_id, user_id)

    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            resp = await client.post(
                f"{settings.ebay_api_host}/ws/api.dll",
                content=body,
                headers={
                    "X-EBAY-API-CALL-NAME": call_name,
                    "X-EBAY-API-SITEID": "0",
                    "X-EBAY-API-COMPATIBILITY-LEVEL": COMPATIBILITY_LEVEL,
                    "X-EBAY-API-IAF-TOKEN": access_token,
                    "X-EBAY-API-DEV-NAME": settings.ebay_dev_id,
                    "X-EBAY-API-APP-NAME": settings.ebay_client_id,
                    "X-EBAY-API-CERT-NAME": settings.ebay_client_secret,
                    "Content-Type": "text/xml",
                },
            )
    except httpx.HTTPError as e:
        raise EbayListingError(f"Could not reach eBay: {e}") from e

    if resp.status_code != 200:
        logger.error("eBay listing creation failed (HTTP %d)", resp.status_code)
        raise EbayListingError(f"eBay listing request failed (HTTP {resp.status_code})")

    ebay_listing_id = parse_listing_response(resp.text)

    db = await get_db()
    cursor = await db.execute(
        """INSERT INTO ebay_listings
           (user_id, inventory_item_id, ebay_listing_id, listing_url, title,
            start_price, buy_it_now_price, status)
           VALUES (?, ?, ?, ?, ?, ?, ?, 'active')""",
        (
            user_id,
            item_id,
            ebay_listing_id,
            listing_url(ebay_listing_id),
            listing["title"],
            listing["start_price"],
            listing.get("buy_it_now_price"),
        ),
    )
    await db.commit()
    logger.info("Created eBay listing %s for item %d", ebay_listing_id, item_id)

    return await fetch_one("SELECT * FROM ebay_listings WHERE id = ?", (cursor.lastrowid,))


async def list_listings(user_id: int) -> list[dict]:
    return await fetch_all(
        "SELECT * FROM ebay_listings WHERE user_id = ? ORDER BY created_at DESC, id DESC",
        (user_id,),
    )
