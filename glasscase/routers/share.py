"""Share routes: manage share links (authenticated) + public collection view (unauthenticated)."""

import html

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse

from glasscase.auth import current_user_id
from glasscase.config import settings
from glasscase.errors import ShareAccessError
from glasscase.models.share import ShareLinkCreate, ShareLinkResponse, ShareLinkUpdate
from glasscase.services import share_service

router = APIRouter(tags=["share"])


# ── Authenticated share management ───────────────────────────────────────────

@router.get("/api/share-links", response_model=list[ShareLinkResponse])
async def list_shares(user_id: int = Depends(current_user_id)):
    """List the caller's share links."""
    return await share_service.list_share_links(user_id)


@router.post("/api/share-links", response_model=ShareLinkResponse, status_code=201)
async def create_share(data: ShareLinkCreate, user_id: int = Depends(current_user_id)):
    """Create a share link for the caller's collection."""
    return await share_service.create_share_link(
        user_id, data.settings, expires_in_days=data.expires_in_days
    )


@router.patch("/api/share-links/{link_id}", response_model=ShareLinkResponse)
async def update_share(
    link_id: int, data: ShareLinkUpdate, user_id: int = Depends(current_user_id)
):
    """Toggle a share link, replace its settings or change its expiry."""
    link = await share_service.update_share_link(
        link_id,
        user_id,
        visibility=data.settings,
        is_active=data.is_active,
        expires_in_days=data.expires_in_days,
        clear_expiry=data.clear_expiry,
    )
    if not link:
        raise HTTPException(status_code=404, detail="Share link not found")
    return link


@router.delete("/api/share-links/{link_id}")
async def delete_share(link_id: int, user_id: int = Depends(current_user_id)):
    """Delete one of the caller's share links."""
    if not await share_service.delete_share_link(link_id, user_id):
        raise HTTPException(status_code=404, detail="Share link not found")
    return {"message": "Share link deleted"}


# ── Public share endpoints (no auth required) ────────────────────────────────

@router.get("/api/share-collection")
async def share_collection(shareId: str | None = None):
    """Public, redacted view of a shared collection."""
    try:
        collection = await share_service.get_shared_collection(shareId)
    except ShareAccessError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.public_message})
    return {"success": True, "collection": collection}


@router.get("/share/{share_id}")
async def public_share_page(share_id: str):
    """Public shared collection page with OpenGraph meta tags."""
    try:
        collection = await share_service.get_shared_collection(share_id)
    except ShareAccessError as e:
        return HTMLResponse(
            content=_render_error_page("Collection Unavailable", e.public_message),
            status_code=e.status_code,
        )

    return HTMLResponse(
        content=_render_share_page(
            collection=collection,
            page_url=f"{settings.base_url}/share/{share_id}",
        )
    )


# ── HTML Templates ───────────────────────────────────────────────────────────

def _money(value) -> str:
    if value is None:
        return ""
    return f"${value:,.2f}"


def _render_item_card(item: dict) -> str:
    details = [
        item.get("manufacturer"),
        item.get("pattern"),
        str(item["year_manufactured"]) if item.get("year_manufactured") else None,
        item.get("condition"),
    ]
    meta = " · ".join(_esc(d) for d in details if d)

    extra = []
    if item.get("purchase_price") is not None:
        extra.append(f"Paid {_esc(_money(item['purchase_price']))}")
    if item.get("purchase_date"):
        extra.append(f"Acquired {_esc(item['purchase_date'])}")
    if item.get("location"):
        extra.append(_esc(item["location"]))
    extra_html = f'<p class="extra">{" · ".join(extra)}</p>' if extra else ""

    description_html = ""
    if item.get("description"):
        description_html = f'<p class="desc">{_esc(item["description"])}</p>'

    photo_html = ""
    if item.get("photo_url"):
        photo_html = f'<img src="{_esc(item["photo_url"])}" alt="{_esc(item.get("name"))}" loading="lazy">'

    quantity = item.get("quantity") or 1
    qty_html = f' <span class="qty">×{quantity}</span>' if quantity > 1 else ""

    return f"""<div class="card">
            {photo_html}
            <div class="body">
                <h3>{_esc(item.get("name"))}{qty_html}</h3>
                <p class="meta">{meta}</p>
                <p class="value">{_esc(_money(item.get("current_value")))}</p>
                {extra_html}
                {description_html}
            </div>
        </div>"""


def _render_share_page(collection: dict, page_url: str) -> str:
    """Render a minimal, self-contained HTML page for a shared collection."""
    owner = collection["owner"]["name"]
    title = f"{owner}'s Glass Collection"
    description = (
        f"{collection['totalItems']} pieces worth {_money(collection['totalValue'])} "
        f"shared on MyGlassCase"
    )
    first_photo = next(
        (item["photo_url"] for item in collection["items"] if item.get("photo_url")), ""
    )

    stats = collection["stats"]
    years = ""
    if stats.get("oldestYear") and stats.get("newestYear"):
        years = f"{stats['oldestYear']}–{stats['newestYear']}"

    cards = "\n        ".join(_render_item_card(item) for item in collection["items"])
    if not cards:
        cards = '<p class="empty">This collection is empty.</p>'

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{_esc(title)}</title>

    <!-- OpenGraph -->
    <meta property="og:title" content="{_esc(title)}">
    <meta property="og:description" content="{_esc(description)}">
    <meta property="og:image" content="{_esc(first_photo)}">
    <meta property="og:url" content="{_esc(page_url)}">
    <meta property="og:type" content="website">
    <meta property="og:site_name" content="MyGlassCase">

    <!-- Twitter Card -->
    <meta name="twitter:card" content="summary_large_image">
    <meta name="twitter:title" content="{_esc(title)}">
    <meta name="twitter:description" content="{_esc(description)}">

    <style>
        * {{ margin: 0; padding: 0; box-sizing: border-box; }}
        body {{ background: #f7f7fb; color: #1f2937; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; min-height: 100vh; }}
        .container {{ max-width: 1200px; margin: 0 auto; padding: 24px 16px; }}
        .header h1 {{ font-size: 24px; margin-bottom: 4px; }}
        .header p {{ color: #6b7280; font-size: 14px; }}
        .stats {{ display: flex; gap: 24px; margin: 20px 0; flex-wrap: wrap; }}
        .stat {{ background: #fff; border: 1px solid #e5e7eb; border-radius: 8px; padding: 12px 16px; }}
        .stat b {{ display: block; font-size: 20px; }}
        .grid {{ display: grid; grid-template-columns: repeat(auto-fill, minmax(240px, 1fr)); gap: 16px; }}
        .card {{ background: #fff; border: 1px solid #e5e7eb; border-radius: 8px; overflow: hidden; }}
        .card img {{ width: 100%; height: 200px; object-fit: cover; display: block; }}
        .card .body {{ padding: 12px; }}
        .card h3 {{ font-size: 16px; }}
        .card .meta, .card .extra {{ font-size: 12px; color: #6b7280; margin-top: 4px; }}
        .card .value {{ font-weight: 600; color: #7c3aed; margin-top: 6px; }}
        .card .desc {{ font-size: 13px; margin-top: 6px; line-height: 1.5; }}
        .footer {{ margin-top: 32px; text-align: center; font-size: 12px; color: #9ca3af; }}
        .footer a {{ color: #7c3aed; text-decoration: none; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>{_esc(title)}</h1>
            <p>Shared {_esc(collection.get("sharedAt"))}</p>
        </div>

        <div class="stats">
            <div class="stat"><b>{collection['totalItems']}</b>pieces</div>
            <div class="stat"><b>{_esc(_money(collection['totalValue']))}</b>estimated value</div>
            <div class="stat"><b>{len(stats.get("categories", []))}</b>categories</div>
            <div class="stat"><b>{_esc(years) or "–"}</b>years</div>
        </div>

        <div class="grid">
        {cards}
        </div>

        <div class="footer">
            <p>Shared from <a href="{_esc(settings.base_url)}">MyGlassCase</a></p>
        </div>
    </div>
</body>
</html>"""


def _render_error_page(title: str, message: str) -> str:
    """Render a simple error page."""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{_esc(title)} - MyGlassCase</title>
    <style>
        body {{ background: #f7f7fb; color: #1f2937; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; display: flex; align-items: center; justify-content: center; min-height: 100vh; }}
        .error {{ text-align: center; }}
        h1 {{ color: #dc2626; margin-bottom: 8px; }}
        p {{ color: #6b7280; }}
    </style>
</head>
<body>
    <div class="error">
        <h1>{_esc(title)}</h1>
        <p>{_esc(message)}</p>
    </div>
</body>
</html>"""


def _esc(s) -> str:
    """HTML-escape a value."""
    return html.escape(str(s)) if s else ""
