"""Glassware recognition from photos.

Pipeline, run sequentially for each request:
  1. Google Vision annotates the image (labels, web entities, text).
  2. If an OpenAI key is configured, an LLM turns those signals into
     structured collection matches.
  3. Otherwise, or if the LLM step fails, the signals are matched against
     a catalog of well-known glassware lines by keyword.
"""

import json
import logging
import secrets
from dataclasses import dataclass, field

import httpx

from glasscase.config import settings
from glasscase.errors import RecognitionError, RecognitionNotConfigured
from glasscase.services.timestamps import to_iso, utc_now

logger = logging.getLogger(__name__)

VISION_URL = "https://vision.googleapis.com/v1/images:annotate"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"
MAX_MATCHES = 3


@dataclass
class CatalogEntry:
    collection: str
    item_type: str
    material: str
    manufacturer: str
    pattern: str
    era: str
    estimated_value: float
    description: str
    keywords: list[str] = field(default_factory=list)


CATALOG = [
    CatalogEntry(
        "Fire-King Jadeite", "Coffee Cup", "Jadeite Glass", "Anchor Hocking",
        "Restaurant Ware", "1940-1976", 25,
        "Fire-King jadeite restaurant ware, produced by Anchor Hocking and prized "
        "for its jade green milk glass.",
        ["jadeite", "jade", "fire-king", "fire king", "anchor hocking", "green", "mug", "cup"],
    ),
    CatalogEntry(
        "Fenton Milk Glass", "Hobnail Vase", "Milk Glass", "Fenton Art Glass",
        "Hobnail", "1950-1980", 45,
        "Fenton hobnail milk glass with the characteristic raised dot pattern.",
        ["fenton", "hobnail", "milk glass", "white", "vase", "opaque"],
    ),
    CatalogEntry(
        "Depression Glass", "Dinner Plate", "Pressed Glass", "Federal Glass Company",
        "Madrid", "1932-1939", 35,
        "Depression-era pressed glass, mass-produced in the 1930s and now widely collected.",
        ["depression", "pressed glass", "plate", "amber", "pink", "madrid", "federal"],
    ),
    CatalogEntry(
        "Pyrex Mixing Bowls", "Mixing Bowl", "Borosilicate Glass", "Corning Glass Works",
        "Primary Colors", "1945-1986", 30,
        "Vintage Pyrex mixing bowl, a mid-century kitchen staple collected for its colors.",
        ["pyrex", "corning", "bowl", "mixing bowl", "primary colors", "casserole", "kitchen"],
    ),
    CatalogEntry(
        "Carnival Glass", "Bowl", "Iridescent Pressed Glass", "Northwood Glass Company",
        "Grape and Cable", "1908-1925", 60,
        "Iridescent carnival glass with a metallic sheen from surface salts.",
        ["carnival", "iridescent", "marigold", "northwood", "rainbow", "luster"],
    ),
    CatalogEntry(
        "Uranium Glass", "Tumbler", "Vaseline Glass", "Various",
        "Vaseline", "1880-1940", 40,
        "Uranium (vaseline) glass that fluoresces bright green under ultraviolet light.",
        ["uranium", "vaseline", "fluorescent", "glow", "yellow green"],
    ),
]

UNIDENTIFIED = {
    "collection": "Unidentified Glassware",
    "itemType": "Glass Item",
    "material": "Glass",
    "manufacturer": "Unknown",
    "pattern": "Unknown",
    "era": "Unknown",
    "confidence": 0.1,
    "description": "No known collection matched this photo. Add the details manually.",
    "estimatedValue": None,
}


# ── Vision ───────────────────────────────────────────────────────────────────

def extract_signals(vision_response: dict) -> dict:
    """Pull labels, web entities and detected text out of an annotate response."""
    result = (vision_response.get("responses") or [{}])[0]
    if result.get("error"):
        raise RecognitionError(result["error"].get("message", "Vision API error"))

    labels = [
        (a.get("description", ""), float(a.get("score", 0)))
        for a in result.get("labelAnnotations", [])
        if a.get("description")
    ]
    web = result.get("webDetection") or {}
    entities = [
        (e.get("description", ""), float(e.get("score", 0)))
        for e in web.get("webEntities", [])
        if e.get("description")
    ]
    best_guesses = [g.get("label", "") for g in web.get("bestGuessLabels", []) if g.get("label")]
    texts = result.get("textAnnotations") or []
    text = texts[0].get("description", "") if texts else ""

    return {"labels": labels, "entities": entities, "best_guesses": best_guesses, "text": text}


async def annotate_image(image_base64: str) -> dict:
    if not settings.google_vision_api_key:
        raise RecognitionNotConfigured("Image recognition is not configured")

    body = {
        "requests": [{
            "image": {"content": image_base64},
            "features": [
                {"type": "LABEL_DETECTION", "maxResults": 15},
                {"type": "WEB_DETECTION", "maxResults": 10},
                {"type": "TEXT_DETECTION", "maxResults": 5},
            ],
        }]
    }
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            resp = await client.post(
                VISION_URL, params={"key": settings.google_vision_api_key}, json=body
            )
    except httpx.HTTPError as e:
        raise RecognitionError(f"Vision API unreachable: {e}") from e

    if resp.status_code != 200:
        raise RecognitionError(f"Vision API error (HTTP {resp.status_code})")
    return extract_signals(resp.json())


# ── Keyword matching ─────────────────────────────────────────────────────────

def _entry_to_match(entry: CatalogEntry, confidence: float) -> dict:
    return {
        "collection": entry.collection,
        "itemType": entry.item_type,
        "material": entry.material,
        "manufacturer": entry.manufacturer,
        "pattern": entry.pattern,
        "era": entry.era,
        "confidence": round(confidence, 2),
        "description": entry.description,
        "estimatedValue": entry.estimated_value,
    }


def match_keywords(signals: dict) -> list[dict]:
    """Score catalog entries by weighted keyword hits in the vision signals."""
    weighted = list(signals.get("labels", [])) + list(signals.get("entities", []))
    weighted += [(g, 1.0) for g in signals.get("best_guesses", [])]
    if signals.get("text"):
        weighted.append((signals["text"], 0.8))
    haystack = [(term.lower(), score) for term, score in weighted]

    scored = []
    for entry in CATALOG:
        hits = 0.0
        for keyword in entry.keywords:
            best = max((score for term, score in haystack if keyword in term), default=0.0)
            hits += best
        if hits > 0:
            # Two strong hits put an entry near the top of the scale
            confidence = min(0.95, 0.3 + hits * 0.25)
            scored.append((confidence, entry))

    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [_entry_to_match(entry, conf) for conf, entry in scored[:MAX_MATCHES]]


# ── LLM enrichment ───────────────────────────────────────────────────────────

_PROMPT = """You identify collectible glassware from image analysis signals.

Vision labels: {labels}
Web entities: {entities}
Best guesses: {guesses}
Visible text: {text}

Reply with JSON: {{"matches": [{{"collection": str, "itemType": str, "material": str,
"manufacturer": str, "pattern": str, "era": str, "confidence": number 0-1,
"description": str, "estimatedValue": number or null}}]}}
List at most {limit} matches, most likely first. Use "Unknown" for fields you cannot tell."""


def parse_llm_matches(content: str) -> list[dict]:
    """Validate the LLM's JSON reply into match dicts."""
    data = json.loads(content)
    if not isinstance(data, dict) or not isinstance(data.get("matches"), list):
        raise ValueError("LLM reply is not an object with a matches list")
    matches = []
    for raw in data["matches"][:MAX_MATCHES]:
        if not isinstance(raw, dict) or not raw.get("collection"):
            continue
        match = {key: raw.get(key) or UNIDENTIFIED[key] for key in UNIDENTIFIED}
        match["confidence"] = max(0.0, min(1.0, float(raw.get("confidence") or 0)))
        match["estimatedValue"] = raw.get("estimatedValue")
        matches.append(match)
    return matches


async def enrich_with_llm(signals: dict) -> list[dict]:
    prompt = _PROMPT.format(
        labels=", ".join(l for l, _ in signals["labels"]) or "none",
        entities=", ".join(e for e, _ in signals["entities"]) or "none",
        guesses=", ".join(signals["best_guesses"]) or "none",
        text=(signals["text"] or "none")[:500],
        limit=MAX_MATCHES,
    )
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        resp = await client.post(
            OPENAI_URL,
            headers={"Authorization": f"Bearer {settings.openai_api_key}"},
            json={
                "model": settings.openai_model,
                "response_format": {"type": "json_object"},
                "temperature": 0.2,
                "messages": [{"role": "user", "content": prompt}],
            },
        )
    resp.raise_for_status()
    content = resp.json()["choices"][0]["message"]["content"]
    return parse_llm_matches(content)


# ── Entry point ──────────────────────────────────────────────────────────────

async def recognize(image_base64: str, filename: str) -> dict:
    """Identify glassware in a base64-encoded photo."""
    if not image_base64 or not filename:
        raise ValueError("Image data and filename are required")

    logger.info("Processing image recognition for %s (%d bytes b64)", filename, len(image_base64))
    signals = await annotate_image(image_base64)

    matches: list[dict] = []
    source = "keywords"
    if settings.openai_api_key:
        try:
            matches = await enrich_with_llm(signals)
            source = "llm"
        except (httpx.HTTPError, KeyError, IndexError, ValueError, TypeError, AttributeError) as e:
            logger.warning("LLM enrichment failed, falling back to keywords: %s", e)
            matches = []

    if not matches:
        source = "keywords"
        matches = match_keywords(signals)

    analysis_id = f"analysis_{secrets.token_hex(8)}"
    matches = sorted(matches, key=lambda m: m["confidence"], reverse=True)
    for index, match in enumerate(matches):
        match["id"] = f"match_{analysis_id}_{index}"

    primary = matches[0] if matches else {**UNIDENTIFIED, "id": f"match_{analysis_id}_0"}

    logger.info(
        "Recognition %s: %d matches via %s, primary %s",
        analysis_id, len(matches), source, primary["collection"],
    )
    return {
        "matches": matches,
        "primaryMatch": primary,
        "analysisId": analysis_id,
        "processedAt": to_iso(utc_now()),
        "source": source,
        "labels": [label for label, _ in signals["labels"]],
    }
