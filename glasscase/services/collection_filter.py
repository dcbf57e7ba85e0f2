"""Redaction of inventory items for anonymous share viewers.

Everything here is pure: no database access, no mutation of the inputs.
"""

from collections.abc import Iterable, Mapping

from glasscase.models.share import VisibilitySettings

# Fields every anonymous viewer sees
PUBLIC_FIELDS = (
    "id",
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
    "created_at",
)

# Optional field -> the flag that hides it
REDACTABLE_FIELDS = {
    "purchase_price": "hide_purchase_price",
    "purchase_date": "hide_purchase_date",
    "location": "hide_location",
    "description": "hide_description",
}


def normalize_settings(settings: VisibilitySettings | Mapping | None) -> VisibilitySettings:
    """Coerce stored or submitted settings into a full VisibilitySettings.

    Missing and null flags take their defaults rather than reading as false.
    """
    if isinstance(settings, VisibilitySettings):
        return settings
    if not settings:
        return VisibilitySettings()
    present = {k: v for k, v in settings.items() if v is not None}
    return VisibilitySettings.model_validate(present)


def filter_item(item: Mapping, settings: VisibilitySettings) -> dict:
    public = {field: item.get(field) for field in PUBLIC_FIELDS}
    for field, flag in REDACTABLE_FIELDS.items():
        if not getattr(settings, flag):
            public[field] = item.get(field)
    return public


def filter_collection(
    items: Iterable[Mapping],
    settings: VisibilitySettings | Mapping | None = None,
) -> list[dict]:
    """Project items into the redacted form safe for anonymous viewing.

    Order is preserved; callers sort before filtering.
    """
    visibility = normalize_settings(settings)
    return [filter_item(item, visibility) for item in items]


def effective_quantity(quantity) -> int:
    """Quantity used for totals: missing, zero or negative counts as one."""
    try:
        value = int(quantity or 0)
    except (TypeError, ValueError):
        return 1
    return max(value, 1)


def _distinct(values: Iterable) -> list:
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def collection_stats(items: list[Mapping]) -> dict:
    """Aggregate statistics over already-filtered items."""
    total_items = sum(effective_quantity(item.get("quantity")) for item in items)
    total_value = sum(
        (item.get("current_value") or 0) * effective_quantity(item.get("quantity"))
        for item in items
    )
    years = [item["year_manufactured"] for item in items if item.get("year_manufactured")]

    return {
        "totalItems": total_items,
        "totalValue": total_value,
        "categories": _distinct(item.get("category") for item in items),
        "manufacturers": _distinct(item.get("manufacturer") for item in items),
        "oldestYear": min(years) if years else None,
        "newestYear": max(years) if years else None,
    }
