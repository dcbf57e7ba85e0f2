"""Pydantic models for collection and wishlist share links."""

from pydantic import BaseModel, ConfigDict, Field


class VisibilitySettings(BaseModel):
    """Redaction flags for a shared collection.

    A flag missing from stored or submitted settings takes its default here,
    so purchase prices stay hidden unless the owner explicitly reveals them.
    """

    model_config = ConfigDict(extra="ignore")

    hide_purchase_price: bool = True
    hide_purchase_date: bool = False
    hide_location: bool = False
    hide_description: bool = False

    def to_public(self) -> dict:
        """Settings echoed to anonymous viewers."""
        return {
            "hidePurchasePrice": self.hide_purchase_price,
            "hidePurchaseDate": self.hide_purchase_date,
            "hideLocation": self.hide_location,
            "hideDescription": self.hide_description,
        }


class WishlistShareSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    include_search_terms: bool = True
    include_price_limit: bool = True
    include_facebook_url: bool = False


class ShareLinkCreate(BaseModel):
    settings: VisibilitySettings = Field(default_factory=VisibilitySettings)
    expires_in_days: int | None = Field(default=None, ge=1, le=3650)


class ShareLinkUpdate(BaseModel):
    settings: VisibilitySettings | None = None
    is_active: bool | None = None
    expires_in_days: int | None = Field(default=None, ge=1, le=3650)
    clear_expiry: bool = False


class ShareLinkResponse(BaseModel):
    id: int
    user_id: int
    unique_share_id: str
    url: str
    settings: VisibilitySettings
    is_active: bool = True
    expires_at: str | None = None
    created_at: str


class WishlistShareCreate(BaseModel):
    settings: WishlistShareSettings = Field(default_factory=WishlistShareSettings)
    expires_in_days: int | None = Field(default=None, ge=1, le=3650)


class WishlistShareResponse(BaseModel):
    id: int
    wishlist_item_id: int
    unique_share_id: str
    url: str
    settings: WishlistShareSettings
    is_active: bool = True
    expires_at: str | None = None
    created_at: str
