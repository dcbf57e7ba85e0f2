"""Exceptions raised by services and translated to HTTP errors by the routers."""


class ShareAccessError(Exception):
    """Terminal failure while resolving a public share link.

    `public_message` is the only text an anonymous viewer ever sees.
    """

    status_code = 500
    public_message = "Failed to load shared collection"


class ShareBadRequest(ShareAccessError):
    status_code = 400
    public_message = "Share ID is required"


class ShareNotFound(ShareAccessError):
    status_code = 404
    public_message = "Share link not found"


class ShareDisabled(ShareAccessError):
    status_code = 403
    public_message = "This share link has been disabled by its owner"


class ShareExpired(ShareAccessError):
    status_code = 410
    public_message = "This share link has expired"


class UpstreamFailure(ShareAccessError):
    status_code = 500
    public_message = "Failed to load shared collection"


class EbayNotConfigured(Exception):
    """eBay API credentials are missing from the configuration."""


class EbayAuthError(Exception):
    """OAuth flow or token exchange failed."""


class EbayListingError(Exception):
    """The Trading API rejected a listing request."""


class MarketplaceSearchError(Exception):
    """The marketplace search call failed."""


class RecognitionNotConfigured(Exception):
    """No vision API key is configured."""


class RecognitionError(Exception):
    """The vision API call failed."""
