"""Application configuration via environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """MyGlassCase application settings loaded from environment variables."""

    # Required
    secret_key: str = "change-me-to-a-random-string"

    # Public URL for share links
    base_url: str = "http://localhost:8080"

    # Data paths
    data_dir: Path = Path("/data")
    db_path: Path = Path("/data/glasscase.db")

    # Authentication
    token_expiry_days: int = 30

    # CORS (comma-separated extra origins, in addition to localhost defaults)
    cors_origins: str = ""

    # Outbound HTTP
    http_timeout_seconds: float = 15.0

    # eBay
    ebay_client_id: str = ""
    ebay_client_secret: str = ""
    ebay_redirect_uri: str = ""
    ebay_dev_id: str = ""
    ebay_sandbox: bool = False
    ebay_auth_session_ttl_minutes: int = 10
    ebay_auth_max_wait_seconds: int = 60

    # Image recognition
    google_vision_api_key: str = ""
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    model_config = {
        "env_prefix": "GLASSCASE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def ebay_configured(self) -> bool:
        return bool(self.ebay_client_id and self.ebay_client_secret and self.ebay_redirect_uri)

    @property
    def ebay_auth_host(self) -> str:
        return "https://auth.sandbox.ebay.com" if self.ebay_sandbox else "https://auth.ebay.com"

    @property
    def ebay_api_host(self) -> str:
        return "https://api.sandbox.ebay.com" if self.ebay_sandbox else "https://api.ebay.com"


# Singleton instance
settings = Settings()
