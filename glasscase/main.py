"""MyGlassCase FastAPI application."""

import logging
import secrets
from contextlib import asynccontextmanager

from fastapi import FastAPI

# Configure logging so our INFO messages appear in container logs
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
# Keep noisy libraries at WARNING
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
from fastapi.middleware.cors import CORSMiddleware

from glasscase.config import settings
from glasscase.database import close_db, init_db

logger = logging.getLogger(__name__)

DEFAULT_SECRET_SENTINEL = "change-me-to-a-random-string"
VERSION = "0.1.0"


def _ensure_secret_key() -> None:
    """Auto-generate a persistent secret key if the user hasn't set one."""
    if settings.secret_key != DEFAULT_SECRET_SENTINEL:
        return  # User explicitly set GLASSCASE_SECRET_KEY; use it as-is

    key_file = settings.data_dir / ".secret_key"
    if key_file.exists():
        stored = key_file.read_text().strip()
        if stored:
            settings.secret_key = stored
            logger.info("Loaded auto-generated secret key from %s", key_file)
            return

    new_key = secrets.token_hex(32)
    key_file.write_text(new_key)
    settings.secret_key = new_key
    logger.warning(
        "Generated new secret key (saved to %s). "
        "Set GLASSCASE_SECRET_KEY env var to use your own.",
        key_file,
    )
from glasscase.routers import (
    auth,
    ebay,
    inventory,
    recognition,
    settings as settings_router,
    share,
    wishlist,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    _ensure_secret_key()
    await init_db()

    if not settings.ebay_configured:
        logger.warning("eBay credentials not configured; eBay connect and search are disabled")
    if not settings.google_vision_api_key:
        logger.warning("GLASSCASE_GOOGLE_VISION_API_KEY not set; image recognition is disabled")

    yield
    await close_db()


app = FastAPI(
    title="MyGlassCase",
    description="Glassware collection inventory with public sharing and wishlists",
    version=VERSION,
    lifespan=lifespan,
)

# CORS: localhost defaults plus any extra origins from GLASSCASE_CORS_ORIGINS
_cors_origins = ["http://localhost:5173", "http://localhost:8080"]
if settings.cors_origins:
    _cors_origins.extend(o.strip() for o in settings.cors_origins.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routers
app.include_router(auth.router)
app.include_router(inventory.router)
app.include_router(share.router)
app.include_router(wishlist.router)
app.include_router(ebay.router)
app.include_router(recognition.router)
app.include_router(settings_router.router)


# Health check (public, no auth)
@app.get("/api/health")
async def health():
    return {"status": "ok", "version": VERSION}
