"""
tubefetch - FastAPI application entry point.

Resolves YouTube watch URLs into playable, deciphered and ranked formats,
and streams the bytes of a chosen format.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .extractors import get_default_caches
from .routes.api import router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if get_settings().debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    logger.info("tubefetch starting up...")

    settings = get_settings()
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(
        "Cache TTLs: player=%ss watch_page=%ss identity_token=%ss",
        settings.player_cache_ttl,
        settings.watch_page_cache_ttl,
        settings.identity_token_cache_ttl,
    )

    yield

    # Pending expiry timers belong to this loop
    get_default_caches().clear()
    logger.info("tubefetch shutting down...")


app = FastAPI(
    title="tubefetch",
    description=(
        "Resolves YouTube videos into metadata and directly playable format URLs, "
        "with quality/filter based format selection and byte streaming."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# CORS: use TUBEFETCH_CORS_ORIGINS env (comma-separated) for explicit origins; empty = "*" without credentials
_origins = [o.strip() for o in get_settings().cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins if _origins else ["*"],
    allow_credentials=bool(_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/", tags=["root"])
async def root():
    return {
        "name": "tubefetch",
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "info": "/api/info",
            "basic_info": "/api/basic-info",
            "choose": "/api/choose",
            "download": "/api/download",
            "health": "/api/health",
        },
    }


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "tubefetch.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
