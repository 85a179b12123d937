import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from canvasletter.adapters.sqlite.migrator import SQLiteMigrator
from canvasletter.api.deps import get_settings
from canvasletter.rules.loader import load_rules

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    try:
        load_rules(settings.rules_path)
        logger.info("Rules loaded from %s", settings.rules_path)
    except Exception as e:
        logger.critical("Rules load failed: %s", e)
        sys.exit(1)

    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
    SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()

    yield


def _cors_origins() -> list[str]:
    settings = get_settings()
    try:
        origins = load_rules(settings.rules_path).api.cors_origins
    except (FileNotFoundError, ValueError) as e:
        logger.warning("Using default CORS origins: %s", e)
        return DEFAULT_ORIGINS
    return origins or DEFAULT_ORIGINS


app = FastAPI(
    title="Canvasletter API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from canvasletter.api.routes import newsletters, sections, shares  # noqa: E402

app.include_router(shares.router, prefix="/api/shares", tags=["Shares"])
app.include_router(newsletters.router, prefix="/api/newsletters", tags=["Newsletters"])
app.include_router(sections.router, prefix="/api/sections", tags=["Sections"])


# CORS (Allow Frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}
