import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from parts_gallery.adapters.sqlite.migrator import SQLiteMigrator
from parts_gallery.api.deps import close_auth_state, get_auth_hub, get_settings, get_snapshots
from parts_gallery.app_shell.config import validate_ops_rules
from parts_gallery.rules.loader import load_rules

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    try:
        rules = load_rules(settings.rules_path)
    except (FileNotFoundError, ValueError) as e:
        logger.critical("Rules load failed: %s", e)
        sys.exit(1)
    validate_ops_rules(rules, settings.data_dir)
    logger.info("Rules loaded from %s (backend=%s)", settings.rules_path, settings.backend)

    if not settings.uses_supabase:
        SQLiteMigrator(settings.db_path).run_migrations()

    # One auth subscription for the whole process
    hub = get_auth_hub()
    subscription = hub.subscribe(get_snapshots().on_auth_event)

    yield

    subscription.unsubscribe()
    close_auth_state()
    logger.info("Auth state closed")


app = FastAPI(
    title="Parts Gallery API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from parts_gallery.api.routes import assets, auth, parts, public_objects  # noqa: E402

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(assets.router, prefix="/api/assets", tags=["Assets"])
app.include_router(parts.router, prefix="/api/parts", tags=["Parts"])
app.include_router(
    public_objects.router, prefix="/storage/v1/object/public", tags=["Public Objects"]
)


# CORS (Allow Frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}
