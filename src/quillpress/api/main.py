import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quillpress import __version__
from quillpress.adapters.sqlite.migrator import SQLiteMigrator
from quillpress.api.deps import Settings, get_settings
from quillpress.api.errors import install_error_handlers
from quillpress.api.routes import admin_posts, posts
from quillpress.rules.loader import load_rules

logging.basicConfig(
    level=os.environ.get("QUILL_LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Validate rules and bring the schema up to date before serving (fail fast)."""
    settings: Settings = app.dependency_overrides.get(get_settings, get_settings)()

    load_rules(settings.rules_path)
    logger.info("Rules loaded from %s", settings.rules_path)

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(settings.db_path).run_migrations()
    logger.info("Database ready at %s (%d migrations applied)", settings.db_path, len(applied))

    yield


app = FastAPI(
    title="quillpress API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

install_error_handlers(app)

# --- Routers ---
app.include_router(posts.router, prefix="/api/posts", tags=["Posts"])
app.include_router(admin_posts.router, prefix="/api/admin/posts", tags=["Admin Posts"])

_cors_origins = get_settings().cors_origins
if _cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "quillpress"}
