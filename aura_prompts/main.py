"""Main FastAPI application for the Aura prompt engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aura_prompts import __version__
from aura_prompts.api import prompts
from aura_prompts.api.admin import prompts as admin_prompts
from aura_prompts.api.errors import status_for
from aura_prompts.config import should_seed_prompt_defaults
from aura_prompts.lib.exceptions import PromptEngineError
from aura_prompts.lib.logging_config import configure_logging, create_request_context_middleware
from aura_prompts.lib.prompts.registry import get_registry
from aura_prompts.lib.prompts.seeding import seed_system_defaults
from aura_prompts.lib.prompts.service import get_prompt_cache
from aura_prompts.models.sql.database import SessionLocal, init_db

configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    logger.info("Starting up Aura prompt engine API...")

    # Fail fast on a broken catalog
    registry = get_registry()

    init_db()
    logger.info("Prompt tables ready")

    if should_seed_prompt_defaults():
        db = SessionLocal()
        try:
            seed_system_defaults(db, registry, cache=get_prompt_cache())
        finally:
            db.close()
    else:
        logger.info("PROMPT_SEED_DEFAULTS disabled, skipping system default seeding")

    yield

    logger.info("Shutting down Aura prompt engine API...")


app = FastAPI(
    title="Aura Prompt Engine API",
    description="Prompt resolution, versioning and per-user overrides",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(PromptEngineError)
async def prompt_engine_exception_handler(request: Request, exc: PromptEngineError):
    """Catch-all for engine errors a route did not translate itself."""
    return JSONResponse(
        status_code=status_for(exc),
        content={
            "detail": {
                "message": exc.message,
                "error_code": exc.error_code,
                **exc.details,
            }
        },
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
create_request_context_middleware(app)

app.include_router(prompts.router, tags=["Prompts"])

# Admin endpoints (requires ADMIN_EMAILS allowlist)
app.include_router(admin_prompts.router, tags=["Admin - Prompts"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Aura Prompt Engine API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health_check():
    """Health check with prompt catalog and cache status."""
    return {
        "status": "healthy",
        "services": {
            "app": "running",
            "registry_prompts": len(get_registry()),
            "prompt_cache": get_prompt_cache().info(),
        },
    }
