"""
Standalone FastAPI app wiring for Shelf.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI

import shelf.config as config
from shelf.mcp import mcp_stream_app, MCPRouteNormalizerASGI
from shelf.services.markdown_shelf import ensure_example_pattern
from shelf.services.pattern_store import PatternStore
from shelf.services.shared import bind_store
from app.routes.health import router as health_router
from app.routes.root import router as root_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the pattern store on startup, close it on shutdown."""
    await asyncio.to_thread(ensure_example_pattern)
    store = await asyncio.to_thread(PatternStore.create)
    bind_store(store)
    config.logger.info("shelf_started", extra={"backend": store.backend.name})
    try:
        async with mcp_stream_app.lifespan(mcp_stream_app):
            yield
    finally:
        bind_store(None)
        store.close()


app = FastAPI(title="Shelf", redirect_slashes=False, lifespan=lifespan)

# Health and root endpoints
app.include_router(health_router)
app.include_router(root_router)

app.mount("/mcp/", mcp_stream_app)


# =============================================================================
# ASGI Application (module-level for production deployment)
# =============================================================================

asgi_app = MCPRouteNormalizerASGI(app)
