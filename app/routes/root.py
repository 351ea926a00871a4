"""
Root endpoint with service metadata.
"""

from __future__ import annotations

from fastapi import APIRouter

import shelf
import shelf.config as config


router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint with service info."""
    return {
        "service": "Shelf",
        "version": shelf.__version__,
        "description": "Pattern memory for AI agents",
        "storage": config.STORAGE_BACKEND,
        "endpoints": {
            "health": "/health",
            "health_tools": "/health/tools",
            "mcp": "/mcp",
        },
    }
