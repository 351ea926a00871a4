"""
Health endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

import shelf
from shelf.errors import StorageUnavailableError
from shelf.mcp import tool_inventory_status
from shelf.services.shared import resolve_store


router = APIRouter()


def _check_storage_health() -> dict:
    try:
        store = resolve_store()
    except StorageUnavailableError as exc:
        return {"ok": False, "error": str(exc)}
    return store.backend.health()


@router.get("/health")
async def health():
    """Health check endpoint."""
    storage = _check_storage_health()
    if not storage.get("ok"):
        raise HTTPException(status_code=503, detail={"storage": storage})

    return {
        "status": "healthy",
        "service": "Shelf",
        "version": shelf.__version__,
        "storage": storage,
    }


@router.get("/health/tools")
async def health_tools():
    """Tool inventory health check."""
    tool_inventory = await tool_inventory_status()
    if tool_inventory.get("tool_count", 0) == 0:
        raise HTTPException(status_code=503, detail={"tool_inventory": tool_inventory})

    return {
        "status": "healthy",
        "service": "Shelf",
        "tool_inventory": tool_inventory,
    }
