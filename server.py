"""
Shelf - pattern memory for AI agents.

Runs the FastAPI app (MCP tools under /mcp) with uvicorn.
"""

import os

import uvicorn


if __name__ == "__main__":
    uvicorn.run(
        "app.main:asgi_app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8080")),
    )
