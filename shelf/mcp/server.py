"""
MCP server wiring, tool and resource registration.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional

from fastmcp import FastMCP

import shelf.config as config
from shelf.services import markdown_shelf, pattern_tools

READ_ONLY_TOOL_ANNOTATIONS = {"readOnlyHint": True}

mcp = FastMCP("Shelf")

_REGISTERED_TOOLS: list[tuple[Callable[..., dict], tuple[Any, ...], dict[str, Any]]] = []
_REGISTERED_RESOURCES: list[tuple[Callable[..., Any], str]] = []


def mcp_tool(*args, **kwargs):
    """Register a tool with FastMCP and keep a local registry of what was registered."""
    def decorator(fn: Callable[..., dict]):
        _REGISTERED_TOOLS.append((fn, args, kwargs))
        mcp.tool(*args, **kwargs)(fn)
        return fn
    return decorator


def mcp_resource(uri: str, **kwargs):
    """Register a resource with FastMCP, keeping the plain function callable."""
    def decorator(fn: Callable[..., Any]):
        _REGISTERED_RESOURCES.append((fn, uri))
        mcp.resource(uri, **kwargs)(fn)
        return fn
    return decorator


def registered_tool_names() -> list[str]:
    return sorted(fn.__name__ for fn, _, _ in _REGISTERED_TOOLS)


def registered_resource_uris() -> list[str]:
    return sorted(uri for _, uri in _REGISTERED_RESOURCES)


async def tool_inventory_status() -> dict:
    """Return the tools FastMCP currently exposes."""
    tools = await mcp.get_tools()
    tool_names = sorted(tools.keys())
    if not tool_names:
        config.logger.warning("tool_inventory_empty", extra={"tool_count": 0})
    return {
        "tool_count": len(tool_names),
        "tools": tool_names,
    }


@mcp_tool(annotations=READ_ONLY_TOOL_ANNOTATIONS)
def shelf_search_patterns(context: str, limit: int = config.SEARCH_LIMIT_DEFAULT) -> dict:
    """Search for patterns relevant to the current situation."""
    return pattern_tools.shelf_search_patterns(context=context, limit=limit)


@mcp_tool()
def shelf_apply_pattern(pattern_id: str) -> dict:
    """Apply a pattern and track its usage."""
    return pattern_tools.shelf_apply_pattern(pattern_id=pattern_id)


@mcp_tool()
def shelf_reinforce_pattern(pattern_id: str, success: bool, notes: Optional[str] = None) -> dict:
    """Reinforce a pattern based on whether it worked."""
    return pattern_tools.shelf_reinforce_pattern(
        pattern_id=pattern_id,
        success=success,
        notes=notes,
    )


@mcp_tool(annotations=READ_ONLY_TOOL_ANNOTATIONS)
def shelf_list_patterns() -> dict:
    """List all patterns with their confidence and usage counts."""
    return pattern_tools.shelf_list_patterns()


@mcp_tool(annotations=READ_ONLY_TOOL_ANNOTATIONS)
def shelf_get_pattern(pattern_id: str) -> dict:
    """Get a single pattern by id."""
    return pattern_tools.shelf_get_pattern(pattern_id=pattern_id)


@mcp_tool()
def shelf_save_pattern(
    pattern_id: str,
    name: str,
    context: List[str],
    problem: str,
    solution: str,
    examples: Optional[List[dict]] = None,
    relations: Optional[List[dict]] = None,
    confidence: float = 0.5,
) -> dict:
    """Create or replace a pattern."""
    return pattern_tools.shelf_save_pattern(
        pattern_id=pattern_id,
        name=name,
        context=context,
        problem=problem,
        solution=solution,
        examples=examples,
        relations=relations,
        confidence=confidence,
    )


@mcp_tool()
def shelf_save_episode(
    context: str,
    actions: List[str],
    outcome: str,
    pattern_ids: Optional[List[str]] = None,
    episode_id: Optional[str] = None,
) -> dict:
    """Save an interaction episode for pattern learning."""
    return pattern_tools.shelf_save_episode(
        context=context,
        actions=actions,
        outcome=outcome,
        pattern_ids=pattern_ids,
        episode_id=episode_id,
    )


@mcp_tool(annotations=READ_ONLY_TOOL_ANNOTATIONS)
def shelf_find_similar(context: str, limit: int = config.SIMILAR_LIMIT_DEFAULT) -> dict:
    """Find past episodes similar to a context."""
    return pattern_tools.shelf_find_similar(context=context, limit=limit)


@mcp_tool()
def shelf_extract_pattern(
    episode_ids: List[str],
    pattern_name: str,
    problem_statement: str,
) -> dict:
    """Extract a new pattern from similar episodes."""
    return pattern_tools.shelf_extract_pattern(
        episode_ids=episode_ids,
        pattern_name=pattern_name,
        problem_statement=problem_statement,
    )


@mcp_tool()
def shelf_store_markdown_pattern(category: str, pattern: str, append: bool = True) -> dict:
    """Store a markdown pattern in the shelf's category file."""
    return pattern_tools.shelf_store_markdown_pattern(
        category=category,
        pattern=pattern,
        append=append,
    )


@mcp_resource(
    markdown_shelf.RESOURCE_PREFIX,
    name="shelf_patterns",
    description="List of all markdown patterns on the shelf",
    mime_type="application/json",
)
def shelf_patterns_index() -> dict:
    return markdown_shelf.list_markdown_patterns()


@mcp_resource(
    markdown_shelf.RESOURCE_PREFIX + "/{name}",
    name="shelf_pattern",
    description="Markdown content of one shelf pattern",
    mime_type="text/markdown",
)
def shelf_pattern_markdown(name: str) -> str:
    return markdown_shelf.read_markdown_pattern(name)


mcp_stream_app = mcp.http_app(
    path="/",
    transport="streamable-http",
    stateless_http=True,
    json_response=True,
)


class MCPRouteNormalizerASGI:
    """Pure ASGI middleware - no response buffering, SSE-safe."""
    def __init__(self, wrapped_app):
        self.wrapped_app = wrapped_app

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope.get("path") == "/mcp":
            scope = dict(scope)
            scope["path"] = "/mcp/"
        await self.wrapped_app(scope, receive, send)
