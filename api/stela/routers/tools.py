"""Router: Tool registry inspection."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from stela.core.tool_registry import registry

router = APIRouter(prefix="/api/tools", tags=["tools"])


@router.get("")
async def tool_catalog():
    """Affiliate data tools the assistant may call, in the order the model sees them.

    Each entry is ``{name, method, description}``; POST tools send their
    arguments as the JSON body, GET tools only use them in the path.
    """
    return registry.list_tools()


@router.get("/{tool_name}/schema")
async def describe_tool(tool_name: str):
    """``{name, description, input_schema}`` exactly as sent to the completion service."""
    schema = registry.schema(tool_name)
    if schema is None:
        raise HTTPException(status_code=404, detail=f"Tool '{tool_name}' not found")
    return schema
