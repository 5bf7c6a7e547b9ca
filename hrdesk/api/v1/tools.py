"""v1 tools endpoint.

Lists the HR tool catalog the model may call, flagged per caller role.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from hrdesk.agents.hr import ExecutionContext, get_tool_registry
from hrdesk.auth.dependencies import get_execution_context
from hrdesk.auth.rbac import permissions_for

router = APIRouter(prefix="/tools", tags=["v1-tools"])


class ToolInfo(BaseModel):
    """Tool catalog entry."""
    name: str
    description: str
    requirement: Dict[str, Any]
    inputSchema: Dict[str, Any]
    allowed: bool


class ToolCatalogResponse(BaseModel):
    role: str
    permissions: Dict[str, List[str]]
    tools: List[ToolInfo]


@router.get("", response_model=ToolCatalogResponse)
async def list_tools(ctx: ExecutionContext = Depends(get_execution_context)):
    """Tool catalog with the caller's permissions."""
    return {
        "role": ctx.role.value,
        "permissions": permissions_for(ctx.role),
        "tools": get_tool_registry().catalog(ctx.role),
    }
