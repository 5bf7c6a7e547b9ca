"""v1 API router.

This module consolidates all v1 API endpoints.
Agents handle the business logic, routers handle HTTP.
"""

from fastapi import APIRouter

from hrdesk.api.v1.audit import router as audit_router
from hrdesk.api.v1.chat import router as chat_router
from hrdesk.api.v1.tools import router as tools_router
from hrdesk.api.v1.users import router as users_router

router = APIRouter(prefix="/v1")

router.include_router(chat_router)    # /v1/chat
router.include_router(tools_router)   # /v1/tools
router.include_router(audit_router)   # /v1/audit
router.include_router(users_router)   # /v1/admin/users
