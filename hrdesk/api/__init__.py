"""API routers."""

from hrdesk.api.health import router as health_router

__all__ = ["health_router"]
