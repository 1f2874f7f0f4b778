"""
API module - FastAPI routers and endpoint definitions.

Usage:
    from placement_engine.api import api_router
    app.include_router(api_router)
"""

from placement_engine.api.routes import api_router

__all__ = ["api_router"]
