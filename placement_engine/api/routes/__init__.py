"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from placement_engine.api.routes.student_routes import router as student_router
from placement_engine.api.routes.institution_routes import router as institution_router
from placement_engine.api.routes.company_routes import router as company_router
from placement_engine.api.routes.notification_routes import router as notification_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(student_router)
api_router.include_router(institution_router)
api_router.include_router(company_router)
api_router.include_router(notification_router)
