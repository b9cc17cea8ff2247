"""API router composition for the backend.

The module assembles individual route groups into a single `api_router` that can be mounted on the app.
"""

from fastapi import APIRouter

from app.api.routes import connections_router, forms_router

api_router = APIRouter()
api_router.include_router(forms_router)
api_router.include_router(connections_router)

__all__ = ["api_router"]
