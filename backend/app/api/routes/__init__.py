"""Route exports for the API layer.

Re-exports the form and connection routers so callers can include all endpoints with a single import.
"""

from .connections import router as connections_router
from .forms import router as forms_router

__all__ = ["forms_router", "connections_router"]
