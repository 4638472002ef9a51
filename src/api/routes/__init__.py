"""API route modules."""

from .health import router as health_router
from .invoices import router as invoices_router
from .timesheets import router as timesheets_router

__all__ = ["health_router", "invoices_router", "timesheets_router"]
