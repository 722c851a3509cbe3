# analytics_store/routers/__init__.py
"""
API routers for admin endpoints.
"""

from analytics_store.routers.admin_storage import router as admin_storage_router

__all__ = [
    "admin_storage_router",
]
