"""API Routers Package.

Routers:
- search.py: POST /search (provider search + previously-called flags)
- calls.py: POST /call, GET /history

Usage in main.py:
    from api.routers import search_router, calls_router

    app.include_router(search_router, tags=["search"])
    app.include_router(calls_router, tags=["calls"])
"""

from .calls import router as calls_router
from .search import router as search_router

__all__ = [
    "calls_router",
    "search_router",
]
