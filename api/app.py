"""
API application factory.
"""

from aiohttp import web

from api.handlers import (
    children_handler,
    health_handler,
    level_counts_handler,
    register_handler,
    search_handler,
    sponsor_handler,
    stats_handler,
    tree_handler,
)
from api.keys import RESOLVER_KEY, SERVICE_KEY
from api.middlewares import auth_middleware, error_middleware
from downline.services.downline_service import DownlineService
from downline.services.identity import IdentityResolver


def create_app(
    service: DownlineService, resolver: IdentityResolver
) -> web.Application:
    """
    Create aiohttp application.

    Args:
        service: Downline service
        resolver: Caller identity resolver

    Returns:
        Configured application
    """
    app = web.Application(middlewares=[error_middleware, auth_middleware])
    app[SERVICE_KEY] = service
    app[RESOLVER_KEY] = resolver

    app.router.add_get("/health", health_handler)
    app.router.add_get("/api/level-counts", level_counts_handler)
    app.router.add_get("/api/tree", tree_handler)
    app.router.add_get("/api/search", search_handler)
    app.router.add_get("/api/children", children_handler)
    app.router.add_get("/api/stats", stats_handler)
    app.router.add_get("/api/sponsor", sponsor_handler)
    app.router.add_post("/api/register", register_handler)

    return app
