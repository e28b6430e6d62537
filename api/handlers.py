"""
API route handlers.

Thin adapters between HTTP requests and DownlineService.
"""

import json

from aiohttp import web

from api.keys import CALLER_ID_KEY, SERVICE_KEY
from downline.utils.exceptions import RegistrationError


async def health_handler(request: web.Request) -> web.Response:
    """Liveness endpoint."""
    return web.json_response({"status": "alive"})


async def level_counts_handler(request: web.Request) -> web.Response:
    """GET /api/level-counts"""
    service = request.app[SERVICE_KEY]
    data = await service.level_counts(request[CALLER_ID_KEY])
    return web.json_response(data)


async def tree_handler(request: web.Request) -> web.Response:
    """GET /api/tree?uid=&depth="""
    service = request.app[SERVICE_KEY]
    data = await service.subtree(
        request[CALLER_ID_KEY],
        target_id=request.query.get("uid") or None,
        depth=request.query.get("depth"),
    )
    return web.json_response(data)


async def search_handler(request: web.Request) -> web.Response:
    """GET /api/search?q="""
    service = request.app[SERVICE_KEY]
    data = await service.search(request[CALLER_ID_KEY], request.query.get("q"))
    return web.json_response(data)


async def children_handler(request: web.Request) -> web.Response:
    """GET /api/children?parent=&cursor="""
    service = request.app[SERVICE_KEY]
    data = await service.children(
        request[CALLER_ID_KEY],
        parent_id=request.query.get("parent") or None,
        cursor=request.query.get("cursor") or None,
    )
    return web.json_response(data)


async def stats_handler(request: web.Request) -> web.Response:
    """GET /api/stats"""
    service = request.app[SERVICE_KEY]
    data = await service.stats(request[CALLER_ID_KEY])
    return web.json_response(data)


async def sponsor_handler(request: web.Request) -> web.Response:
    """GET /api/sponsor?code= (public)"""
    service = request.app[SERVICE_KEY]
    data = await service.sponsor(request.query.get("code"))
    return web.json_response(data)


async def register_handler(request: web.Request) -> web.Response:
    """POST /api/register"""
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise RegistrationError("Request body must be JSON") from e
    if not isinstance(payload, dict):
        raise RegistrationError("Request body must be a JSON object")

    service = request.app[SERVICE_KEY]
    data = await service.register(
        request[CALLER_ID_KEY],
        name=str(payload.get("name") or ""),
        email=str(payload.get("email") or ""),
        phone=str(payload.get("phone") or ""),
        sponsor_code=str(payload.get("sponsorCode") or ""),
    )
    return web.json_response(data, status=201)
