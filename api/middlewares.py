"""
API middlewares.

- error_middleware: maps errors to a small set of JSON error responses and
  never leaks internal error text
- auth_middleware: resolves the bearer credential before any handler runs
"""

from collections.abc import Awaitable, Callable

from aiohttp import web
from loguru import logger

from api.keys import CALLER_ID_KEY, RESOLVER_KEY
from downline.services.identity import bearer_token
from downline.utils.exceptions import DownlineError, is_client_error

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

# Routes reachable without a bearer token
PUBLIC_PATHS = frozenset({"/health", "/api/sponsor"})


def error_response(status: int, code: str, message: str) -> web.Response:
    """Build JSON error response."""
    return web.json_response({"error": code, "message": message}, status=status)


@web.middleware
async def error_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """Translate exceptions into stable error responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except DownlineError as e:
        if is_client_error(e):
            logger.info(
                "Request rejected",
                extra={"path": request.path, "error": e.code, "detail": str(e)},
            )
        else:
            logger.error(
                "Request failed",
                extra={
                    "path": request.path,
                    "error_type": type(e).__name__,
                    "detail": str(e),
                },
            )
        return error_response(e.status, e.code, e.public_message)
    except Exception as e:
        logger.exception(
            "Unhandled exception in request",
            extra={"path": request.path, "error_type": type(e).__name__},
        )
        return error_response(500, "internal", "Internal server error")


@web.middleware
async def auth_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """Resolve caller identity for non-public routes."""
    if request.path in PUBLIC_PATHS:
        return await handler(request)

    resolver = request.app[RESOLVER_KEY]
    token = bearer_token(request.headers.get("Authorization"))
    request[CALLER_ID_KEY] = await resolver.resolve(token)
    return await handler(request)
