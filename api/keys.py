"""Typed application and request keys."""

from aiohttp import web

from downline.services.downline_service import DownlineService
from downline.services.identity import IdentityResolver

SERVICE_KEY = web.AppKey("downline_service", DownlineService)
RESOLVER_KEY = web.AppKey("identity_resolver", IdentityResolver)

# Request-scoped caller id set by the auth middleware
CALLER_ID_KEY = "caller_id"
