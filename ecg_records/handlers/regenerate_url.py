"""API Handler: GET /api/doctor/regenerate-url?key=<s3_key>

Re-signs a URL for a specific S3 key once the original one has expired.
The key is probed first, so a URL is never handed out for a missing object.
"""

import asyncio
from typing import Any, Dict

from .base import HandlerContext, handle_api_event
from .responses import success_response


async def regenerate_url(ctx: HandlerContext) -> Dict[str, Any]:
    key = ctx.request.require("key")
    ttl = ctx.settings.PRESIGNED_URL_TTL
    url = await ctx.breaker.call(lambda: ctx.service.get_url_for_key(key, ttl))
    return success_response({"url": url, "key": key, "expiresIn": ttl})


async def async_lambda_handler(event, context, **overrides):
    return await handle_api_event(event, context, regenerate_url, **overrides)


def lambda_handler(event, context):
    return asyncio.run(async_lambda_handler(event, context))
