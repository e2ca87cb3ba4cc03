"""API Handler: GET /api/report/status?id=<record_id>

Reports which of a record's objects exist without signing anything.
"""

import asyncio
from typing import Any, Dict

from .base import HandlerContext, handle_api_event
from .responses import success_response


async def get_record_status(ctx: HandlerContext) -> Dict[str, Any]:
    record_id = ctx.request.require("id")
    existence = await ctx.breaker.call(lambda: ctx.service.check_exists(record_id))
    return success_response({"recordId": record_id, **existence.to_dict()})


async def async_lambda_handler(event, context, **overrides):
    return await handle_api_event(event, context, get_record_status, **overrides)


def lambda_handler(event, context):
    return asyncio.run(async_lambda_handler(event, context))
