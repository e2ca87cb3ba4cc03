"""API Handler: GET /api/report?id=<record_id>

Generates fresh pre-signed URLs for one ECG record. Every request signs
new URLs; nothing is cached or stored.
"""

import asyncio
from typing import Any, Dict

import structlog

from ..types import Logger
from .base import HandlerContext, handle_api_event
from .responses import success_response

logger: Logger = structlog.get_logger(__name__)


async def get_report_urls(ctx: HandlerContext) -> Dict[str, Any]:
    record_id = ctx.request.require("id")
    ttl = ctx.settings.PRESIGNED_URL_TTL

    urls = await ctx.breaker.call(lambda: ctx.service.get_urls(record_id, ttl))

    if urls.pdf_url is None:
        logger.warning("PDF file missing, returning JSON URL only", record_id=record_id)

    logger.info(
        "Generated fresh presigned URLs",
        record_id=record_id,
        expires_in=urls.expires_in,
        has_pdf=urls.pdf_url is not None,
    )
    return success_response(urls.to_dict())


async def async_lambda_handler(event, context, **overrides):
    return await handle_api_event(event, context, get_report_urls, **overrides)


def lambda_handler(event, context):
    """Main Lambda handler entry point."""
    return asyncio.run(async_lambda_handler(event, context))
