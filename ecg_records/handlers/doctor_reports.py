"""API Handler: GET /api/doctor/reports

Lists PDF ECG reports for doctors, each with a fresh presigned URL.
"""

import asyncio
from typing import Any, Dict

import structlog

from ..types import Logger
from .base import HandlerContext, handle_api_event
from .responses import success_response

logger: Logger = structlog.get_logger(__name__)


async def list_doctor_reports(ctx: HandlerContext) -> Dict[str, Any]:
    ttl = ctx.settings.PRESIGNED_URL_TTL
    reports = await ctx.breaker.call(lambda: ctx.service.list_reports(ttl))

    logger.info("Doctor reports listed", count=len(reports))
    return success_response({
        "reports": [report.to_dict() for report in reports],
        "total": len(reports),
        "expiresIn": ttl,
    })


async def async_lambda_handler(event, context, **overrides):
    return await handle_api_event(event, context, list_doctor_reports, **overrides)


def lambda_handler(event, context):
    return asyncio.run(async_lambda_handler(event, context))
