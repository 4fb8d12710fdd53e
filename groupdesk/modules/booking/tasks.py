"""Celery tasks for quotation lifecycle automation."""

from __future__ import annotations

import asyncio
import logging

from celery_app import celery
from groupdesk.database.engine import async_session
from groupdesk.modules.booking.quotation_service import QuotationService

logger = logging.getLogger(__name__)


async def _expire_stale_quotations_async() -> dict:
    """Persist EXPIRED on DRAFT/SENT quotations whose validity window has passed."""
    async with async_session() as session:
        try:
            stats = await QuotationService(session).expire_stale_quotations()
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    return stats


@celery.task(name="groupdesk.modules.booking.tasks.expire_stale_quotations")
def expire_stale_quotations():
    """Expire quotations past their expiry date."""
    stats = asyncio.run(_expire_stale_quotations_async())
    logger.info("expire_stale_quotations complete: %s", stats)
    return stats
