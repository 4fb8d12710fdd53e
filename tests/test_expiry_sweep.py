"""Tests for the periodic quotation expiry task."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from groupdesk.models.enums import GroupRequestStatus, QuotationStatus
from groupdesk.models.event_outbox import EventOutbox
from groupdesk.models.quotation import Quotation
from groupdesk.modules.booking import tasks
from groupdesk.modules.booking.quotation_service import QuotationService
from tests.factories import make_group_request, make_quotation


@pytest.mark.asyncio
async def test_sweep_persists_expired_status(async_test_engine):
    factory = async_sessionmaker(async_test_engine, class_=AsyncSession, expire_on_commit=False)
    now = datetime.now(UTC)
    request = make_group_request(GroupRequestStatus.QUOTED)
    stale = make_quotation(QuotationStatus.SENT, request.id, created=now - timedelta(days=3))
    live = make_quotation(QuotationStatus.DRAFT, request.id, created=now - timedelta(hours=1))
    async with factory() as session:
        session.add_all([request, stale, live])
        await session.commit()

    with patch.object(tasks, "async_session", factory):
        stats = await tasks._expire_stale_quotations_async()

    assert stats == {"checked": 1, "expired": 1, "errors": 0}
    async with factory() as session:
        statuses = dict(
            (await session.execute(select(Quotation.id, Quotation.status))).all()
        )
        events = (await session.execute(select(EventOutbox.event_type))).scalars().all()
    assert statuses[stale.id] == QuotationStatus.EXPIRED
    assert statuses[live.id] == QuotationStatus.DRAFT
    assert events == ["quotation.expired"]


def test_task_runs_async_sweep():
    stats = {"checked": 0, "expired": 0, "errors": 0}
    with patch.object(tasks, "_expire_stale_quotations_async", AsyncMock(return_value=stats)):
        assert tasks.expire_stale_quotations() == stats


@pytest.mark.asyncio
async def test_failed_row_leaves_no_orphan_event(async_test_engine):
    factory = async_sessionmaker(async_test_engine, class_=AsyncSession, expire_on_commit=False)
    now = datetime.now(UTC)
    request = make_group_request(GroupRequestStatus.QUOTED)
    broken = make_quotation(QuotationStatus.SENT, request.id, created=now - timedelta(days=4))
    stale = make_quotation(QuotationStatus.SENT, request.id, created=now - timedelta(days=3))
    async with factory() as session:
        session.add_all([request, broken, stale])
        await session.commit()

    publish = QuotationService._publish

    async def publish_then_fail(self, event_type, quotation, payload):
        await publish(self, event_type, quotation, payload)
        if quotation.id == broken.id:
            raise RuntimeError("relay down")

    with (
        patch.object(tasks, "async_session", factory),
        patch.object(QuotationService, "_publish", publish_then_fail),
    ):
        stats = await tasks._expire_stale_quotations_async()

    assert stats == {"checked": 2, "expired": 1, "errors": 1}
    async with factory() as session:
        statuses = dict(
            (await session.execute(select(Quotation.id, Quotation.status))).all()
        )
        events = (await session.execute(select(EventOutbox.aggregate_id))).scalars().all()
    assert statuses[broken.id] == QuotationStatus.SENT
    assert statuses[stale.id] == QuotationStatus.EXPIRED
    assert events == [str(stale.id)]
