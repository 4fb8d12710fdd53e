"""Payments: listing with the OVERDUE view, mark paid, proof attachments."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from groupdesk.clock import Clock
from groupdesk.config import settings
from groupdesk.exceptions import AlreadyPaidException, NotFoundException, PayloadTooLargeException
from groupdesk.models.enums import PaymentStatus, PaymentViewStatus
from groupdesk.models.group_request import GroupRequest
from groupdesk.models.payment import Payment
from groupdesk.models.payment_attachment import PaymentAttachment
from groupdesk.modules.auth.auth import AuthenticatedUser, require_role
from groupdesk.modules.booking.attachment_storage import LocalAttachmentStorage, safe_filename
from groupdesk.modules.booking.constants import EVENT_PAYMENT_PAID, ROLE_GATES
from groupdesk.modules.events.outbox_service import OutboxService

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(
        self,
        db: AsyncSession,
        clock: Clock | None = None,
        storage: LocalAttachmentStorage | None = None,
    ):
        self.db = db
        self.clock = clock or Clock()
        self.storage = storage or LocalAttachmentStorage()

    async def get_payment(self, payment_id: uuid.UUID) -> Payment:
        result = await self.db.execute(select(Payment).where(Payment.id == payment_id))
        payment = result.scalar_one_or_none()
        if payment is None:
            raise NotFoundException(f"Payment {payment_id} not found")
        return payment

    async def list_payments(
        self,
        status: PaymentViewStatus | None = None,
        group_request_id: uuid.UUID | None = None,
        page: int = 1,
        size: int = 20,
    ) -> tuple[list[Payment], int]:
        """List payments filtered by display status (OVERDUE is derived from due_date)."""
        today = self.clock.now().date()
        filters = []
        if group_request_id is not None:
            filters.append(Payment.group_request_id == group_request_id)
        if status == PaymentViewStatus.PAID:
            filters.append(Payment.status == PaymentStatus.PAID)
        elif status == PaymentViewStatus.OVERDUE:
            filters += [Payment.status == PaymentStatus.PENDING, Payment.due_date < today]
        elif status == PaymentViewStatus.PENDING:
            filters += [Payment.status == PaymentStatus.PENDING, Payment.due_date >= today]

        count_query = select(func.count()).select_from(Payment)
        query = select(Payment)
        if filters:
            count_query = count_query.where(*filters)
            query = query.where(*filters)

        total = (await self.db.execute(count_query)).scalar() or 0
        query = query.order_by(Payment.due_date.asc()).offset((page - 1) * size).limit(size)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def mark_paid(
        self, caller: AuthenticatedUser, payment_id: uuid.UUID, reference: str | None = None
    ) -> Payment:
        require_role(caller, ROLE_GATES["mark_payment_paid"], "mark_payment_paid")

        # Lock order matches the quotation operations: request first, then payment
        result = await self.db.execute(
            select(GroupRequest)
            .join(Payment, Payment.group_request_id == GroupRequest.id)
            .where(Payment.id == payment_id)
            .with_for_update(of=GroupRequest)
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundException(f"Payment {payment_id} not found")

        result = await self.db.execute(
            select(Payment)
            .where(Payment.id == payment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        payment = result.scalar_one_or_none()
        if payment is None:
            raise NotFoundException(f"Payment {payment_id} not found")
        if payment.status == PaymentStatus.PAID:
            raise AlreadyPaidException(f"Payment {payment_id} is already PAID")

        payment.status = PaymentStatus.PAID
        payment.reference = (reference or "").strip() or None
        payment.paid_at = self.clock.now()
        payment.paid_by = caller.username
        await self.db.flush()

        outbox = OutboxService(self.db)
        await outbox.publish_event(
            event_type=EVENT_PAYMENT_PAID,
            aggregate_type="payment",
            aggregate_id=str(payment.id),
            payload={
                "payment_id": str(payment.id),
                "group_request_id": str(payment.group_request_id),
                "amount": str(payment.amount),
                "currency": payment.currency,
                "reference": payment.reference,
                "paid_by": caller.username,
            },
        )
        logger.info("Payment %s marked PAID by %s (ref=%s)", payment_id, caller.username, payment.reference)
        return payment

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    async def upload_attachment(
        self,
        caller: AuthenticatedUser,
        payment_id: uuid.UUID,
        filename: str | None,
        content_type: str | None,
        data: bytes,
    ) -> PaymentAttachment:
        require_role(caller, ROLE_GATES["upload_payment_attachment"], "upload_payment_attachment")
        payment = await self.get_payment(payment_id)
        if len(data) > settings.attachment_max_bytes:
            raise PayloadTooLargeException(
                f"Attachment exceeds {settings.attachment_max_bytes} bytes"
            )

        attachment_id = uuid.uuid4()
        name = safe_filename(filename)
        storage_key = f"{payment.id}/{attachment_id.hex}_{name}"
        self.storage.save(storage_key, data)

        attachment = PaymentAttachment(
            id=attachment_id,
            payment_id=payment.id,
            filename=name,
            content_type=content_type or "application/octet-stream",
            size=len(data),
            storage_key=storage_key,
            uploaded_by=caller.username,
            uploaded_at=self.clock.now(),
        )
        self.db.add(attachment)
        await self.db.flush()
        logger.info("Attachment %s uploaded for payment %s", attachment_id, payment_id)
        return attachment

    async def list_attachments(self, payment_id: uuid.UUID) -> list[PaymentAttachment]:
        await self.get_payment(payment_id)
        result = await self.db.execute(
            select(PaymentAttachment)
            .where(PaymentAttachment.payment_id == payment_id)
            .order_by(PaymentAttachment.uploaded_at.desc())
        )
        return list(result.scalars().all())

    async def get_attachment_content(
        self, attachment_id: uuid.UUID
    ) -> tuple[PaymentAttachment, bytes]:
        result = await self.db.execute(
            select(PaymentAttachment).where(PaymentAttachment.id == attachment_id)
        )
        attachment = result.scalar_one_or_none()
        if attachment is None:
            raise NotFoundException(f"Attachment {attachment_id} not found")
        return attachment, self.storage.read(attachment.storage_key)
