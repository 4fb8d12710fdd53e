"""Payment schedule policy: installments created when a quotation is accepted."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_DOWN, Decimal

CENT = Decimal("0.01")


@dataclass(frozen=True)
class PlannedInstallment:
    installment_number: int
    amount: Decimal
    currency: str
    due_date: date


def build_payment_schedule(
    total: Decimal,
    currency: str,
    accepted_at: datetime,
    installments: int = 1,
    first_due_days: int = 7,
    interval_days: int = 14,
) -> list[PlannedInstallment]:
    """Split ``total`` into equal installments; the last one absorbs rounding.

    Always returns at least one installment.
    """
    installments = max(1, installments)
    total = Decimal(total).quantize(CENT)
    share = (total / installments).quantize(CENT, rounding=ROUND_DOWN)
    start = accepted_at.date()

    schedule: list[PlannedInstallment] = []
    allocated = Decimal("0.00")
    for i in range(installments):
        amount = total - allocated if i == installments - 1 else share
        allocated += amount
        schedule.append(
            PlannedInstallment(
                installment_number=i + 1,
                amount=amount,
                currency=currency,
                due_date=start + timedelta(days=first_due_days + i * interval_days),
            )
        )
    return schedule
