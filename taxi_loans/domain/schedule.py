"""Projected repayment schedule for an outstanding loan balance"""

from datetime import date, timedelta
from typing import List
from taxi_loans.domain.models import ScheduledInstallment


def generate_repayment_schedule(
    balance_cents: int,
    installment_cents: int,
    first_due_date: date,
    interval_days: int = 7,
) -> List[ScheduledInstallment]:
    """
    Project the remaining weekly payments for a loan.

    Requirements:
    - One installment per interval, starting at first_due_date
    - Every installment is the loan's weekly amount except the last
    - Last installment is whatever balance remains (never more than the weekly amount)

    Args:
        balance_cents: Outstanding balance to schedule
        installment_cents: Weekly installment fixed at funding
        first_due_date: Next payment due date
        interval_days: Days between payments (default 7)

    Returns:
        List of ScheduledInstallment objects, empty when nothing is owed

    Example:
        $1400.00 at $116.67 → 11 × $116.67, then $116.63
        140000 - 11 * 11667 = 11663
    """
    if balance_cents <= 0 or installment_cents <= 0:
        return []

    schedule = []
    remaining = balance_cents
    number = 1
    while remaining > 0:
        amount = min(installment_cents, remaining)
        remaining -= amount
        schedule.append(
            ScheduledInstallment(
                number=number,
                due_date=first_due_date + timedelta(days=(number - 1) * interval_days),
                amount_cents=amount,
                balance_after_cents=remaining,
            )
        )
        number += 1

    return schedule
