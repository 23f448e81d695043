"""
Counterparty balances — incremental maintenance and audit.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db.models import Sum
from django.db.models.functions import Coalesce

from ricemill.db import Store
from ricemill.exceptions import NotFound
from ricemill.models.counterparty import Counterparty
from ricemill.models.invoice import Invoice, Payment
from ricemill.quantities import MONEY_PLACES, ZERO, check_range

logger = logging.getLogger('ricemill')


@dataclass(frozen=True)
class BalanceReport:
    """Cached aggregate next to what the invoices and payments say."""

    counterparty_id: int
    total_value: Decimal
    total_paid: Decimal
    total_pending: Decimal
    invoiced_value: Decimal
    paid_value: Decimal
    invoiced_pending: Decimal

    @property
    def expected_pending(self) -> Decimal:
        return self.invoiced_value - self.paid_value

    @property
    def is_consistent(self) -> bool:
        return (
            self.total_value == self.invoiced_value
            and self.total_paid == self.paid_value
            and self.total_pending == self.expected_pending
        )

    @property
    def credit_balance(self) -> Decimal:
        """Payments received beyond what the invoices could absorb."""
        return self.invoiced_pending - self.expected_pending


class BalanceBook:
    """Maintains Counterparty.total_value / total_paid / total_pending."""

    def __init__(self, store: Store | None = None):
        self.store = store or Store()

    def lock(self, counterparty_id) -> Counterparty:
        try:
            return self.store.locked(Counterparty).get(pk=counterparty_id)
        except Counterparty.DoesNotExist:
            raise NotFound('COUNTERPARTY_NOT_FOUND', counterparty_id=counterparty_id) from None

    def apply(self, counterparty: Counterparty, value=ZERO, paid=ZERO, pending=ZERO) -> Counterparty:
        """
        Add the given deltas to a counterparty's running totals.

        The counterparty must already be locked by the caller's transaction.
        """
        if value - paid != pending:
            raise ValueError(
                f"Balance deltas out of step: value={value} paid={paid} pending={pending}"
            )
        counterparty.total_value = check_range(counterparty.total_value + value, MONEY_PLACES, 'total_value')
        counterparty.total_paid = check_range(counterparty.total_paid + paid, MONEY_PLACES, 'total_paid')
        counterparty.total_pending += pending
        counterparty.save(
            using=self.store.alias,
            update_fields=['total_value', 'total_paid', 'total_pending', 'updated_at'],
        )
        return counterparty

    def report(self, counterparty_id) -> BalanceReport:
        try:
            counterparty = self.store.objects(Counterparty).get(pk=counterparty_id)
        except Counterparty.DoesNotExist:
            raise NotFound('COUNTERPARTY_NOT_FOUND', counterparty_id=counterparty_id) from None
        return self._report(counterparty)

    def recompute(self, counterparty_id, fix: bool = False) -> BalanceReport:
        """
        Audit a counterparty's aggregate against its invoices and payments.

        With fix=True a drifted aggregate is overwritten with the recomputed
        values. Returns the report taken before any fix.
        """
        with self.store.atomic():
            counterparty = self.lock(counterparty_id)
            report = self._report(counterparty)

            if not report.is_consistent:
                logger.warning(
                    f"Counterparty {counterparty.pk} balance drift: "
                    f"value {report.total_value} vs {report.invoiced_value}, "
                    f"paid {report.total_paid} vs {report.paid_value}"
                )
                if fix:
                    counterparty.total_value = report.invoiced_value
                    counterparty.total_paid = report.paid_value
                    counterparty.total_pending = report.expected_pending
                    counterparty.save(
                        using=self.store.alias,
                        update_fields=['total_value', 'total_paid', 'total_pending', 'updated_at'],
                    )
            return report

    def _report(self, counterparty: Counterparty) -> BalanceReport:
        invoices = self.store.objects(Invoice).filter(counterparty=counterparty).aggregate(
            value=Coalesce(Sum('total'), Decimal('0')),
            pending=Coalesce(Sum('pending'), Decimal('0')),
        )
        paid = self.store.objects(Payment).filter(counterparty=counterparty).aggregate(
            t=Coalesce(Sum('amount'), Decimal('0'))
        )['t']
        return BalanceReport(
            counterparty_id=counterparty.pk,
            total_value=counterparty.total_value,
            total_paid=counterparty.total_paid,
            total_pending=counterparty.total_pending,
            invoiced_value=invoices['value'],
            paid_value=paid,
            invoiced_pending=invoices['pending'],
        )
