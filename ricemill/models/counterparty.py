"""
Counterparty model — who we buy from or sell to, with running balances.
"""

from decimal import Decimal

from django.db import models
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

from ricemill.models.enums import CounterpartyRole, CustomerType


class Counterparty(models.Model):
    """
    Supplier (purchase side) or buyer (sale side).

    Balances are a denormalized aggregate maintained incrementally by
    BalanceBook in the same transaction as every invoice/payment change:

        total_pending == total_value - total_paid

    Use BalanceBook.recompute() to audit against invoices and payments.
    """

    role = models.CharField(
        max_length=20,
        choices=CounterpartyRole.choices,
        db_index=True,
        verbose_name=_('Role'),
    )
    name = models.CharField(max_length=150, verbose_name=_('Name'))
    phone = models.CharField(max_length=30, verbose_name=_('Phone'))
    address = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Address'))
    customer_type = models.CharField(
        max_length=20,
        choices=CustomerType.choices,
        default=CustomerType.RETAIL,
        verbose_name=_('Customer type'),
    )

    total_value = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Total invoiced'),
    )
    total_paid = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Total paid'),
    )
    total_pending = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Total pending'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Counterparty')
        verbose_name_plural = _('Counterparties')
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(
                fields=['role', 'phone'],
                name='unique_counterparty_phone_per_role',
            ),
        ]

    @property
    def invoiced_pending(self) -> Decimal:
        """Sum of pending over this counterparty's invoices."""
        return self.invoices.using(self._state.db).aggregate(
            t=Coalesce(Sum('pending'), Decimal('0'))
        )['t']

    @property
    def credit_balance(self) -> Decimal:
        """Standing credit from unapplied overpayments (0 when none)."""
        return self.invoiced_pending - self.total_pending

    def __str__(self) -> str:
        return f"{self.name} ({self.phone})"
