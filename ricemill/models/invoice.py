"""
Invoice and Payment models — receivables/payables with paid/pending split.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from ricemill.models.enums import InvoiceKind, PaymentMethod


class InvoiceQuerySet(models.QuerySet):

    def open(self):
        """Invoices with something left to pay, oldest first."""
        return self.filter(pending__gt=0).order_by('invoiced_at', 'pk')


class Invoice(models.Model):
    """
    Purchase or sale of one variety with one counterparty.

    Same shape for both kinds; only the stock sign and the counterparty
    role differ (see ricemill.rules.INVOICE_RULES).

    Invariant, checked on every save:
        paid + pending == total, paid >= 0, pending >= 0
    """

    kind = models.CharField(
        max_length=20,
        choices=InvoiceKind.choices,
        db_index=True,
        verbose_name=_('Kind'),
    )
    counterparty = models.ForeignKey(
        'ricemill.Counterparty',
        on_delete=models.PROTECT,
        related_name='invoices',
        verbose_name=_('Counterparty'),
    )
    variety = models.ForeignKey(
        'ricemill.Variety',
        on_delete=models.PROTECT,
        related_name='invoices',
        verbose_name=_('Variety'),
    )

    quantity = models.DecimalField(max_digits=14, decimal_places=3, verbose_name=_('Quantity (kg)'))
    unit_price = models.DecimalField(max_digits=14, decimal_places=4, verbose_name=_('Unit price'))
    total = models.DecimalField(max_digits=14, decimal_places=2, verbose_name=_('Total'))
    paid = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal('0'), verbose_name=_('Paid'),
    )
    pending = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal('0'), verbose_name=_('Pending'),
    )

    invoiced_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Invoice date'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('User'),
    )

    objects = InvoiceQuerySet.as_manager()

    class Meta:
        verbose_name = _('Invoice')
        verbose_name_plural = _('Invoices')
        ordering = ['-invoiced_at', '-pk']
        indexes = [
            models.Index(fields=['counterparty', 'invoiced_at'], name='ricemill_inv_party_date_idx'),
        ]

    def save(self, *args, **kwargs):
        if self.paid < 0 or self.pending < 0:
            raise ValueError(f"Invoice amounts cannot be negative (paid={self.paid}, pending={self.pending})")
        if self.paid + self.pending != self.total:
            raise ValueError(
                f"Invoice out of balance: {self.paid} + {self.pending} != {self.total}"
            )
        super().save(*args, **kwargs)

    @property
    def is_settled(self) -> bool:
        return self.pending == 0

    def __str__(self) -> str:
        return f"{self.get_kind_display()} #{self.pk}: {self.quantity}kg {self.variety.name} ({self.pending} pending)"


class Payment(models.Model):
    """
    Money received from a buyer or paid to a supplier.

    invoice=None marks a counterparty-level payment (unallocated, or the
    standing credit left over from an overpayment). Either way the sum of
    a counterparty's payments equals its total_paid.
    """

    counterparty = models.ForeignKey(
        'ricemill.Counterparty',
        on_delete=models.PROTECT,
        related_name='payments',
        verbose_name=_('Counterparty'),
    )
    invoice = models.ForeignKey(
        'ricemill.Invoice',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='payments',
        verbose_name=_('Invoice'),
        help_text=_('Empty = counterparty-level payment'),
    )
    amount = models.DecimalField(max_digits=14, decimal_places=2, verbose_name=_('Amount'))
    method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH,
        verbose_name=_('Method'),
    )
    reference = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Reference number'))
    notes = models.TextField(blank=True, default='', verbose_name=_('Notes'))

    paid_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Payment date'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('User'),
    )

    class Meta:
        verbose_name = _('Payment')
        verbose_name_plural = _('Payments')
        ordering = ['-paid_at', '-pk']

    @property
    def is_allocated(self) -> bool:
        return self.invoice_id is not None

    def __str__(self) -> str:
        target = f"invoice #{self.invoice_id}" if self.invoice_id else "account"
        return f"{self.amount} ({self.method}) → {target}"
