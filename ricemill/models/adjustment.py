"""
StockAdjustment model — Immutable ledger of stock changes.
"""

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class StockAdjustment(models.Model):
    """
    Immutable record of a stock change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new adjustments with inverse delta
    - new_stock == previous_stock + delta

    Written only by StockLedger.adjust(), which also moves
    Variety.current_stock to new_stock in the same transaction.
    """

    variety = models.ForeignKey(
        'ricemill.Variety',
        on_delete=models.PROTECT,
        related_name='adjustments',
        verbose_name=_('Variety'),
    )

    delta = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        verbose_name=_('Delta (kg)'),
        help_text=_('Positive = in, Negative = out'),
    )
    previous_stock = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        verbose_name=_('Previous stock (kg)'),
    )
    new_stock = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        verbose_name=_('New stock (kg)'),
    )

    # What caused it (invoice, conversion process...)
    reference_type = models.ForeignKey(
        ContentType,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Reference type'),
    )
    reference_id = models.PositiveIntegerField(null=True, blank=True, verbose_name=_('Reference ID'))
    reference = GenericForeignKey('reference_type', 'reference_id')

    reason = models.CharField(
        max_length=255,
        verbose_name=_('Reason'),
        help_text=_('Required. E.g. "Sent 100kg for boiling"'),
    )

    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Timestamp'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('User'),
    )

    class Meta:
        verbose_name = _('Stock adjustment')
        verbose_name_plural = _('Stock adjustments')
        ordering = ['timestamp', 'pk']
        indexes = [
            models.Index(fields=['variety', 'timestamp'], name='ricemill_adj_variety_ts_idx'),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError(
                "Stock adjustments are immutable. "
                "To correct one, record a new adjustment with the inverse delta."
            )
        if not self.reason:
            raise ValueError("Reason is required")
        if self.previous_stock + self.delta != self.new_stock:
            raise ValueError(
                f"Inconsistent adjustment: {self.previous_stock} + {self.delta} != {self.new_stock}"
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError(
            "Stock adjustments are immutable. "
            "To reverse one, record a new adjustment with the inverse delta."
        )

    def __str__(self) -> str:
        signal = '+' if self.delta > 0 else ''
        return f"{signal}{self.delta} | {self.reason}"
