"""
Variety model — a rice type tracked as one stock-bearing unit.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from ricemill.models.enums import VarietyCategory


class VarietyQuerySet(models.QuerySet):
    """Convenience filters for varieties."""

    def low_stock(self):
        """Varieties at or below their minimum stock level."""
        return self.filter(current_stock__lte=models.F('min_stock_level'))


class Variety(models.Model):
    """
    A rice variety and its current stock (kg).

    Rules:
    - current_stock is a cache of the adjustment ledger
    - It changes ONLY through StockLedger.adjust(), which writes a
      StockAdjustment in the same transaction
    - A new variety starts at zero; opening stock is an adjustment too
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name=_('Name'),
    )
    category = models.CharField(
        max_length=20,
        choices=VarietyCategory.choices,
        default=VarietyCategory.PADDY,
        db_index=True,
        verbose_name=_('Category'),
    )
    current_stock = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Current stock (kg)'),
        help_text=_('Ledger cache. May be negative when stock is sent before weigh-in.'),
    )
    min_stock_level = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Minimum stock level (kg)'),
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Created by'),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = VarietyQuerySet.as_manager()

    class Meta:
        verbose_name = _('Variety')
        verbose_name_plural = _('Varieties')
        ordering = ['name']

    @property
    def stock_status(self) -> str:
        return 'low' if self.current_stock <= self.min_stock_level else 'ok'

    def __str__(self) -> str:
        return f"{self.name} ({self.current_stock}kg)"
