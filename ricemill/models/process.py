"""
Conversion models — boiling/milling process, its completion and itemized loss.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from ricemill.models.enums import MissingReason, ProcessKind, ProcessStatus


class ConversionProcessQuerySet(models.QuerySet):

    def open(self):
        """Processes still accepting complete/cancel."""
        return self.filter(status=ProcessStatus.PENDING)

    def visible(self):
        """Everything except cancelled (what the floor sees)."""
        return self.exclude(status=ProcessStatus.CANCELLED)


class ConversionProcess(models.Model):
    """
    Stock sent out for boiling or milling.

    LIFECYCLE:

        ┌─────────┐   complete()   ┌───────────┐
        │ PENDING │ ─────────────► │ COMPLETED │
        └─────────┘                └───────────┘
             │
             │ cancel()            ┌───────────┐
             └───────────────────► │ CANCELLED │
                                   └───────────┘

    - create(): input variety debited by quantity
    - complete(): output variety credited by the returned quantity
    - cancel(): input variety re-credited by quantity
    - COMPLETED and CANCELLED are terminal
    """

    kind = models.CharField(
        max_length=20,
        choices=ProcessKind.choices,
        db_index=True,
        verbose_name=_('Kind'),
    )
    variety = models.ForeignKey(
        'ricemill.Variety',
        on_delete=models.PROTECT,
        related_name='processes',
        verbose_name=_('Input variety'),
    )
    quantity = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        verbose_name=_('Sent quantity (kg)'),
    )
    status = models.CharField(
        max_length=20,
        choices=ProcessStatus.choices,
        default=ProcessStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Created by'),
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Completed at'))
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Cancelled by'),
    )
    cancelled_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Cancelled at'))

    objects = ConversionProcessQuerySet.as_manager()

    class Meta:
        verbose_name = _('Conversion process')
        verbose_name_plural = _('Conversion processes')
        ordering = ['-created_at', '-pk']
        indexes = [
            models.Index(fields=['kind', 'status'], name='ricemill_proc_kind_status_idx'),
        ]

    @property
    def is_open(self) -> bool:
        return self.status == ProcessStatus.PENDING

    def __str__(self) -> str:
        return f"{self.get_kind_display()} #{self.pk}: {self.quantity}kg {self.variety.name} [{self.status}]"


class ConversionCompletion(models.Model):
    """
    What came back from a conversion process.

    Boiling: output_variety == input variety, missing_quantity = sent - returned.
    Milling: output_variety chosen by the operator, missing_quantity is None.
    """

    process = models.OneToOneField(
        'ricemill.ConversionProcess',
        on_delete=models.PROTECT,
        related_name='completion',
        verbose_name=_('Process'),
    )
    output_variety = models.ForeignKey(
        'ricemill.Variety',
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Output variety'),
    )
    returned_quantity = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        verbose_name=_('Returned quantity (kg)'),
    )
    missing_quantity = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Missing quantity (kg)'),
        help_text=_('Boiling only: sent minus returned'),
    )
    cost = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Cost'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Notes'))

    completed_at = models.DateTimeField(default=timezone.now, verbose_name=_('Completed at'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Completed by'),
    )

    class Meta:
        verbose_name = _('Conversion completion')
        verbose_name_plural = _('Conversion completions')
        ordering = ['-completed_at']

    @property
    def itemized_missing(self) -> Decimal:
        return self.missing_details.aggregate(
            t=Coalesce(Sum('quantity'), Decimal('0'))
        )['t']

    def __str__(self) -> str:
        return f"Process #{self.process_id}: {self.returned_quantity}kg returned"


class MissingQuantityDetail(models.Model):
    """
    One line of the boiling loss breakdown.

    The set for a completion is always replaced wholesale, never patched.
    """

    completion = models.ForeignKey(
        'ricemill.ConversionCompletion',
        on_delete=models.CASCADE,
        related_name='missing_details',
        verbose_name=_('Completion'),
    )
    quantity = models.DecimalField(max_digits=14, decimal_places=3, verbose_name=_('Quantity (kg)'))
    reason = models.CharField(
        max_length=30,
        choices=MissingReason.choices,
        verbose_name=_('Reason'),
    )
    description = models.TextField(blank=True, default='', verbose_name=_('Description'))
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _('Missing quantity detail')
        verbose_name_plural = _('Missing quantity details')
        ordering = ['pk']

    def __str__(self) -> str:
        return f"{self.quantity}kg {self.get_reason_display()}"
