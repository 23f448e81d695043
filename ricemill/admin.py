"""
Ricemill Admin.

Provides read-only views for production debugging:
- Variety: list + edit (name, category, min level); stock is read-only
- StockAdjustment: read-only audit trail (timestamp, delta, reason)
- Counterparty: contact fields editable, balances read-only
- Invoice / Payment: read-only
- ConversionProcess: read-only with "cancel" action, completion inline
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from ricemill.exceptions import MillError
from ricemill.models import (
    ConversionCompletion,
    ConversionProcess,
    Counterparty,
    Invoice,
    MissingQuantityDetail,
    Payment,
    StockAdjustment,
    Variety,
)

logger = logging.getLogger(__name__)


class ReadOnlyAdminMixin:
    """Nothing can be added, changed or deleted; rows only change via Mill."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# VARIETY ADMIN
# =========================================================================

@admin.register(Variety)
class VarietyAdmin(admin.ModelAdmin):
    """Variety admin — editable, except for the ledger-backed stock."""

    list_display = ['name', 'category', 'current_stock', 'min_stock_level', 'stock_status_display']
    list_filter = ['category']
    search_fields = ['name']
    readonly_fields = ['current_stock', 'created_by', 'created_at', 'updated_at']
    actions = ['recalculate_stock']

    def has_add_permission(self, request):
        # New varieties must go through Mill.register_variety (opening stock is an adjustment)
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description=_('Stock status'))
    def stock_status_display(self, obj):
        return obj.stock_status

    @admin.action(description=_('Recalculate stock from ledger'))
    def recalculate_stock(self, request, queryset):
        from ricemill.service import Mill

        mill = Mill()
        for variety in queryset:
            mill.recalculate_stock(variety.pk)
        self.message_user(request, _('{count} variety(ies) recalculated.').format(count=queryset.count()))


# =========================================================================
# STOCK ADJUSTMENT ADMIN (read-only audit trail)
# =========================================================================

@admin.register(StockAdjustment)
class StockAdjustmentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """StockAdjustment admin — read-only. Immutable audit trail."""

    list_display = ['timestamp', 'variety', 'delta', 'previous_stock', 'new_stock', 'reason', 'user']
    list_filter = ['variety', 'timestamp']
    search_fields = ['reason', 'variety__name']
    readonly_fields = ['variety', 'delta', 'previous_stock', 'new_stock', 'reference_type',
                       'reference_id', 'reason', 'timestamp', 'user']
    date_hierarchy = 'timestamp'


# =========================================================================
# COUNTERPARTY ADMIN
# =========================================================================

class InvoiceInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = Invoice
    fields = ['invoiced_at', 'kind', 'variety', 'quantity', 'total', 'paid', 'pending']
    readonly_fields = fields
    extra = 0


@admin.register(Counterparty)
class CounterpartyAdmin(admin.ModelAdmin):
    """Counterparty admin — contact details editable, balances read-only."""

    list_display = ['name', 'phone', 'role', 'customer_type', 'total_value', 'total_paid', 'total_pending']
    list_filter = ['role', 'customer_type']
    search_fields = ['name', 'phone']
    readonly_fields = ['role', 'total_value', 'total_paid', 'total_pending', 'created_at', 'updated_at']
    inlines = [InvoiceInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# INVOICE / PAYMENT ADMIN (read-only)
# =========================================================================

@admin.register(Invoice)
class InvoiceAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['id', 'invoiced_at', 'kind', 'counterparty', 'variety', 'quantity',
                    'unit_price', 'total', 'paid', 'pending']
    list_filter = ['kind', 'invoiced_at']
    search_fields = ['counterparty__name', 'counterparty__phone']
    date_hierarchy = 'invoiced_at'


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['paid_at', 'counterparty', 'invoice', 'amount', 'method', 'reference']
    list_filter = ['method', 'paid_at']
    search_fields = ['counterparty__name', 'reference']
    date_hierarchy = 'paid_at'


# =========================================================================
# CONVERSION PROCESS ADMIN (read-only with cancel action)
# =========================================================================

class MissingQuantityDetailInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = MissingQuantityDetail
    fields = ['quantity', 'reason', 'description']
    readonly_fields = fields
    extra = 0


@admin.register(ConversionCompletion)
class ConversionCompletionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['process', 'output_variety', 'returned_quantity', 'missing_quantity',
                    'cost', 'completed_at']
    inlines = [MissingQuantityDetailInline]


@admin.register(ConversionProcess)
class ConversionProcessAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """ConversionProcess admin — read-only with "cancel" action."""

    list_display = ['id', 'kind', 'variety', 'quantity', 'status', 'created_at', 'completed_at']
    list_filter = ['kind', 'status']
    search_fields = ['variety__name']
    actions = ['cancel_processes']

    @admin.action(description=_('Cancel selected pending processes'))
    def cancel_processes(self, request, queryset):
        from ricemill.service import Mill

        mill = Mill()
        count = 0
        for process in queryset.open():
            try:
                mill.cancel_process(process.pk, user=request.user)
                count += 1
            except MillError as exc:
                logger.warning("cancel_processes: failed to cancel %s: %s", process.pk, exc)

        self.message_user(request, _('{count} process(es) cancelled.').format(count=count))
