"""
Mill queries — read-only operations.

No locking; results reflect the last committed state.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from ricemill.db import Store
from ricemill.exceptions import NotFound
from ricemill.models.adjustment import StockAdjustment
from ricemill.models.counterparty import Counterparty
from ricemill.models.invoice import Invoice, Payment
from ricemill.models.process import ConversionCompletion, ConversionProcess, MissingQuantityDetail
from ricemill.models.variety import Variety


@dataclass
class ProcessDetail:
    """A process with whatever came back from it."""

    process: ConversionProcess
    completion: ConversionCompletion | None = None
    missing_details: list[MissingQuantityDetail] = field(default_factory=list)

    @property
    def itemized_missing(self) -> Decimal:
        return sum((d.quantity for d in self.missing_details), Decimal('0'))


@dataclass
class Statement:
    """Everything invoiced to and paid by one counterparty."""

    counterparty: Counterparty
    invoices: list[Invoice]
    payments: list[Payment]

    @property
    def open_invoices(self) -> list[Invoice]:
        return [i for i in self.invoices if i.pending > 0]

    @property
    def credit_balance(self) -> Decimal:
        invoiced_pending = sum((i.pending for i in self.invoices), Decimal('0'))
        return invoiced_pending - self.counterparty.total_pending


class MillQueries:
    """Read-only query methods."""

    def __init__(self, store: Store | None = None):
        self.store = store or Store()

    def variety(self, variety_id) -> Variety:
        try:
            return self.store.objects(Variety).get(pk=variety_id)
        except Variety.DoesNotExist:
            raise NotFound('VARIETY_NOT_FOUND', variety_id=variety_id) from None

    def varieties(self, category=None):
        qs = self.store.objects(Variety).all()
        if category:
            qs = qs.filter(category=category)
        return qs

    def low_stock(self, category=None):
        """Varieties at or below their minimum stock level."""
        return self.varieties(category).low_stock()

    def history(self, variety_id):
        """Adjustments for a variety, oldest first."""
        self.variety(variety_id)
        return self.store.objects(StockAdjustment).filter(
            variety_id=variety_id
        ).order_by('timestamp', 'pk')

    def processes(self, kind=None, status=None):
        """Processes newest first, cancelled ones only when asked for by status."""
        qs = self.store.objects(ConversionProcess).select_related('variety')
        if status:
            qs = qs.filter(status=status)
        else:
            qs = qs.visible()
        if kind:
            qs = qs.filter(kind=kind)
        return qs

    def process_detail(self, process_id) -> ProcessDetail:
        """
        A process, its completion and its loss breakdown.

        Cancelled processes are not shown.
        """
        try:
            process = self.store.objects(ConversionProcess).visible().select_related(
                'variety'
            ).get(pk=process_id)
        except ConversionProcess.DoesNotExist:
            raise NotFound('PROCESS_NOT_FOUND', process_id=process_id) from None

        completion = self.store.objects(ConversionCompletion).select_related(
            'output_variety'
        ).filter(process=process).first()
        details = []
        if completion is not None:
            details = list(self.store.objects(MissingQuantityDetail).filter(completion=completion))
        return ProcessDetail(process=process, completion=completion, missing_details=details)

    def counterparty(self, counterparty_id) -> Counterparty:
        try:
            return self.store.objects(Counterparty).get(pk=counterparty_id)
        except Counterparty.DoesNotExist:
            raise NotFound('COUNTERPARTY_NOT_FOUND', counterparty_id=counterparty_id) from None

    def statement(self, counterparty_id) -> Statement:
        counterparty = self.counterparty(counterparty_id)
        invoices = list(
            self.store.objects(Invoice).filter(counterparty=counterparty)
            .select_related('variety').order_by('invoiced_at', 'pk')
        )
        payments = list(
            self.store.objects(Payment).filter(counterparty=counterparty).order_by('paid_at', 'pk')
        )
        return Statement(counterparty=counterparty, invoices=invoices, payments=payments)
