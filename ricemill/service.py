"""
Mill Service — The single public interface for all mill operations.

Usage:
    from ricemill import Mill, MillError

    mill = Mill()                      # default database
    mill = Mill(Store('warehouse'))    # explicit store

    mill.create_invoice('purchase', CounterpartyRef(phone='0771', name='Kamal'),
                        paddy.pk, Decimal('500'), Decimal('95'))
    process = mill.create_process('boiling', paddy.pk, Decimal('100'))
    mill.complete_process(process.pk, Decimal('92'))
"""

from decimal import Decimal

from ricemill.db import Store
from ricemill.models.enums import CustomerType, VarietyCategory
from ricemill.services.alerts import check_low_stock
from ricemill.services.balances import BalanceBook, BalanceReport
from ricemill.services.invoices import CounterpartyRef, InvoiceRecorder
from ricemill.services.ledger import StockLedger
from ricemill.services.payments import AllocationResult, PaymentAllocator, PaymentMeta
from ricemill.services.processes import ConversionProcesses
from ricemill.services.queries import MillQueries, ProcessDetail, Statement


class Mill:
    """
    Single interface for all mill operations.

    Owns one Store and wires every component to it, so a whole
    operation (ledger rows, invoice, payments, aggregates) commits or
    rolls back together.

    IMPORTANT: All state-changing methods run in one atomic transaction
    with row locks. Wrap a call in retrying() to retry TransactionFailure.
    """

    def __init__(self, store: Store | None = None):
        self.store = store or Store()
        self.ledger = StockLedger(self.store)
        self.balances = BalanceBook(self.store)
        self.invoices = InvoiceRecorder(self.store, self.ledger, self.balances)
        self.payments = PaymentAllocator(self.store, self.balances)
        self.processes = ConversionProcesses(self.store, self.ledger)
        self.queries = MillQueries(self.store)

    def __repr__(self) -> str:
        return f"Mill({self.store!r})"

    def retrying(self, operation, *args, **kwargs):
        """Run ``operation`` with the store's TransactionFailure retry loop."""
        return self.store.retrying(operation, *args, **kwargs)

    # ══════════════════════════════════════════════════════════════
    # STOCK
    # ══════════════════════════════════════════════════════════════

    def register_variety(self, name, category=VarietyCategory.PADDY,
                         min_stock_level=Decimal('0'), opening_stock=Decimal('0'), user=None):
        return self.ledger.register_variety(
            name, category=category, min_stock_level=min_stock_level,
            opening_stock=opening_stock, user=user,
        )

    def set_min_stock_level(self, variety_id, level):
        return self.ledger.set_min_stock_level(variety_id, level)

    def adjust_stock(self, variety_id, delta, notes='', user=None):
        """
        Manual stock correction.

        Returns:
            StockAdjustment with previous_stock / new_stock

        Raises:
            NotFound, ValidationError, InsufficientStock (strict mode only)
        """
        return self.ledger.adjust(variety_id, delta, notes or 'Manual adjustment', user=user)

    def recalculate_stock(self, variety_id) -> Decimal:
        return self.ledger.recalculate(variety_id)

    def low_stock(self, category=None):
        return self.queries.low_stock(category)

    def check_low_stock(self, category=None):
        return check_low_stock(self.store, category)

    def stock_history(self, variety_id):
        return self.queries.history(variety_id)

    # ══════════════════════════════════════════════════════════════
    # INVOICES
    # ══════════════════════════════════════════════════════════════

    def register_counterparty(self, role, name, phone, address='',
                              customer_type=CustomerType.RETAIL):
        return self.invoices.register_counterparty(
            role, name, phone, address=address, customer_type=customer_type,
        )

    def create_invoice(self, kind, counterparty: CounterpartyRef | int, variety_id,
                       quantity, unit_price, paid_amount=Decimal('0'),
                       payment: PaymentMeta | None = None, user=None):
        """
        Record a purchase or a sale.

        Returns:
            Invoice (pk, counterparty_id, total, pending)

        Raises:
            NotFound, ValidationError, InsufficientStock (sales)
        """
        return self.invoices.create(
            kind, counterparty, variety_id, quantity, unit_price,
            paid_amount=paid_amount, payment=payment, user=user,
        )

    # ══════════════════════════════════════════════════════════════
    # PAYMENTS
    # ══════════════════════════════════════════════════════════════

    def allocate_payment(self, counterparty_id, amount, method='', reference='',
                         notes='', user=None, itemize=None) -> AllocationResult:
        """Spread a payment over the counterparty's open invoices, oldest first."""
        meta = PaymentMeta(method=method, reference=reference, notes=notes)
        return self.payments.allocate(counterparty_id, amount, meta, user=user, itemize=itemize)

    def record_invoice_payment(self, invoice_id, amount, method='', reference='',
                               notes='', user=None):
        meta = PaymentMeta(method=method, reference=reference, notes=notes)
        return self.payments.record_invoice_payment(invoice_id, amount, meta, user=user)

    def recompute_balance(self, counterparty_id, fix=False) -> BalanceReport:
        return self.balances.recompute(counterparty_id, fix=fix)

    def statement(self, counterparty_id) -> Statement:
        return self.queries.statement(counterparty_id)

    # ══════════════════════════════════════════════════════════════
    # CONVERSION PROCESSES
    # ══════════════════════════════════════════════════════════════

    def create_process(self, kind, variety_id, quantity, user=None):
        return self.processes.create(kind, variety_id, quantity, user=user)

    def complete_process(self, process_id, returned_quantity, output_variety_id=None,
                         cost=None, notes='', user=None):
        """
        Record the return of a boiling/milling process.

        Returns:
            ConversionCompletion (pk, missing_quantity)

        Raises:
            NotFound, InvalidState, ValidationError
        """
        return self.processes.complete(
            process_id, returned_quantity, output_variety_id=output_variety_id,
            cost=cost, notes=notes, user=user,
        )

    def cancel_process(self, process_id, user=None):
        return self.processes.cancel(process_id, user=user)

    def reconcile_missing(self, process_id, details):
        return self.processes.reconcile_missing(process_id, details)

    def process_detail(self, process_id) -> ProcessDetail:
        return self.queries.process_detail(process_id)
