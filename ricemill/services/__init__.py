"""
Mill services — one class per component, all sharing a Store.

    from ricemill.services import StockLedger, InvoiceRecorder, PaymentAllocator, ConversionProcesses
"""

from ricemill.services.balances import BalanceBook, BalanceReport
from ricemill.services.invoices import CounterpartyRef, InvoiceRecorder
from ricemill.services.ledger import StockLedger
from ricemill.services.payments import AllocationResult, AppliedPayment, PaymentAllocator, PaymentMeta
from ricemill.services.processes import ConversionProcesses, MissingDetail
from ricemill.services.queries import MillQueries, ProcessDetail, Statement

__all__ = [
    'StockLedger',
    'BalanceBook',
    'BalanceReport',
    'InvoiceRecorder',
    'CounterpartyRef',
    'PaymentAllocator',
    'PaymentMeta',
    'AllocationResult',
    'AppliedPayment',
    'ConversionProcesses',
    'MissingDetail',
    'MillQueries',
    'ProcessDetail',
    'Statement',
]
