"""
Ricemill Models.

Core models for the stock & ledger engine:
- Variety: Rice type with stock cache
- StockAdjustment: Immutable ledger of stock changes
- Counterparty: Supplier/buyer with running balances
- Invoice: Purchase/sale with paid/pending split
- Payment: Money in/out, per invoice or per counterparty
- ConversionProcess: Boiling/milling lifecycle
- ConversionCompletion: What came back
- MissingQuantityDetail: Itemized boiling loss
"""

from ricemill.models.adjustment import StockAdjustment
from ricemill.models.counterparty import Counterparty
from ricemill.models.enums import (
    CounterpartyRole,
    CustomerType,
    InvoiceKind,
    MissingReason,
    PaymentMethod,
    ProcessKind,
    ProcessStatus,
    VarietyCategory,
)
from ricemill.models.invoice import Invoice, Payment
from ricemill.models.process import ConversionCompletion, ConversionProcess, MissingQuantityDetail
from ricemill.models.variety import Variety

__all__ = [
    'VarietyCategory',
    'InvoiceKind',
    'CounterpartyRole',
    'CustomerType',
    'PaymentMethod',
    'ProcessKind',
    'ProcessStatus',
    'MissingReason',
    'Variety',
    'StockAdjustment',
    'Counterparty',
    'Invoice',
    'Payment',
    'ConversionProcess',
    'ConversionCompletion',
    'MissingQuantityDetail',
]
