"""
Behaviour tables for the generic Invoice and ConversionProcess.

Purchases and sales, boiling and milling share one implementation each;
the handful of differences between them live here as data.
"""

from dataclasses import dataclass

from ricemill.exceptions import ValidationError
from ricemill.models.enums import CounterpartyRole, InvoiceKind, ProcessKind


@dataclass(frozen=True)
class InvoiceRules:
    """How an invoice kind touches stock and which counterparty it binds."""

    kind: str
    stock_sign: int            # +1 stock in, -1 stock out
    role: str                  # CounterpartyRole of the other side
    requires_stock: bool       # check current_stock >= quantity first
    verb: str                  # for ledger reasons: "Bought", "Sold"
    preposition: str           # "from" / "to"

    def reason(self, quantity, counterparty) -> str:
        return f"{self.verb} {quantity}kg {self.preposition} {counterparty.name} (#{counterparty.pk})"


@dataclass(frozen=True)
class ProcessRules:
    """How a conversion kind completes."""

    kind: str
    same_output: bool          # output variety is the input variety
    tracks_missing: bool       # shortfall is recorded and itemized
    accepts_cost: bool         # a processing cost may be recorded

    def sent_reason(self, quantity) -> str:
        return f"Sent {quantity}kg for {self.kind}"

    def returned_reason(self, quantity, process) -> str:
        return f"Returned {quantity}kg from {self.kind} (process #{process.pk})"

    def cancelled_reason(self, quantity, process) -> str:
        return f"Cancelled {self.kind} of {quantity}kg (process #{process.pk})"


INVOICE_RULES = {
    InvoiceKind.PURCHASE: InvoiceRules(
        kind=InvoiceKind.PURCHASE.value,
        stock_sign=1,
        role=CounterpartyRole.SUPPLIER.value,
        requires_stock=False,
        verb='Bought',
        preposition='from',
    ),
    InvoiceKind.SALE: InvoiceRules(
        kind=InvoiceKind.SALE.value,
        stock_sign=-1,
        role=CounterpartyRole.BUYER.value,
        requires_stock=True,
        verb='Sold',
        preposition='to',
    ),
}

PROCESS_RULES = {
    ProcessKind.BOILING: ProcessRules(
        kind=ProcessKind.BOILING.value,
        same_output=True,
        tracks_missing=True,
        accepts_cost=True,
    ),
    ProcessKind.MILLING: ProcessRules(
        kind=ProcessKind.MILLING.value,
        same_output=False,
        tracks_missing=False,
        accepts_cost=False,
    ),
}


def invoice_rules(kind) -> InvoiceRules:
    try:
        return INVOICE_RULES[InvoiceKind(kind)]
    except ValueError:
        raise ValidationError('INVALID_KIND', kind=kind) from None


def process_rules(kind) -> ProcessRules:
    try:
        return PROCESS_RULES[ProcessKind(kind)]
    except ValueError:
        raise ValidationError('INVALID_KIND', kind=kind) from None
