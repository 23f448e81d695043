"""
Exceptions for Ricemill.

Every error carries a stable ``kind`` (the error class), a structured
``code`` for programmatic handling, a human-readable ``message`` and a
``data`` dict with context.
"""

from decimal import Decimal
from typing import Any


class MillError(Exception):
    """
    Base structured exception for mill operations.

    Usage:
        try:
            mill.create_invoice('sale', ref, variety.pk, Decimal('50'), Decimal('80'))
        except InsufficientStock as e:
            print(f"Only {e.available}kg in stock")

    Attributes:
        kind: Stable machine-readable error class
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    kind = 'error'
    retryable = False
    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'kind': self.kind,
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            },
        }


class ValidationError(MillError):
    """Missing or out-of-range input. Recoverable by the caller, never retried."""

    kind = 'validation_error'
    _default_messages = {
        'INVALID_NUMBER': 'Value is not a valid number or is too large',
        'TOO_PRECISE': 'Value has more decimal places than can be stored',
        'INVALID_QUANTITY': 'Quantity must be positive',
        'INVALID_PRICE': 'Unit price must be positive',
        'INVALID_AMOUNT': 'Amount is out of range',
        'INVALID_DELTA': 'Stock adjustment must be non-zero',
        'INVALID_CATEGORY': 'Unknown variety category',
        'INVALID_KIND': 'Unknown operation kind',
        'INVALID_REASON': 'Unknown missing-quantity reason',
        'INVALID_METHOD': 'Unknown payment method',
        'REASON_REQUIRED': 'Reason is required',
        'NAME_REQUIRED': 'Name is required',
        'DUPLICATE_VARIETY': 'A variety with this name already exists',
        'DUPLICATE_PHONE': 'A counterparty with this phone already exists',
        'PAID_EXCEEDS_TOTAL': 'Paid amount cannot exceed the invoice total',
        'AMOUNT_EXCEEDS_PENDING': 'Payment amount exceeds pending amount',
        'NO_PENDING_INVOICES': 'Counterparty has no pending invoices',
        'OVERPAYMENT': 'Payment exceeds the total pending amount',
        'COUNTERPARTY_REQUIRED': 'Counterparty information is required',
        'COUNTERPARTY_NAME_REQUIRED': 'Counterparty name is required for new counterparties',
        'COUNTERPARTY_ROLE_MISMATCH': 'Counterparty role does not match the invoice kind',
        'RETURNED_OUT_OF_RANGE': 'Returned quantity must be between zero and the sent quantity',
        'OUTPUT_VARIETY_REQUIRED': 'Output variety is required',
        'OUTPUT_VARIETY_MISMATCH': 'Boiling returns the variety that was sent',
        'COST_NOT_APPLICABLE': 'Cost is only recorded for boiling',
        'MISSING_SUM_MISMATCH': "Missing quantity breakdown doesn't match the recorded missing quantity",
    }


class NotFound(MillError):
    """Referenced entity does not exist. Terminal for the request."""

    kind = 'not_found'
    _default_messages = {
        'VARIETY_NOT_FOUND': 'Rice variety not found',
        'INVOICE_NOT_FOUND': 'Invoice not found',
        'COUNTERPARTY_NOT_FOUND': 'Counterparty not found',
        'PROCESS_NOT_FOUND': 'Conversion process not found',
        'COMPLETION_NOT_FOUND': 'Completion record not found for this process',
    }


class InvalidState(MillError):
    """Operation is not legal in the entity's current state (stale client view)."""

    kind = 'invalid_state'
    _default_messages = {
        'PROCESS_NOT_PENDING': 'Process is already completed or cancelled',
        'PROCESS_NOT_COMPLETED': 'Process is not completed',
        'NOT_RECONCILABLE': 'Only boiling processes track missing quantities',
    }


class InsufficientStock(MillError):
    """Stock would go negative. Caller must reduce quantity or adjust stock first."""

    kind = 'insufficient_stock'
    _default_messages = {
        'INSUFFICIENT_STOCK': 'Insufficient stock',
    }

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def requested(self) -> Decimal:
        """Shortcut for data['requested']."""
        return self.data.get('requested', Decimal('0'))


class TransactionFailure(MillError):
    """
    The atomic unit could not commit (deadlock, serialization conflict).

    The only error eligible for caller-side retry; none of the operation's
    side effects were persisted.
    """

    kind = 'transaction_failure'
    retryable = True
    _default_messages = {
        'COMMIT_FAILED': 'Transaction could not be committed',
    }
