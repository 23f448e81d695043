"""
Ricemill configuration.

Usage in settings.py:
    RICEMILL = {
        "ALLOW_NEGATIVE_STOCK": True,
        "MISSING_QUANTITY_TOLERANCE": "0.01",
        "OVERPAYMENT_POLICY": "credit",
        "ITEMIZE_ALLOCATIONS": True,
        "TRANSACTION_RETRIES": 3,
    }
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings


OVERPAYMENT_POLICIES = ('credit', 'reject', 'cap')


@dataclass
class RicemillSettings:
    """Ricemill configuration settings."""

    # Let ledger debits drive stock below zero (purchase-before-weigh-in).
    # Sales always check stock regardless of this flag.
    ALLOW_NEGATIVE_STOCK: bool = True

    # Accepted difference between itemized and recorded boiling loss (kg)
    MISSING_QUANTITY_TOLERANCE: Decimal | str = '0.01'

    # What happens to a payment larger than the total pending:
    # credit = keep excess as standing credit, reject = refuse, cap = ignore excess
    OVERPAYMENT_POLICY: str = 'credit'

    # One Payment row per touched invoice (True) or one unallocated row (False)
    ITEMIZE_ALLOCATIONS: bool = True

    # Caller-side retry of TransactionFailure
    TRANSACTION_RETRIES: int = 3
    RETRY_BACKOFF_SECONDS: float = 0.05

    DEFAULT_PAYMENT_METHOD: str = 'cash'

    @property
    def tolerance(self) -> Decimal:
        return Decimal(str(self.MISSING_QUANTITY_TOLERANCE))


def get_ricemill_settings() -> RicemillSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "RICEMILL", {})
    return RicemillSettings(**{
        k: v for k, v in user_settings.items()
        if k in RicemillSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_ricemill_settings(), name)


ricemill_settings = _LazySettings()
