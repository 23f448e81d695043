"""
Django Ricemill — Stock & ledger consistency engine for a rice mill.

Usage:
    from ricemill import Mill, MillError

    mill = Mill()
    mill.create_invoice('sale', CounterpartyRef(phone='0771', name='Nimal'),
                        samba.pk, Decimal('50'), Decimal('180'))
    mill.allocate_payment(buyer.pk, Decimal('7000'))
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'Mill':
        from ricemill.service import Mill
        return Mill
    elif name == 'Store':
        from ricemill.db import Store
        return Store
    elif name in ('MillError', 'ValidationError', 'NotFound', 'InvalidState',
                  'InsufficientStock', 'TransactionFailure'):
        from ricemill import exceptions
        return getattr(exceptions, name)
    elif name in ('CounterpartyRef', 'PaymentMeta', 'MissingDetail'):
        from ricemill import services
        return getattr(services, name)
    elif name in ('Variety', 'StockAdjustment', 'Counterparty', 'Invoice', 'Payment',
                  'ConversionProcess', 'ConversionCompletion', 'MissingQuantityDetail'):
        from ricemill import models
        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'Mill',
    'Store',
    'MillError',
    'ValidationError',
    'NotFound',
    'InvalidState',
    'InsufficientStock',
    'TransactionFailure',
    'CounterpartyRef',
    'PaymentMeta',
    'MissingDetail',
    'Variety',
    'StockAdjustment',
    'Counterparty',
    'Invoice',
    'Payment',
    'ConversionProcess',
    'ConversionCompletion',
    'MissingQuantityDetail',
]

__version__ = '0.1.0'
