"""
Stock alerts — varieties that fell to or below their minimum level.

Usage:
    from ricemill.services.alerts import check_low_stock

    # Run periodically (cron) or after stock changes
    triggered = check_low_stock()
    # Returns list of (Variety, current_stock) tuples
"""

import logging
from decimal import Decimal

from ricemill.db import Store
from ricemill.models.variety import Variety

logger = logging.getLogger('ricemill')


def check_low_stock(store: Store | None = None, category=None) -> list[tuple[Variety, Decimal]]:
    """
    Return the varieties whose current stock is <= min_stock_level.

    Args:
        store: Store to read from (None = default database)
        category: Optional VarietyCategory to restrict the check

    Returns:
        List of (variety, current_stock) tuples, one warning logged per variety.
    """
    store = store or Store()
    qs = store.objects(Variety).low_stock()
    if category:
        qs = qs.filter(category=category)

    triggered = []
    for variety in qs:
        triggered.append((variety, variety.current_stock))
        logger.warning(
            "stock.low",
            extra={
                "variety_id": variety.pk,
                "variety": variety.name,
                "min_stock_level": str(variety.min_stock_level),
                "current_stock": str(variety.current_stock),
            },
        )
    return triggered
