"""
Stock ledger — the only way a variety's stock changes.

Every change locks the variety row, writes exactly one StockAdjustment
and moves Variety.current_stock, inside the caller's transaction.
"""

import logging
from decimal import Decimal

from django.db.models import Sum
from django.db.models.functions import Coalesce

from ricemill.conf import ricemill_settings
from ricemill.db import Store
from ricemill.exceptions import InsufficientStock, NotFound, ValidationError
from ricemill.models.adjustment import StockAdjustment
from ricemill.models.enums import VarietyCategory
from ricemill.models.variety import Variety
from ricemill.quantities import WEIGHT_PLACES, as_weight, check_range

logger = logging.getLogger('ricemill')


class StockLedger:
    """Stock-changing operations on varieties."""

    def __init__(self, store: Store | None = None):
        self.store = store or Store()

    def lock_variety(self, variety_id) -> Variety:
        """Fetch a variety with a row lock held until the transaction ends."""
        try:
            return self.store.locked(Variety).get(pk=variety_id)
        except Variety.DoesNotExist:
            raise NotFound('VARIETY_NOT_FOUND', variety_id=variety_id) from None

    def adjust(self, variety_id, delta, reason: str, user=None,
               reference=None, allow_negative: bool | None = None) -> StockAdjustment:
        """
        Apply a signed delta to a variety's stock.

        Args:
            variety_id: Variety PK
            delta: Signed kg (positive = in, negative = out)
            reason: Free text stored on the adjustment
            user: Actor
            reference: Model instance that caused the change (invoice, process)
            allow_negative: Accept a result below zero. None = ALLOW_NEGATIVE_STOCK

        Returns:
            The StockAdjustment written (previous_stock / new_stock)

        Raises:
            ValidationError('INVALID_DELTA'): delta is zero
            ValidationError('INVALID_NUMBER' | 'TOO_PRECISE'): delta or resulting
                stock does not fit the 14-digit, 3-decimal column
            ValidationError('REASON_REQUIRED'): reason is empty
            NotFound('VARIETY_NOT_FOUND'): no such variety
            InsufficientStock('INSUFFICIENT_STOCK'): result < 0 and not allowed

        Concurrency:
            - Runs under Store.atomic()
            - Uses select_for_update() on Variety before reading the stock
        """
        delta = as_weight(delta, 'delta')
        if delta == 0:
            raise ValidationError('INVALID_DELTA', variety_id=variety_id)
        if not reason or not reason.strip():
            raise ValidationError('REASON_REQUIRED')
        if allow_negative is None:
            allow_negative = ricemill_settings.ALLOW_NEGATIVE_STOCK

        with self.store.atomic():
            variety = self.lock_variety(variety_id)
            previous = variety.current_stock
            new = check_range(previous + delta, WEIGHT_PLACES, 'current_stock')

            if new < 0 and not allow_negative:
                raise InsufficientStock(
                    'INSUFFICIENT_STOCK',
                    variety_id=variety.pk,
                    available=previous,
                    requested=-delta,
                )

            adjustment = self.store.objects(StockAdjustment).create(
                variety=variety,
                delta=delta,
                previous_stock=previous,
                new_stock=new,
                reference=reference,
                reason=reason.strip()[:255],
                user=user,
            )
            variety.current_stock = new
            variety.save(using=self.store.alias, update_fields=['current_stock', 'updated_at'])

            logger.info(
                "stock.adjusted",
                extra={
                    "variety_id": variety.pk,
                    "delta": str(delta),
                    "previous": str(previous),
                    "new": str(new),
                    "reason": adjustment.reason,
                },
            )
            return adjustment

    def register_variety(self, name: str, category=VarietyCategory.PADDY,
                         min_stock_level=Decimal('0'), opening_stock=Decimal('0'),
                         user=None) -> Variety:
        """
        Create a variety at zero stock, then book any opening stock as an adjustment.

        Raises:
            ValidationError('NAME_REQUIRED' | 'INVALID_CATEGORY' | 'DUPLICATE_VARIETY')
        """
        name = (name or '').strip()
        if not name:
            raise ValidationError('NAME_REQUIRED')
        if category not in VarietyCategory.values:
            raise ValidationError('INVALID_CATEGORY', category=category)
        min_level = as_weight(min_stock_level, 'min_stock_level')
        if min_level < 0:
            raise ValidationError('INVALID_QUANTITY', field='min_stock_level', requested=min_level)
        opening = as_weight(opening_stock, 'opening_stock')

        with self.store.atomic():
            if self.store.objects(Variety).filter(name__iexact=name).exists():
                raise ValidationError('DUPLICATE_VARIETY', name=name)

            variety = self.store.objects(Variety).create(
                name=name,
                category=category,
                min_stock_level=min_level,
                created_by=user,
            )
            if opening != 0:
                self.adjust(variety.pk, opening, 'Opening stock', user=user)
                variety.refresh_from_db(using=self.store.alias)

            logger.info(
                "variety.registered",
                extra={"variety_id": variety.pk, "name": name, "category": category},
            )
            return variety

    def set_min_stock_level(self, variety_id, level) -> Variety:
        """Change the low-stock threshold (not a stock change, no adjustment)."""
        level = as_weight(level, 'min_stock_level')
        if level < 0:
            raise ValidationError('INVALID_QUANTITY', field='min_stock_level', requested=level)

        with self.store.atomic():
            variety = self.lock_variety(variety_id)
            variety.min_stock_level = level
            variety.save(using=self.store.alias, update_fields=['min_stock_level', 'updated_at'])
            return variety

    def replay(self, variety_id) -> Decimal:
        """Sum of every delta for the variety, what current_stock must equal."""
        return self.store.objects(StockAdjustment).filter(variety_id=variety_id).aggregate(
            t=Coalesce(Sum('delta'), Decimal('0'))
        )['t']

    def recalculate(self, variety_id) -> Decimal:
        """
        Recalculate current_stock from the adjustment ledger.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency

        Returns:
            The replayed stock
        """
        with self.store.atomic():
            variety = self.lock_variety(variety_id)
            total = self.replay(variety.pk)

            if total != variety.current_stock:
                old = variety.current_stock
                variety.current_stock = total
                variety.save(using=self.store.alias, update_fields=['current_stock', 'updated_at'])
                logger.warning(
                    f"Variety {variety.pk} recalculated: {old} → {total} "
                    f"(diff: {total - old})"
                )
            return total
