"""
Conversion processes — boiling and milling lifecycle (create, complete, cancel, reconcile).

Lock order: process → variety.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from django.utils import timezone

from ricemill.conf import ricemill_settings
from ricemill.db import Store
from ricemill.exceptions import InvalidState, NotFound, ValidationError
from ricemill.models.enums import MissingReason, ProcessStatus
from ricemill.models.process import ConversionCompletion, ConversionProcess, MissingQuantityDetail
from ricemill.quantities import ZERO, as_money, as_weight
from ricemill.rules import process_rules
from ricemill.services.ledger import StockLedger

logger = logging.getLogger('ricemill')


@dataclass(frozen=True)
class MissingDetail:
    """One line of a boiling loss breakdown."""

    quantity: Decimal
    reason: str
    description: str = ''

    @classmethod
    def coerce(cls, value) -> 'MissingDetail':
        if isinstance(value, cls):
            detail = value
        elif isinstance(value, Mapping):
            detail = cls(
                quantity=value.get('quantity'),
                reason=value.get('reason', ''),
                description=value.get('description') or '',
            )
        else:
            raise ValidationError('INVALID_QUANTITY', detail=value)

        quantity = as_weight(detail.quantity, 'quantity')
        if quantity <= 0:
            raise ValidationError('INVALID_QUANTITY', requested=quantity)
        if detail.reason not in MissingReason.values:
            raise ValidationError('INVALID_REASON', reason=detail.reason)
        return cls(quantity=quantity, reason=detail.reason, description=(detail.description or '').strip())


class ConversionProcesses:
    """Process lifecycle methods."""

    def __init__(self, store: Store | None = None, ledger: StockLedger | None = None):
        self.store = store or Store()
        self.ledger = ledger or StockLedger(self.store)

    def _lock(self, process_id) -> ConversionProcess:
        try:
            return self.store.locked(ConversionProcess).get(pk=process_id)
        except ConversionProcess.DoesNotExist:
            raise NotFound('PROCESS_NOT_FOUND', process_id=process_id) from None

    def _require_open(self, process: ConversionProcess):
        if not process.is_open:
            raise InvalidState(
                'PROCESS_NOT_PENDING',
                process_id=process.pk,
                current=process.status,
                expected=ProcessStatus.PENDING,
            )

    def create(self, kind, variety_id, quantity, user=None) -> ConversionProcess:
        """
        Send stock out for boiling or milling.

        Debits the input variety by quantity; the process starts PENDING.

        Raises:
            ValidationError('INVALID_KIND' | 'INVALID_QUANTITY')
            NotFound('VARIETY_NOT_FOUND')
        """
        rules = process_rules(kind)
        quantity = as_weight(quantity, 'quantity')
        if quantity <= 0:
            raise ValidationError('INVALID_QUANTITY', requested=quantity)

        with self.store.atomic():
            variety = self.ledger.lock_variety(variety_id)
            process = self.store.objects(ConversionProcess).create(
                kind=rules.kind,
                variety=variety,
                quantity=quantity,
                created_by=user,
            )
            self.ledger.adjust(
                variety.pk, -quantity, rules.sent_reason(quantity),
                user=user, reference=process,
            )
            logger.info(
                "process.created",
                extra={
                    "process_id": process.pk,
                    "kind": rules.kind,
                    "variety_id": variety.pk,
                    "qty": str(quantity),
                },
            )
            return process

    def complete(self, process_id, returned_quantity, output_variety_id=None,
                 cost=None, notes='', user=None) -> ConversionCompletion:
        """
        Record what came back.

        Boiling returns into the input variety and records
        missing = sent - returned. Milling returns into output_variety_id.
        A zero return is recorded without a stock adjustment.

        Transition: PENDING -> COMPLETED

        Raises:
            NotFound('PROCESS_NOT_FOUND' | 'VARIETY_NOT_FOUND')
            InvalidState('PROCESS_NOT_PENDING')
            ValidationError('RETURNED_OUT_OF_RANGE'): returned outside [0, sent]
            ValidationError('OUTPUT_VARIETY_REQUIRED'): milling without output
            ValidationError('OUTPUT_VARIETY_MISMATCH'): boiling into another variety
            ValidationError('COST_NOT_APPLICABLE'): cost given for milling
        """
        returned = as_weight(returned_quantity, 'returned_quantity')

        with self.store.atomic():
            process = self._lock(process_id)
            self._require_open(process)
            rules = process_rules(process.kind)

            if returned < 0 or returned > process.quantity:
                raise ValidationError(
                    'RETURNED_OUT_OF_RANGE',
                    process_id=process.pk,
                    returned=returned,
                    sent=process.quantity,
                )

            if cost is not None:
                if not rules.accepts_cost:
                    raise ValidationError('COST_NOT_APPLICABLE', kind=rules.kind)
                cost = as_money(cost, 'cost')
                if cost < 0:
                    raise ValidationError('INVALID_AMOUNT', amount=cost)

            if rules.same_output:
                if output_variety_id is not None and str(output_variety_id) != str(process.variety_id):
                    raise ValidationError(
                        'OUTPUT_VARIETY_MISMATCH',
                        process_id=process.pk,
                        variety_id=process.variety_id,
                        output_variety_id=output_variety_id,
                    )
                output_variety_id = process.variety_id
            elif output_variety_id is None:
                raise ValidationError('OUTPUT_VARIETY_REQUIRED', process_id=process.pk)

            output = self.ledger.lock_variety(output_variety_id)
            now = timezone.now()

            completion = self.store.objects(ConversionCompletion).create(
                process=process,
                output_variety=output,
                returned_quantity=returned,
                missing_quantity=process.quantity - returned if rules.tracks_missing else None,
                cost=cost,
                notes=notes or '',
                completed_at=now,
                user=user,
            )
            if returned > 0:
                self.ledger.adjust(
                    output.pk, returned, rules.returned_reason(returned, process),
                    user=user, reference=process,
                )

            process.status = ProcessStatus.COMPLETED
            process.completed_at = now
            process.save(using=self.store.alias, update_fields=['status', 'completed_at'])

            logger.info(
                "process.completed",
                extra={
                    "process_id": process.pk,
                    "kind": rules.kind,
                    "output_variety_id": output.pk,
                    "returned": str(returned),
                    "missing": str(completion.missing_quantity),
                },
            )
            return completion

    def cancel(self, process_id, user=None) -> ConversionProcess:
        """
        Cancel a pending process and put the input stock back.

        Transition: PENDING -> CANCELLED

        Raises:
            NotFound('PROCESS_NOT_FOUND')
            InvalidState('PROCESS_NOT_PENDING')
        """
        with self.store.atomic():
            process = self._lock(process_id)
            self._require_open(process)
            rules = process_rules(process.kind)

            self.ledger.adjust(
                process.variety_id, process.quantity,
                rules.cancelled_reason(process.quantity, process),
                user=user, reference=process,
            )
            process.status = ProcessStatus.CANCELLED
            process.cancelled_by = user
            process.cancelled_at = timezone.now()
            process.save(
                using=self.store.alias,
                update_fields=['status', 'cancelled_by', 'cancelled_at'],
            )
            logger.info(
                "process.cancelled",
                extra={"process_id": process.pk, "qty": str(process.quantity)},
            )
            return process

    def reconcile_missing(self, process_id, details: Iterable) -> list[MissingQuantityDetail]:
        """
        Replace the itemized loss breakdown of a completed boiling process.

        The details must add up to the recorded missing quantity within
        MISSING_QUANTITY_TOLERANCE; otherwise the existing set is left alone.

        Args:
            details: MissingDetail instances or dicts with
                quantity / reason / description

        Raises:
            NotFound('PROCESS_NOT_FOUND' | 'COMPLETION_NOT_FOUND')
            InvalidState('NOT_RECONCILABLE'): not a boiling process
            InvalidState('PROCESS_NOT_COMPLETED')
            ValidationError('MISSING_SUM_MISMATCH' | 'INVALID_QUANTITY' | 'INVALID_REASON')
        """
        with self.store.atomic():
            process = self._lock(process_id)
            rules = process_rules(process.kind)
            if not rules.tracks_missing:
                raise InvalidState('NOT_RECONCILABLE', process_id=process.pk, kind=process.kind)
            if process.status != ProcessStatus.COMPLETED:
                raise InvalidState(
                    'PROCESS_NOT_COMPLETED',
                    process_id=process.pk,
                    current=process.status,
                    expected=ProcessStatus.COMPLETED,
                )
            try:
                completion = self.store.objects(ConversionCompletion).get(process=process)
            except ConversionCompletion.DoesNotExist:
                raise NotFound('COMPLETION_NOT_FOUND', process_id=process.pk) from None

            lines = [MissingDetail.coerce(d) for d in details]
            itemized = sum((line.quantity for line in lines), ZERO)
            missing = completion.missing_quantity or ZERO

            if abs(itemized - missing) > ricemill_settings.tolerance:
                raise ValidationError(
                    'MISSING_SUM_MISMATCH',
                    process_id=process.pk,
                    itemized=itemized,
                    missing=missing,
                )

            self.store.objects(MissingQuantityDetail).filter(completion=completion).delete()
            created = [
                self.store.objects(MissingQuantityDetail).create(
                    completion=completion,
                    quantity=line.quantity,
                    reason=line.reason,
                    description=line.description,
                )
                for line in lines
            ]
            logger.info(
                "process.missing.reconciled",
                extra={
                    "process_id": process.pk,
                    "lines": len(created),
                    "itemized": str(itemized),
                    "missing": str(missing),
                },
            )
            return created
