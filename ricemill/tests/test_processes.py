"""
Tests for boiling/milling conversion processes.
"""

from decimal import Decimal

import pytest

from ricemill import InvalidState, NotFound, ValidationError
from ricemill.models import (
    ConversionCompletion,
    ConversionProcess,
    MissingQuantityDetail,
    ProcessStatus,
    StockAdjustment,
)
from ricemill.services import MissingDetail


pytestmark = pytest.mark.django_db


@pytest.fixture
def boiled(mill, paddy):
    """Boiling process: 100kg sent, 92kg returned (8kg missing)."""
    process = mill.create_process('boiling', paddy.pk, Decimal('100'))
    mill.complete_process(process.pk, Decimal('92'), cost=Decimal('1500'))
    process.refresh_from_db()
    return process


def stock_of(variety):
    variety.refresh_from_db()
    return variety.current_stock


class TestCreateProcess:
    """Tests for mill.create_process()."""

    def test_debits_input(self, mill, paddy, user):
        process = mill.create_process('boiling', paddy.pk, Decimal('100'), user=user)

        assert process.status == ProcessStatus.PENDING
        assert process.is_open
        assert process.created_by == user
        assert stock_of(paddy) == Decimal('900')

        adjustment = paddy.adjustments.order_by('-pk').first()
        assert adjustment.delta == Decimal('-100')
        assert adjustment.reason == 'Sent 100.000kg for boiling'
        assert adjustment.reference == process

    def test_can_drive_stock_negative(self, mill, empty_paddy):
        mill.create_process('milling', empty_paddy.pk, Decimal('40'))

        assert stock_of(empty_paddy) == Decimal('-40')

    def test_unknown_variety(self, mill):
        with pytest.raises(NotFound):
            mill.create_process('boiling', 999999, Decimal('10'))

        assert ConversionProcess.objects.count() == 0

    def test_quantity_must_be_positive(self, mill, paddy):
        with pytest.raises(ValidationError) as exc:
            mill.create_process('boiling', paddy.pk, Decimal('0'))

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_unknown_kind(self, mill, paddy):
        with pytest.raises(ValidationError) as exc:
            mill.create_process('parboiling', paddy.pk, Decimal('10'))

        assert exc.value.code == 'INVALID_KIND'


class TestCompleteBoiling:
    """Tests for mill.complete_process() on boiling."""

    def test_returns_into_input_variety(self, mill, paddy, user):
        process = mill.create_process('boiling', paddy.pk, Decimal('100'))

        completion = mill.complete_process(process.pk, Decimal('92'), cost=Decimal('1500'), user=user)

        assert completion.missing_quantity == Decimal('8')
        assert completion.output_variety_id == paddy.pk
        assert completion.cost == Decimal('1500')
        assert stock_of(paddy) == Decimal('992')

        process.refresh_from_db()
        assert process.status == ProcessStatus.COMPLETED
        assert process.completed_at == completion.completed_at

    def test_zero_return_records_full_loss(self, mill, paddy):
        process = mill.create_process('boiling', paddy.pk, Decimal('100'))
        before = StockAdjustment.objects.count()

        completion = mill.complete_process(process.pk, Decimal('0'))

        assert completion.missing_quantity == Decimal('100')
        assert StockAdjustment.objects.count() == before
        assert stock_of(paddy) == Decimal('900')

    def test_cannot_return_more_than_sent(self, mill, paddy):
        process = mill.create_process('boiling', paddy.pk, Decimal('100'))

        with pytest.raises(ValidationError) as exc:
            mill.complete_process(process.pk, Decimal('100.001'))

        assert exc.value.code == 'RETURNED_OUT_OF_RANGE'
        process.refresh_from_db()
        assert process.is_open

    def test_negative_return_rejected(self, mill, paddy):
        process = mill.create_process('boiling', paddy.pk, Decimal('100'))

        with pytest.raises(ValidationError):
            mill.complete_process(process.pk, Decimal('-1'))

    def test_cannot_boil_into_another_variety(self, mill, paddy, white_rice):
        process = mill.create_process('boiling', paddy.pk, Decimal('100'))

        with pytest.raises(ValidationError) as exc:
            mill.complete_process(process.pk, Decimal('90'), output_variety_id=white_rice.pk)

        assert exc.value.code == 'OUTPUT_VARIETY_MISMATCH'

    def test_negative_cost_rejected(self, mill, paddy):
        process = mill.create_process('boiling', paddy.pk, Decimal('100'))

        with pytest.raises(ValidationError) as exc:
            mill.complete_process(process.pk, Decimal('90'), cost=Decimal('-5'))

        assert exc.value.code == 'INVALID_AMOUNT'


class TestCompleteMilling:
    """Tests for mill.complete_process() on milling."""

    def test_returns_into_output_variety(self, mill, paddy, white_rice):
        process = mill.create_process('milling', paddy.pk, Decimal('300'))

        completion = mill.complete_process(process.pk, Decimal('210'), output_variety_id=white_rice.pk)

        assert completion.missing_quantity is None
        assert stock_of(paddy) == Decimal('700')
        assert stock_of(white_rice) == Decimal('410')
        adjustment = white_rice.adjustments.order_by('-pk').first()
        assert adjustment.reason == f'Returned 210.000kg from milling (process #{process.pk})'

    def test_output_variety_required(self, mill, paddy):
        process = mill.create_process('milling', paddy.pk, Decimal('300'))

        with pytest.raises(ValidationError) as exc:
            mill.complete_process(process.pk, Decimal('210'))

        assert exc.value.code == 'OUTPUT_VARIETY_REQUIRED'

    def test_unknown_output_variety(self, mill, paddy):
        process = mill.create_process('milling', paddy.pk, Decimal('300'))

        with pytest.raises(NotFound) as exc:
            mill.complete_process(process.pk, Decimal('210'), output_variety_id=999999)

        assert exc.value.code == 'VARIETY_NOT_FOUND'
        process.refresh_from_db()
        assert process.is_open

    def test_cost_not_applicable(self, mill, paddy, white_rice):
        process = mill.create_process('milling', paddy.pk, Decimal('300'))

        with pytest.raises(ValidationError) as exc:
            mill.complete_process(process.pk, Decimal('210'), output_variety_id=white_rice.pk,
                                  cost=Decimal('100'))

        assert exc.value.code == 'COST_NOT_APPLICABLE'


class TestCancelProcess:
    """Tests for mill.cancel_process()."""

    def test_cancel_reverses_debit(self, mill, paddy, user):
        before = stock_of(paddy)
        process = mill.create_process('milling', paddy.pk, Decimal('40'))
        assert stock_of(paddy) == before - Decimal('40')

        cancelled = mill.cancel_process(process.pk, user=user)

        assert cancelled.status == ProcessStatus.CANCELLED
        assert cancelled.cancelled_by == user
        assert cancelled.cancelled_at is not None
        assert stock_of(paddy) == before
        assert paddy.adjustments.order_by('-pk').first().reason.startswith('Cancelled milling of 40.000kg')

    def test_second_cancel_fails(self, mill, paddy):
        process = mill.create_process('milling', paddy.pk, Decimal('40'))
        mill.cancel_process(process.pk)
        count = StockAdjustment.objects.count()

        with pytest.raises(InvalidState) as exc:
            mill.cancel_process(process.pk)

        assert exc.value.code == 'PROCESS_NOT_PENDING'
        assert StockAdjustment.objects.count() == count

    def test_cancelled_cannot_complete(self, mill, paddy, white_rice):
        process = mill.create_process('milling', paddy.pk, Decimal('40'))
        mill.cancel_process(process.pk)

        with pytest.raises(InvalidState):
            mill.complete_process(process.pk, Decimal('30'), output_variety_id=white_rice.pk)

    def test_unknown_process(self, mill):
        with pytest.raises(NotFound) as exc:
            mill.cancel_process(999999)

        assert exc.value.code == 'PROCESS_NOT_FOUND'


class TestTerminalStates:
    """Completed processes accept nothing else."""

    def test_complete_twice_fails(self, mill, paddy, boiled):
        count = StockAdjustment.objects.count()
        stock = stock_of(paddy)

        with pytest.raises(InvalidState):
            mill.complete_process(boiled.pk, Decimal('92'))

        assert StockAdjustment.objects.count() == count
        assert stock_of(paddy) == stock

    def test_cancel_after_complete_fails(self, mill, paddy, boiled):
        stock = stock_of(paddy)

        with pytest.raises(InvalidState):
            mill.cancel_process(boiled.pk)

        assert stock_of(paddy) == stock
        boiled.refresh_from_db()
        assert boiled.status == ProcessStatus.COMPLETED


class TestCompletionAtomicity:
    """A failed completion leaves neither stock nor a completion record behind."""

    def test_ledger_failure_rolls_back_completion(self, mill, paddy, monkeypatch):
        process = mill.create_process('boiling', paddy.pk, Decimal('100'))

        def boom(*args, **kwargs):
            raise RuntimeError('disk full')

        monkeypatch.setattr(mill.ledger, 'adjust', boom)

        with pytest.raises(RuntimeError):
            mill.complete_process(process.pk, Decimal('92'))

        assert ConversionCompletion.objects.count() == 0
        process.refresh_from_db()
        assert process.is_open
        assert stock_of(paddy) == Decimal('900')

    def test_status_failure_rolls_back_stock(self, mill, paddy, monkeypatch):
        process = mill.create_process('boiling', paddy.pk, Decimal('100'))
        adjustments = StockAdjustment.objects.count()
        original_save = ConversionProcess.save

        def failing_save(self, *args, **kwargs):
            if self.status == ProcessStatus.COMPLETED:
                raise RuntimeError('connection lost')
            return original_save(self, *args, **kwargs)

        monkeypatch.setattr(ConversionProcess, 'save', failing_save)

        with pytest.raises(RuntimeError):
            mill.complete_process(process.pk, Decimal('92'))

        assert ConversionCompletion.objects.count() == 0
        assert StockAdjustment.objects.count() == adjustments
        assert stock_of(paddy) == Decimal('900')


class TestReconcileMissing:
    """Tests for mill.reconcile_missing()."""

    def test_details_matching_missing_quantity(self, mill, boiled):
        details = mill.reconcile_missing(boiled.pk, [
            {'quantity': Decimal('5'), 'reason': 'evaporation'},
            {'quantity': Decimal('3'), 'reason': 'spillage', 'description': 'Dropped sack'},
        ])

        assert [d.quantity for d in details] == [Decimal('5'), Decimal('3')]
        assert boiled.completion.itemized_missing == Decimal('8')

    def test_within_tolerance(self, mill, boiled):
        mill.reconcile_missing(boiled.pk, [MissingDetail(Decimal('7.99'), 'evaporation')])

        assert MissingQuantityDetail.objects.count() == 1

    def test_sum_mismatch_keeps_existing_set(self, mill, boiled):
        mill.reconcile_missing(boiled.pk, [
            {'quantity': Decimal('5'), 'reason': 'evaporation'},
            {'quantity': Decimal('3'), 'reason': 'spillage'},
        ])

        with pytest.raises(ValidationError) as exc:
            mill.reconcile_missing(boiled.pk, [
                {'quantity': Decimal('5'), 'reason': 'evaporation'},
                {'quantity': Decimal('2'), 'reason': 'spillage'},
            ])

        assert exc.value.code == 'MISSING_SUM_MISMATCH'
        assert sorted(MissingQuantityDetail.objects.values_list('quantity', flat=True)) == [
            Decimal('3'), Decimal('5'),
        ]

    def test_replaces_previous_set(self, mill, boiled):
        mill.reconcile_missing(boiled.pk, [{'quantity': Decimal('8'), 'reason': 'other'}])
        mill.reconcile_missing(boiled.pk, [
            {'quantity': Decimal('6'), 'reason': 'evaporation'},
            {'quantity': Decimal('2'), 'reason': 'quality_rejection'},
        ])

        reasons = list(MissingQuantityDetail.objects.values_list('reason', flat=True))
        assert reasons == ['evaporation', 'quality_rejection']

    def test_unknown_reason(self, mill, boiled):
        with pytest.raises(ValidationError) as exc:
            mill.reconcile_missing(boiled.pk, [{'quantity': Decimal('8'), 'reason': 'theft'}])

        assert exc.value.code == 'INVALID_REASON'

    def test_milling_not_reconcilable(self, mill, paddy, white_rice):
        process = mill.create_process('milling', paddy.pk, Decimal('100'))
        mill.complete_process(process.pk, Decimal('70'), output_variety_id=white_rice.pk)

        with pytest.raises(InvalidState) as exc:
            mill.reconcile_missing(process.pk, [{'quantity': Decimal('30'), 'reason': 'other'}])

        assert exc.value.code == 'NOT_RECONCILABLE'

    def test_pending_process_not_reconcilable(self, mill, paddy):
        process = mill.create_process('boiling', paddy.pk, Decimal('100'))

        with pytest.raises(InvalidState) as exc:
            mill.reconcile_missing(process.pk, [])

        assert exc.value.code == 'PROCESS_NOT_COMPLETED'

    def test_unknown_process(self, mill):
        with pytest.raises(NotFound):
            mill.reconcile_missing(999999, [])
