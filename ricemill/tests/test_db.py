"""
Tests for the Store unit of work and error taxonomy.
"""

from decimal import Decimal

import pytest
from django.db import OperationalError

from ricemill import Mill, MillError, TransactionFailure, ValidationError
from ricemill.db import Store
from ricemill.models import Counterparty, CounterpartyRole, Variety, VarietyCategory


pytestmark = pytest.mark.django_db


class TestStoreAtomic:

    def test_operational_error_becomes_transaction_failure(self):
        store = Store()

        with pytest.raises(TransactionFailure) as exc:
            with store.atomic():
                raise OperationalError('database is locked')

        assert exc.value.retryable
        assert exc.value.kind == 'transaction_failure'
        assert exc.value.data['detail'] == 'database is locked'

    def test_rollback_leaves_no_partial_state(self, mill, paddy):
        with pytest.raises(TransactionFailure):
            with mill.store.atomic():
                mill.adjust_stock(paddy.pk, Decimal('50'))
                raise OperationalError('deadlock detected')

        paddy.refresh_from_db()
        assert paddy.current_stock == Decimal('1000')
        assert paddy.adjustments.count() == 1

    def test_other_errors_pass_through(self):
        with pytest.raises(KeyError):
            with Store().atomic():
                raise KeyError('x')


class TestStoreRetrying:

    def test_retries_transaction_failure(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise TransactionFailure('COMMIT_FAILED', detail='serialization failure')
            return 'ok'

        assert Store().retrying(flaky, attempts=3) == 'ok'
        assert len(calls) == 3

    def test_gives_up_after_attempts(self):
        calls = []

        def always_failing():
            calls.append(1)
            raise TransactionFailure('COMMIT_FAILED')

        with pytest.raises(TransactionFailure):
            Store().retrying(always_failing, attempts=2)

        assert len(calls) == 2

    def test_validation_errors_are_not_retried(self, mill, paddy):
        calls = []

        def invalid():
            calls.append(1)
            return mill.adjust_stock(paddy.pk, Decimal('0'))

        with pytest.raises(ValidationError):
            mill.retrying(invalid)

        assert len(calls) == 1

    def test_passes_arguments_through(self, mill, paddy):
        adjustment = mill.retrying(mill.adjust_stock, paddy.pk, Decimal('5'), notes='Recount')

        assert adjustment.new_stock == Decimal('1005')


@pytest.mark.django_db(databases=['default', 'archive'])
class TestStoreAlias:
    """A Mill bound to another alias reads and writes only that database."""

    def test_counterparty_figures_come_from_its_database(self):
        archive = Mill(Store('archive'))
        rice = archive.register_variety(
            'Suduru Samba', category=VarietyCategory.SELLING, opening_stock=Decimal('100'),
        )
        buyer = archive.register_counterparty(CounterpartyRole.BUYER, 'Old Customer', '0700000001')
        archive.create_invoice('sale', buyer.pk, rice.pk, Decimal('10'), Decimal('50'))
        archive.allocate_payment(buyer.pk, Decimal('200'))

        buyer = Counterparty.objects.using('archive').get(pk=buyer.pk)

        assert buyer.invoiced_pending == Decimal('300')
        assert buyer.credit_balance == Decimal('0')
        assert archive.recompute_balance(buyer.pk).is_consistent
        assert not Counterparty.objects.exists()
        assert not Variety.objects.exists()


class TestErrors:

    def test_as_dict(self):
        error = ValidationError('AMOUNT_EXCEEDS_PENDING', pending=Decimal('20.00'), requested=Decimal('25'))

        assert error.as_dict() == {
            'kind': 'validation_error',
            'code': 'AMOUNT_EXCEEDS_PENDING',
            'message': 'Payment amount exceeds pending amount',
            'data': {'pending': '20.00', 'requested': '25'},
        }

    def test_custom_message(self):
        error = ValidationError('INVALID_QUANTITY', 'Quantity must be at least 1kg')

        assert str(error) == '[INVALID_QUANTITY] Quantity must be at least 1kg'
        assert isinstance(error, MillError)
        assert not error.retryable

    def test_unknown_code_falls_back_to_code(self):
        assert ValidationError('SOMETHING_ELSE').message == 'SOMETHING_ELSE'

    def test_lazy_exports(self):
        import ricemill

        assert ricemill.Variety is Variety
        with pytest.raises(AttributeError):
            ricemill.Nothing
