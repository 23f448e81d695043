"""
Tests for counterparty balance audit.
"""

from decimal import Decimal

import pytest

from ricemill import NotFound
from ricemill.models import Counterparty


pytestmark = pytest.mark.django_db


class TestRecomputeBalance:
    """Tests for mill.recompute_balance()."""

    def test_consistent_after_normal_operations(self, mill, buyer, white_rice):
        mill.create_invoice('sale', buyer.pk, white_rice.pk, Decimal('10'), Decimal('150'),
                            paid_amount=Decimal('500'))
        mill.allocate_payment(buyer.pk, Decimal('250'))

        report = mill.recompute_balance(buyer.pk)

        assert report.is_consistent
        assert report.invoiced_value == Decimal('1500')
        assert report.paid_value == Decimal('750')
        assert report.invoiced_pending == Decimal('750')
        assert report.credit_balance == Decimal('0')

    def test_detects_drift_without_fixing(self, mill, buyer, white_rice, caplog):
        mill.create_invoice('sale', buyer.pk, white_rice.pk, Decimal('10'), Decimal('150'))
        Counterparty.objects.filter(pk=buyer.pk).update(total_value=Decimal('1'), total_pending=Decimal('1'))

        report = mill.recompute_balance(buyer.pk)

        assert not report.is_consistent
        assert report.total_value == Decimal('1')
        assert report.invoiced_value == Decimal('1500')
        assert 'balance drift' in caplog.text
        buyer.refresh_from_db()
        assert buyer.total_value == Decimal('1')

    def test_fix_rewrites_aggregate(self, mill, buyer, white_rice):
        mill.create_invoice('sale', buyer.pk, white_rice.pk, Decimal('10'), Decimal('150'),
                            paid_amount=Decimal('100'))
        Counterparty.objects.filter(pk=buyer.pk).update(
            total_value=Decimal('0'), total_paid=Decimal('0'), total_pending=Decimal('0'),
        )

        mill.recompute_balance(buyer.pk, fix=True)

        buyer.refresh_from_db()
        assert buyer.total_value == Decimal('1500')
        assert buyer.total_paid == Decimal('100')
        assert buyer.total_pending == Decimal('1400')
        assert mill.recompute_balance(buyer.pk).is_consistent

    def test_unknown_counterparty(self, mill):
        with pytest.raises(NotFound):
            mill.recompute_balance(999999)


class TestApplyGuard:

    def test_deltas_must_balance(self, mill, buyer):
        with pytest.raises(ValueError):
            mill.balances.apply(buyer, value=Decimal('10'), paid=Decimal('0'), pending=Decimal('5'))
